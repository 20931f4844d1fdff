"""
Auth blueprint — email/password sign-in, sign-up, and sign-out.
"""

from flask import Blueprint

bp = Blueprint(
    "auth",
    __name__,
    template_folder="templates",
)

# Import routes after blueprint creation to avoid circular imports.
from tech_inventory.blueprints.auth import routes  # noqa: E402, F401
