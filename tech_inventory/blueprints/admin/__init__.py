"""
Admin blueprint — user management and the audit log.
"""

from flask import Blueprint

bp = Blueprint(
    "admin",
    __name__,
    template_folder="templates",
)

# Import routes after blueprint creation to avoid circular imports.
from tech_inventory.blueprints.admin import routes  # noqa: E402, F401
