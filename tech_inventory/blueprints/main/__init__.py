"""
Main blueprint — inventory dashboard and health check.
"""

from flask import Blueprint

bp = Blueprint(
    "main",
    __name__,
    template_folder="templates",
)

# Import routes after blueprint creation to avoid circular imports.
from tech_inventory.blueprints.main import routes  # noqa: E402, F401
