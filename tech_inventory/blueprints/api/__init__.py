"""
API blueprint — JSON endpoints for the inventory and its lifecycle actions.
"""

from flask import Blueprint

bp = Blueprint("api", __name__)

# Import routes after blueprint creation to avoid circular imports.
from tech_inventory.blueprints.api import routes  # noqa: E402, F401
