"""
Assets blueprint — lifecycle actions, AI disposal advisor, documents, exports.
"""

from flask import Blueprint

bp = Blueprint(
    "assets",
    __name__,
    template_folder="templates",
)

# Import routes after blueprint creation to avoid circular imports.
from tech_inventory.blueprints.assets import routes  # noqa: E402, F401
