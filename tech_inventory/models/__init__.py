"""
Model package — imports all models so Alembic and SQLAlchemy can
discover them automatically when ``flask db`` commands are run.

  - user.py  -> user
  - asset.py -> asset
  - audit.py -> audit_log
"""

from tech_inventory.models.user import User  # noqa: F401
from tech_inventory.models.asset import Asset  # noqa: F401
from tech_inventory.models.audit import AuditLog  # noqa: F401
