"""
Audit service — the inventory's change history.

Asset lifecycle changes, user administration and sign-in/sign-out events
are recorded here as ``AuditLog`` rows.  Writers only flush; committing
is left to the caller, which is what lets the lifecycle layer commit an
asset change first and treat the audit write as best-effort.

Snapshots are stored as JSON text.  ``decode_value`` turns them back
into Python values for the audit log and asset history pages.
"""

import json
import logging
from datetime import datetime
from typing import Any

from flask import has_request_context, request
from sqlalchemy import desc

from tech_inventory.extensions import db
from tech_inventory.models.audit import ACTION_TYPES, AuditLog
from tech_inventory.models.user import User

logger = logging.getLogger(__name__)

_USER_AGENT_MAX = 500


# -- Write audit entries ---------------------------------------------------

def log_change(
    user_id: int | None,
    action_type: str,
    entity_type: str,
    entity_id: int | None,
    previous_value: dict[str, Any] | None = None,
    new_value: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Add one audit entry to the session and flush it.

    Args:
        user_id:        Acting user, or None when the change comes from
                        the ``create-admin`` command.
        action_type:    One of ``ACTION_TYPES``.
        entity_type:    ``'asset'`` or ``'user'``.
        entity_id:      Primary key of the affected row.
        previous_value: Snapshot before the change (omitted for CREATE).
        new_value:      Snapshot after the change (omitted for DELETE).

    Returns:
        The flushed, uncommitted AuditLog row.

    Raises:
        ValueError: If ``action_type`` is not a known action.
    """
    if action_type not in ACTION_TYPES:
        raise ValueError(f"Unknown audit action '{action_type}'.")

    ip_address, user_agent = _request_metadata()
    entry = AuditLog(
        user_id=user_id,
        action_type=action_type,
        entity_type=entity_type,
        entity_id=entity_id,
        previous_value=_encode(previous_value),
        new_value=_encode(new_value),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    db.session.flush()

    logger.info(
        "Audit: %s %s:%s by user %s",
        action_type,
        entity_type,
        entity_id,
        user_id,
    )
    return entry


def log_session_event(user_id: int, action_type: str) -> AuditLog:
    """Record a LOGIN or LOGOUT against the user's own row."""
    if action_type not in ("LOGIN", "LOGOUT"):
        raise ValueError(f"'{action_type}' is not a session event.")
    return log_change(
        user_id=user_id,
        action_type=action_type,
        entity_type="user",
        entity_id=user_id,
    )


def _request_metadata() -> tuple[str | None, str | None]:
    # CLI commands run without a request.
    if not has_request_context():
        return None, None
    return request.remote_addr, str(request.user_agent)[:_USER_AGENT_MAX]


def _encode(snapshot: dict[str, Any] | None) -> str | None:
    if not snapshot:
        return None
    # Dates and datetimes inside snapshots are written with str().
    return json.dumps(snapshot, default=str)


# -- Query audit logs ------------------------------------------------------

def get_audit_logs(
    page: int = 1,
    per_page: int = 50,
    user_id: int | None = None,
    user_search: str | None = None,
    action_type: str | None = None,
    entity_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
):
    """
    Page through the audit log, newest first.

    ``user_search`` matches the actor's display name or email
    (case-insensitive substring); entries without an actor never match
    it.  ``start_date`` and ``end_date`` are inclusive bounds.

    Returns:
        A Flask-SQLAlchemy pagination object.
    """
    query = _newest_first(AuditLog.query)

    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)
    if user_search:
        pattern = f"%{user_search}%"
        query = query.join(User, AuditLog.user_id == User.id).filter(
            db.or_(User.display_name.ilike(pattern), User.email.ilike(pattern))
        )
    if action_type:
        query = query.filter(AuditLog.action_type == action_type)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if start_date:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLog.created_at <= end_date)

    return query.paginate(page=page, per_page=per_page, error_out=False)


def get_entity_history(entity_type: str, entity_id: int) -> list[AuditLog]:
    """Return every audit entry for one record, newest first."""
    query = AuditLog.query.filter_by(entity_type=entity_type, entity_id=entity_id)
    return _newest_first(query).all()


def get_distinct_entity_types() -> list[str]:
    """Entity types present in the log, for the filter dropdown."""
    stmt = db.select(AuditLog.entity_type).distinct().order_by(AuditLog.entity_type)
    return list(db.session.scalars(stmt))


def _newest_first(query):
    # Entries written in the same second keep insertion order via the id.
    return query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))


def decode_value(raw: str | None) -> Any:
    """Decode a stored JSON snapshot for display; bad JSON is shown raw."""
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw
