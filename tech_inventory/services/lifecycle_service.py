"""
Lifecycle service — the mutating actions exposed to the UI and the API.

Each action follows the same sequence:

  1. Check that the actor is an admin (``PermissionError`` otherwise).
  2. Run the repository mutation in ``asset_service`` (committed).
  3. Append one audit entry in a separate commit.  A failure here is
     logged and the audit write rolled back; the mutation stands.
  4. Refetch the whole inventory and return it with the result.

The visible list is therefore always what the store holds after the
mutation; nothing is patched locally ahead of the commit.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.extensions import db
from tech_inventory.models.asset import Asset
from tech_inventory.services import asset_service, audit_service

logger = logging.getLogger(__name__)

_ENTITY_TYPE = "asset"


@dataclass
class LifecycleResult:
    """Outcome of a single-asset action plus the refreshed inventory."""

    asset_id: int
    snapshot: dict[str, Any]
    assets: list[Asset] = field(default_factory=list)
    audited: bool = True


@dataclass
class BulkResult:
    """Per-item outcome of a bulk status change."""

    status: str
    succeeded: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    assets: list[Asset] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


# =========================================================================
# Actions
# =========================================================================


def add_asset(
    user,
    name: str,
    product_type: str,
    model: str,
    serial_number: str,
    purchase_date: date,
) -> LifecycleResult:
    """
    Register a new asset and audit the creation.

    Raises:
        PermissionError: If ``user`` is not an admin.
        ValueError:      If the fields are invalid.
        SQLAlchemyError: If the store rejects the insert.
    """
    _require_admin(user, "add assets")

    asset = asset_service.create_asset(
        name=name,
        product_type=product_type,
        model=model,
        serial_number=serial_number,
        purchase_date=purchase_date,
        user_id=user.id,
    )
    snapshot = asset_service.serialize_asset(asset)
    audited = _record_audit(
        user.id, "CREATE", asset.id, previous_value=None, new_value=snapshot
    )
    return LifecycleResult(
        asset_id=asset.id,
        snapshot=snapshot,
        assets=asset_service.fetch_assets(),
        audited=audited,
    )


def set_status(
    user,
    asset_id: int,
    status: str,
    reason: str | None = None,
    document_url: str | None = None,
) -> LifecycleResult:
    """
    Mark one asset obsolete or disposed and audit the change.

    Raises:
        PermissionError: If ``user`` is not an admin.
        ValueError:      On a missing reason, unknown asset, or a
                         backwards transition.
        SQLAlchemyError: If the store rejects the update.
    """
    _require_admin(user, "change asset status")

    asset, previous = asset_service.update_status(
        asset_id,
        status,
        reason=reason,
        user_id=user.id,
        document_url=document_url,
    )
    snapshot = asset_service.serialize_asset(asset)
    audited = _record_audit(
        user.id, "UPDATE", asset_id, previous_value=previous, new_value=snapshot
    )
    return LifecycleResult(
        asset_id=asset_id,
        snapshot=snapshot,
        assets=asset_service.fetch_assets(),
        audited=audited,
    )


def bulk_set_status(
    user,
    asset_ids: Iterable[int],
    status: str,
    reason: str | None = None,
) -> BulkResult:
    """
    Apply one status change to each id in turn.

    A failure on one id is recorded in ``BulkResult.failed`` and does not
    stop the remaining ids.  Each success gets its own audit entry.

    Raises:
        PermissionError: If ``user`` is not an admin.
        ValueError:      If disposing without a reason (checked once,
                         before any id is attempted).
    """
    _require_admin(user, "change asset status")
    if reason is not None and not isinstance(reason, str):
        raise ValueError("A disposal reason must be text.")
    if status == "disposed" and not (reason or "").strip():
        raise ValueError("A disposal reason is required.")

    result = BulkResult(status=status)
    # Deduplicate while keeping the caller's order.
    for asset_id in dict.fromkeys(asset_ids):
        try:
            asset, previous = asset_service.update_status(
                asset_id, status, reason=reason, user_id=user.id
            )
        except (ValueError, SQLAlchemyError) as exc:
            logger.warning(
                "Bulk %s: asset %s failed: %s", status, asset_id, exc
            )
            result.failed[asset_id] = str(exc)
            continue

        _record_audit(
            user.id,
            "UPDATE",
            asset_id,
            previous_value=previous,
            new_value=asset_service.serialize_asset(asset),
        )
        result.succeeded.append(asset_id)

    logger.info(
        "Bulk %s by user %d: %d succeeded, %d failed",
        status,
        user.id,
        len(result.succeeded),
        len(result.failed),
    )
    result.assets = asset_service.fetch_assets()
    return result


def delete_asset(user, asset_id: int) -> LifecycleResult:
    """
    Permanently delete an asset and audit the deletion.

    Raises:
        PermissionError: If ``user`` is not an admin.
        ValueError:      If the asset does not exist.
        SQLAlchemyError: If the store rejects the delete.
    """
    _require_admin(user, "delete assets")

    snapshot = asset_service.delete_asset(asset_id)
    audited = _record_audit(
        user.id, "DELETE", asset_id, previous_value=snapshot, new_value=None
    )
    return LifecycleResult(
        asset_id=asset_id,
        snapshot=snapshot,
        assets=asset_service.fetch_assets(),
        audited=audited,
    )


# =========================================================================
# Internal helpers
# =========================================================================


def _require_admin(user, action: str) -> None:
    if user is None or not getattr(user, "is_admin", False):
        logger.warning(
            "User %s attempted to %s without the admin role",
            getattr(user, "id", None),
            action,
        )
        raise PermissionError(f"Only administrators may {action}.")


def _record_audit(
    user_id: int,
    action_type: str,
    asset_id: int,
    previous_value: dict[str, Any] | None,
    new_value: dict[str, Any] | None,
) -> bool:
    """
    Append and commit one audit entry for an asset mutation.

    Returns:
        True if the entry was stored, False if the write failed.
    """
    try:
        audit_service.log_change(
            user_id=user_id,
            action_type=action_type,
            entity_type=_ENTITY_TYPE,
            entity_id=asset_id,
            previous_value=previous_value,
            new_value=new_value,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(
            "Audit write failed for %s asset %d; mutation kept",
            action_type,
            asset_id,
        )
        return False
    return True
