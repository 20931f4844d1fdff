"""
Asset service — the repository for inventory records.

Reads and writes ``asset`` rows and translates between the stored row
and its wire representation (the camelCase JSON dict the API and the
audit trail use).  This module performs the raw mutations only; pairing
them with audit entries is the job of ``lifecycle_service``.

Storage errors roll back the session and propagate unchanged so the
caller can report the backend message.  Nothing here retries.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Iterable

from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.extensions import db
from tech_inventory.models.asset import (
    PRODUCT_TYPES,
    STATUS_ACTIVE,
    STATUS_DISPOSED,
    STATUS_ORDER,
    STATUSES,
    Asset,
)

logger = logging.getLogger(__name__)

# Wire key -> column name for the descriptive attributes.
_DESCRIPTIVE_FIELDS = {
    "name": "name",
    "productType": "product_type",
    "model": "model",
    "serialNumber": "serial_number",
    "purchaseDate": "purchase_date",
}


# =========================================================================
# Queries
# =========================================================================


def fetch_assets() -> list[Asset]:
    """Return every asset, newest purchase first."""
    return Asset.query.order_by(
        Asset.purchase_date.desc(),
        Asset.created_at.desc(),
        Asset.id.desc(),
    ).all()


def get_asset(asset_id: int) -> Asset | None:
    """Return an asset by primary key, or None if not found."""
    return db.session.get(Asset, asset_id)


def get_assets_by_ids(asset_ids: Iterable[int]) -> list[Asset]:
    """Return the assets whose ids are in ``asset_ids`` (unknown ids skipped)."""
    ids = list(asset_ids)
    if not ids:
        return []
    return Asset.query.filter(Asset.id.in_(ids)).all()


def filter_assets(
    assets: Iterable[Asset],
    term: str | None = None,
    status: str | None = None,
) -> list[Asset]:
    """
    Filter an already-fetched asset list in memory.

    Args:
        assets: Assets as returned by ``fetch_assets``.
        term:   Case-insensitive substring matched against name, model,
                serial number, and product type.
        status: Keep only assets with this status.

    Returns:
        The matching assets, order preserved.
    """
    needle = (term or "").strip().lower()
    result = []
    for asset in assets:
        if status and asset.status != status:
            continue
        if needle and not any(
            needle in (value or "").lower()
            for value in (
                asset.name,
                asset.model,
                asset.serial_number,
                asset.product_type,
            )
        ):
            continue
        result.append(asset)
    return result


# =========================================================================
# Validation
# =========================================================================

EARLIEST_PURCHASE_DATE = date(1900, 1, 1)


def validate_asset_fields(
    name: str | None,
    product_type: str | None,
    model: str | None,
    serial_number: str | None,
    purchase_date: date | None,
    today: date | None = None,
) -> list[str]:
    """
    Check the descriptive fields of a new asset.

    Returns:
        A list of error messages, empty when the fields are valid.
    """
    today = today or date.today()
    errors = []
    if len((name or "").strip()) < 3:
        errors.append("Name must be at least 3 characters.")
    if product_type not in PRODUCT_TYPES:
        errors.append("Select a product type.")
    if len((model or "").strip()) < 2:
        errors.append("Model must be at least 2 characters.")
    if len((serial_number or "").strip()) < 5:
        errors.append("Serial number must be at least 5 characters.")
    if purchase_date is None:
        errors.append("A purchase date is required.")
    elif not EARLIEST_PURCHASE_DATE <= purchase_date <= today:
        errors.append("Purchase date must be between 1900-01-01 and today.")
    return errors


# =========================================================================
# Mutations
# =========================================================================


def create_asset(
    name: str,
    product_type: str,
    model: str,
    serial_number: str,
    purchase_date: date,
    user_id: int | None,
) -> Asset:
    """
    Insert a new asset in the ``active`` status.

    Args:
        name:          Display name (e.g., "Design Team Laptop").
        product_type:  One of ``PRODUCT_TYPES``.
        model:         Manufacturer model (e.g., "Latitude 5420").
        serial_number: Manufacturer serial number.
        purchase_date: Date of purchase.
        user_id:       ID of the user registering the asset.

    Returns:
        The newly created Asset record.

    Raises:
        ValueError: If a required field is missing or the product type
                    is not recognised.
    """
    if product_type not in PRODUCT_TYPES:
        raise ValueError(f"Unknown product type '{product_type}'.")
    if not name or not model or not serial_number:
        raise ValueError("Name, model and serial number are required.")
    if purchase_date is None:
        raise ValueError("Purchase date is required.")

    now = datetime.now(timezone.utc)
    asset = Asset(
        name=name,
        product_type=product_type,
        model=model,
        serial_number=serial_number,
        purchase_date=purchase_date,
        status=STATUS_ACTIVE,
        created_by=user_id,
        created_at=now,
        updated_at=now,
    )
    _commit(lambda: db.session.add(asset), "create asset")

    logger.info("Created asset %d (%s, serial %s)", asset.id, name, serial_number)
    return asset


def update_status(
    asset_id: int,
    status: str,
    reason: str | None = None,
    user_id: int | None = None,
    document_url: str | None = None,
) -> tuple[Asset, dict[str, Any]]:
    """
    Move an asset forward along its lifecycle.

    Disposal requires a non-blank reason and stamps the disposal date and
    the disposing user.  Moving to any other status clears nothing.

    Args:
        asset_id:     The asset to update.
        status:       Target status (``obsolete`` or ``disposed``).
        reason:       Disposal reason; required for ``disposed``.
        user_id:      ID of the acting user.
        document_url: Optional URL of the uploaded disposal certificate.

    Returns:
        A tuple of the updated Asset and its wire snapshot from before
        the change.

    Raises:
        ValueError: If the status is unknown, the reason is missing, the
                    asset does not exist, or the transition would move
                    backwards (disposal is terminal).
    """
    if status not in STATUSES:
        raise ValueError(f"Unknown status '{status}'.")
    if reason is not None and not isinstance(reason, str):
        raise ValueError("A disposal reason must be text.")
    reason = (reason or "").strip()
    # Checked before touching the store.
    if status == STATUS_DISPOSED and not reason:
        raise ValueError("A disposal reason is required.")

    asset = get_asset(asset_id)
    if asset is None:
        raise ValueError(f"Asset ID {asset_id} not found.")

    if STATUS_ORDER[status] <= STATUS_ORDER[asset.status]:
        raise ValueError(
            f"Asset ID {asset_id} cannot move from '{asset.status}' "
            f"to '{status}'."
        )

    previous = serialize_asset(asset)
    now = datetime.now(timezone.utc)

    def _apply():
        asset.status = status
        asset.updated_at = now
        if status == STATUS_DISPOSED:
            asset.disposal_reason = reason
            asset.disposal_date = now
            asset.disposed_by = user_id
            if document_url:
                asset.disposal_document_url = document_url

    _commit(_apply, f"update asset {asset_id}")

    logger.info(
        "Asset %d status %s -> %s", asset_id, previous["status"], status
    )
    return asset, previous


def delete_asset(asset_id: int) -> dict[str, Any]:
    """
    Permanently delete an asset.

    Returns:
        The wire snapshot of the deleted record.

    Raises:
        ValueError: If the asset does not exist.
    """
    asset = get_asset(asset_id)
    if asset is None:
        raise ValueError(f"Asset ID {asset_id} not found.")

    snapshot = serialize_asset(asset)
    _commit(lambda: db.session.delete(asset), f"delete asset {asset_id}")

    logger.info("Deleted asset %d (%s)", asset_id, snapshot["name"])
    return snapshot


def _commit(apply, description: str) -> None:
    """Apply a change and commit, rolling back on any storage error."""
    try:
        apply()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Storage error during %s", description)
        raise


# =========================================================================
# Wire representation
# =========================================================================


def serialize_asset(asset: Asset) -> dict[str, Any]:
    """
    Convert a stored asset into its wire representation.

    Dates are ISO-8601 strings; absent optional columns become ``None``.
    """
    return {
        "id": asset.id,
        "name": asset.name,
        "productType": asset.product_type,
        "model": asset.model,
        "serialNumber": asset.serial_number,
        "purchaseDate": _iso(asset.purchase_date),
        "status": asset.status,
        "disposalReason": asset.disposal_reason or None,
        "disposalDate": _iso(asset.disposal_date),
        "disposalDocumentUrl": asset.disposal_document_url or None,
        "createdBy": asset.created_by,
        "disposedBy": asset.disposed_by,
    }


def deserialize_asset(record: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a wire record back into column values.

    Date-bearing keys are parsed; keys missing from ``record`` map to
    ``None`` rather than raising.

    Raises:
        ValueError: If a present date value cannot be parsed.
    """
    fields: dict[str, Any] = {}
    for wire_key, column in _DESCRIPTIVE_FIELDS.items():
        fields[column] = record.get(wire_key)
    fields["purchase_date"] = parse_date(fields["purchase_date"])
    fields["status"] = record.get("status")
    fields["disposal_reason"] = record.get("disposalReason") or None
    disposal_date = record.get("disposalDate")
    fields["disposal_date"] = (
        datetime.fromisoformat(disposal_date) if disposal_date else None
    )
    fields["disposal_document_url"] = record.get("disposalDocumentUrl") or None
    return fields


def parse_date(value: Any) -> date | None:
    """
    Parse a purchase date from a form or JSON value.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings (a time
    part, if any, is dropped).  Empty values return None.

    Raises:
        ValueError: If the string is not an ISO-8601 date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
