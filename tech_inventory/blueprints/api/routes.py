"""
Routes for the API blueprint — JSON access to the inventory.

Assets travel in their wire form (``asset_service.serialize_asset``).
Every mutation answers with the refreshed inventory under ``assets`` so
a client never has to patch its own copy.  Errors are JSON bodies of
the form ``{"error": "..."}``.

State-changing requests are CSRF-protected like the HTML forms; send
the token from the page's ``csrf-token`` meta tag as ``X-CSRFToken``.
"""

import logging

from flask import jsonify, request
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.blueprints.api import bp
from tech_inventory.decorators import role_required
from tech_inventory.services import asset_service, lifecycle_service
from tech_inventory.services.disposal_advisor import (
    DisposalAdvisorClient,
    DisposalAdvisorError,
)

logger = logging.getLogger(__name__)


def _wire(assets) -> list[dict]:
    return [asset_service.serialize_asset(asset) for asset in assets]


def _error(message: str, status: int):
    return jsonify(error=message), status


def _json_object(optional: bool = False) -> dict | None:
    """The request body as a dict, or None when it is not a JSON object."""
    payload = request.get_json(silent=True)
    if payload is None and optional:
        return {}
    return payload if isinstance(payload, dict) else None


def _text_field(payload: dict, key: str) -> str | None:
    """Return ``payload[key]`` when it is a string or absent, else raise."""
    value = payload.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"{key} must be a string.")
    return value


@bp.route("/assets")
@login_required
def list_assets():
    """Return the whole inventory, optionally filtered by ``q`` and ``status``."""
    assets = asset_service.filter_assets(
        asset_service.fetch_assets(),
        term=request.args.get("q"),
        status=request.args.get("status") or None,
    )
    return jsonify(assets=_wire(assets))


@bp.route("/assets/<int:asset_id>")
@login_required
def get_asset(asset_id):
    """Return a single asset."""
    asset = asset_service.get_asset(asset_id)
    if asset is None:
        return _error(f"Asset ID {asset_id} not found.", 404)
    return jsonify(asset=asset_service.serialize_asset(asset))


@bp.route("/assets", methods=["POST"])
@login_required
@role_required("admin")
def create_asset():
    """
    Register an asset from a wire record.

    Expects ``name``, ``productType``, ``model``, ``serialNumber`` and
    ``purchaseDate``; any status sent is ignored (new assets are active).
    """
    payload = _json_object()
    if payload is None:
        return _error("Expected a JSON object.", 400)

    try:
        fields = asset_service.deserialize_asset(payload)
    except (TypeError, ValueError):
        return _error("Dates must be ISO-8601 strings.", 400)

    values = {
        "name": str(fields["name"] or "").strip(),
        "product_type": fields["product_type"],
        "model": str(fields["model"] or "").strip(),
        "serial_number": str(fields["serial_number"] or "").strip(),
        "purchase_date": fields["purchase_date"],
    }
    errors = asset_service.validate_asset_fields(**values)
    if errors:
        return jsonify(error=" ".join(errors), errors=errors), 400

    try:
        result = lifecycle_service.add_asset(current_user, **values)
    except ValueError as exc:
        return _error(str(exc), 400)
    except SQLAlchemyError as exc:
        return _error(f"Storage error: {exc}", 500)

    return (
        jsonify(
            asset=result.snapshot,
            audited=result.audited,
            assets=_wire(result.assets),
        ),
        201,
    )


@bp.route("/assets/<int:asset_id>/status", methods=["POST"])
@login_required
@role_required("admin")
def set_status(asset_id):
    """Move one asset to ``obsolete`` or ``disposed`` (the latter needs ``reason``)."""
    payload = _json_object()
    if payload is None:
        return _error("Expected a JSON object.", 400)
    try:
        status = _text_field(payload, "status") or ""
        reason = _text_field(payload, "reason")
    except TypeError as exc:
        return _error(str(exc), 400)

    try:
        result = lifecycle_service.set_status(
            current_user, asset_id, status, reason=reason
        )
    except ValueError as exc:
        return _error(str(exc), 400)
    except SQLAlchemyError as exc:
        return _error(f"Storage error: {exc}", 500)

    return jsonify(
        asset=result.snapshot,
        audited=result.audited,
        assets=_wire(result.assets),
    )


@bp.route("/assets/bulk-status", methods=["POST"])
@login_required
@role_required("admin")
def bulk_status():
    """Apply one status to many assets; each id succeeds or fails on its own."""
    payload = _json_object()
    if payload is None:
        return _error("Expected a JSON object.", 400)
    ids = payload.get("ids")
    if not isinstance(ids, list) or not ids:
        return _error("ids must be a non-empty list.", 400)
    try:
        asset_ids = [int(asset_id) for asset_id in ids]
    except (TypeError, ValueError):
        return _error("ids must be integers.", 400)
    try:
        status = _text_field(payload, "status") or ""
        reason = _text_field(payload, "reason")
    except TypeError as exc:
        return _error(str(exc), 400)

    try:
        result = lifecycle_service.bulk_set_status(
            current_user, asset_ids, status, reason=reason
        )
    except ValueError as exc:
        return _error(str(exc), 400)

    return jsonify(
        status=result.status,
        succeeded=result.succeeded,
        failed={str(key): value for key, value in result.failed.items()},
        assets=_wire(result.assets),
    )


@bp.route("/assets/<int:asset_id>", methods=["DELETE"])
@login_required
@role_required("admin")
def delete_asset(asset_id):
    """Permanently delete an asset."""
    try:
        result = lifecycle_service.delete_asset(current_user, asset_id)
    except ValueError as exc:
        return _error(str(exc), 404)
    except SQLAlchemyError as exc:
        return _error(f"Storage error: {exc}", 500)

    return jsonify(
        deleted=result.snapshot,
        audited=result.audited,
        assets=_wire(result.assets),
    )


@bp.route("/assets/ai-suggest", methods=["POST"])
@login_required
@role_required("admin")
def ai_suggest():
    """Return the ids the advisor picks for free-text disposal ``criteria``."""
    payload = _json_object()
    if payload is None:
        return _error("Expected a JSON object.", 400)
    try:
        criteria = (_text_field(payload, "criteria") or "").strip()
    except TypeError as exc:
        return _error(str(exc), 400)
    if not criteria:
        return _error("criteria is required.", 400)

    try:
        ids = DisposalAdvisorClient().suggest(criteria, asset_service.fetch_assets())
    except DisposalAdvisorError as exc:
        logger.warning("AI disposal suggestion failed: %s", exc)
        return _error(f"AI suggestion failed: {exc}", 502)

    return jsonify(ids=ids)


@bp.route("/assets/<int:asset_id>/ai-evaluate", methods=["POST"])
@login_required
@role_required("admin")
def ai_evaluate(asset_id):
    """Ask the advisor whether one asset should be disposed of."""
    asset = asset_service.get_asset(asset_id)
    if asset is None:
        return _error(f"Asset ID {asset_id} not found.", 404)

    payload = _json_object(optional=True)
    if payload is None:
        return _error("Expected a JSON object.", 400)
    try:
        reason = _text_field(payload, "reason")
    except TypeError as exc:
        return _error(str(exc), 400)

    try:
        verdict = DisposalAdvisorClient().evaluate(asset, reason=reason)
    except DisposalAdvisorError as exc:
        return _error(f"AI suggestion failed: {exc}", 502)

    if verdict is None:
        return jsonify(verdict=None)
    return jsonify(
        verdict={"shouldDispose": verdict.should_dispose, "reason": verdict.reason}
    )
