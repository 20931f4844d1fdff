"""
Routes for the assets blueprint — inventory lifecycle actions.

Mutating routes are restricted to the admin role and go through
``lifecycle_service``, which audits each change and refetches the
inventory.  Validation happens here, before any service call, so a bad
form never reaches the store.
"""

import logging
from datetime import date

from flask import (
    abort,
    flash,
    redirect,
    render_template,
    request,
    send_file,
    session,
    url_for,
)
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.blueprints.assets import bp
from tech_inventory.decorators import role_required
from tech_inventory.models.asset import (
    PRODUCT_TYPES,
    STATUS_DISPOSED,
    STATUS_OBSOLETE,
)
from tech_inventory.services import (
    asset_service,
    audit_service,
    export_service,
    lifecycle_service,
    storage_service,
)
from tech_inventory.services.disposal_advisor import (
    DisposalAdvisorClient,
    DisposalAdvisorError,
)

logger = logging.getLogger(__name__)

_BULK_STATUSES = (STATUS_OBSOLETE, STATUS_DISPOSED)


def parse_asset_form(form) -> tuple[dict, list[str]]:
    """
    Validate the add-asset form.

    Returns:
        A tuple of the cleaned field dict and a list of error messages
        (empty when the form is valid).
    """
    fields = {
        "name": form.get("name", "").strip(),
        "product_type": form.get("product_type", "").strip(),
        "model": form.get("model", "").strip(),
        "serial_number": form.get("serial_number", "").strip(),
        "purchase_date": None,
    }
    try:
        fields["purchase_date"] = asset_service.parse_date(form.get("purchase_date"))
    except ValueError:
        errors = asset_service.validate_asset_fields(**fields)
        errors.remove("A purchase date is required.")
        errors.append("Purchase date must be a valid date (YYYY-MM-DD).")
        return fields, errors
    return fields, asset_service.validate_asset_fields(**fields)


# =========================================================================
# Create
# =========================================================================


@bp.route("/new", methods=["GET", "POST"])
@login_required
@role_required("admin")
def asset_create():
    """Register a new asset."""
    if request.method == "POST":
        fields, errors = parse_asset_form(request.form)
        if errors:
            for error in errors:
                flash(error, "danger")
            return render_template(
                "assets/asset_form.html",
                product_types=PRODUCT_TYPES,
                form_data=request.form,
            )

        try:
            result = lifecycle_service.add_asset(current_user, **fields)
        except (ValueError, SQLAlchemyError) as exc:
            flash(f"Error creating asset: {exc}", "danger")
        else:
            flash(f"Asset '{result.snapshot['name']}' added to the inventory.", "success")
            return redirect(url_for("main.dashboard"))

    return render_template(
        "assets/asset_form.html",
        product_types=PRODUCT_TYPES,
        form_data=request.form if request.method == "POST" else {},
    )


# =========================================================================
# Detail
# =========================================================================


@bp.route("/<int:asset_id>")
@login_required
def asset_detail(asset_id):
    """Show one asset with its audit history."""
    asset = asset_service.get_asset(asset_id)
    if asset is None:
        flash("Asset not found.", "warning")
        return redirect(url_for("main.dashboard"))

    history = audit_service.get_entity_history("asset", asset_id)
    return render_template(
        "assets/asset_detail.html",
        asset=asset,
        history=history,
        decode=audit_service.decode_value,
    )


# =========================================================================
# Status changes
# =========================================================================


@bp.route("/<int:asset_id>/status", methods=["POST"])
@login_required
@role_required("admin")
def asset_set_status(asset_id):
    """Move an asset forward; the dashboard button marks it obsolete."""
    status = request.form.get("status", STATUS_OBSOLETE)
    try:
        lifecycle_service.set_status(
            current_user,
            asset_id,
            status,
            reason=request.form.get("reason", "").strip() or None,
        )
        flash(f"Asset marked as {status}.", "info")
    except (ValueError, SQLAlchemyError) as exc:
        flash(str(exc), "danger")
    return redirect(url_for("main.dashboard"))


@bp.route("/<int:asset_id>/dispose", methods=["GET", "POST"])
@login_required
@role_required("admin")
def asset_dispose(asset_id):
    """Dispose of an asset with a mandatory reason and optional certificate."""
    asset = asset_service.get_asset(asset_id)
    if asset is None:
        flash("Asset not found.", "warning")
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        reason = request.form.get("reason", "").strip()
        if not reason:
            flash("A disposal reason is required.", "danger")
            return render_template("assets/dispose_form.html", asset=asset, reason="")

        document_name = None
        upload = request.files.get("document")
        if upload is not None and upload.filename:
            try:
                document_name = storage_service.save_disposal_document(asset_id, upload)
            except ValueError as exc:
                flash(str(exc), "danger")
                return render_template(
                    "assets/dispose_form.html", asset=asset, reason=reason
                )

        document_url = (
            url_for("assets.disposal_document", asset_id=asset_id, filename=document_name)
            if document_name
            else None
        )
        try:
            lifecycle_service.set_status(
                current_user,
                asset_id,
                STATUS_DISPOSED,
                reason=reason,
                document_url=document_url,
            )
        except (ValueError, SQLAlchemyError) as exc:
            if document_name:
                storage_service.remove_document(asset_id, document_name)
            flash(f"Could not dispose of the asset: {exc}", "danger")
            return render_template("assets/dispose_form.html", asset=asset, reason=reason)

        flash(f"Asset '{asset.name}' disposed.", "success")
        return redirect(url_for("main.dashboard"))

    return render_template("assets/dispose_form.html", asset=asset, reason="")


@bp.route("/bulk-status", methods=["POST"])
@login_required
@role_required("admin")
def asset_bulk_status():
    """Apply one status to every selected asset (usually the AI suggestion)."""
    status = request.form.get("status", STATUS_OBSOLETE)
    reason = request.form.get("reason", "").strip() or None
    asset_ids = request.form.getlist("asset_ids", type=int)

    if status not in _BULK_STATUSES:
        flash("Choose obsolete or disposed for a bulk change.", "danger")
        return redirect(url_for("main.dashboard"))
    if not asset_ids:
        flash("No assets were selected.", "warning")
        return redirect(url_for("main.dashboard"))

    try:
        result = lifecycle_service.bulk_set_status(
            current_user, asset_ids, status, reason=reason
        )
    except ValueError as exc:
        flash(str(exc), "danger")
        return redirect(url_for("main.dashboard"))

    if result.succeeded:
        flash(f"{len(result.succeeded)} asset(s) marked as {status}.", "success")
    for asset_id, message in result.failed.items():
        flash(f"Asset {asset_id}: {message}", "danger")

    session.pop("advisor_suggestion", None)
    return redirect(url_for("main.dashboard"))


# =========================================================================
# Delete
# =========================================================================


@bp.route("/<int:asset_id>/delete", methods=["POST"])
@login_required
@role_required("admin")
def asset_delete(asset_id):
    """Permanently delete an asset."""
    try:
        result = lifecycle_service.delete_asset(current_user, asset_id)
        flash(f"Asset '{result.snapshot['name']}' deleted.", "info")
    except (ValueError, SQLAlchemyError) as exc:
        flash(str(exc), "danger")
    return redirect(url_for("main.dashboard"))


# =========================================================================
# AI disposal advisor
# =========================================================================


@bp.route("/ai-suggest", methods=["GET", "POST"])
@login_required
@role_required("admin")
def ai_suggest():
    """Ask the advisor which assets match free-text disposal criteria."""
    if request.method == "POST":
        criteria = request.form.get("criteria", "").strip()
        if not criteria:
            flash("Describe the assets to consider for disposal.", "danger")
            return render_template("assets/ai_suggest.html", criteria="")

        try:
            ids = DisposalAdvisorClient().suggest(criteria, asset_service.fetch_assets())
        except DisposalAdvisorError as exc:
            logger.warning("AI disposal suggestion failed: %s", exc)
            flash(f"AI suggestion failed: {exc}", "danger")
            return render_template("assets/ai_suggest.html", criteria=criteria)

        session["advisor_suggestion"] = [int(asset_id) for asset_id in ids]
        if ids:
            flash(f"AI found {len(ids)} asset(s) matching your criteria.", "success")
        else:
            flash("AI couldn't find any assets matching your criteria.", "info")
        return redirect(url_for("main.dashboard"))

    return render_template("assets/ai_suggest.html", criteria="")


@bp.route("/ai-suggest/dismiss", methods=["POST"])
@login_required
def ai_suggest_dismiss():
    """Forget the current AI suggestion."""
    session.pop("advisor_suggestion", None)
    return redirect(url_for("main.dashboard"))


@bp.route("/<int:asset_id>/ai-evaluate", methods=["POST"])
@login_required
@role_required("admin")
def ai_evaluate(asset_id):
    """Ask the advisor whether a single asset should be disposed of."""
    asset = asset_service.get_asset(asset_id)
    if asset is None:
        flash("Asset not found.", "warning")
        return redirect(url_for("main.dashboard"))

    try:
        verdict = DisposalAdvisorClient().evaluate(
            asset, reason=request.form.get("reason", "").strip() or None
        )
    except DisposalAdvisorError as exc:
        flash(f"AI suggestion failed: {exc}", "danger")
        return redirect(url_for("main.dashboard"))

    return render_template("assets/ai_evaluation.html", asset=asset, verdict=verdict)


# =========================================================================
# Documents and exports
# =========================================================================


@bp.route("/<int:asset_id>/documents/<path:filename>")
@login_required
def disposal_document(asset_id, filename):
    """Download a stored disposal certificate."""
    path = storage_service.document_path(asset_id, filename)
    if path is None:
        abort(404)
    return send_file(path, as_attachment=True)


@bp.route("/export.csv")
@login_required
def export_csv():
    """Download the inventory as CSV."""
    buffer = export_service.export_assets_csv(asset_service.fetch_assets())
    return send_file(
        buffer,
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"inventory_{date.today().isoformat()}.csv",
    )


@bp.route("/export.xlsx")
@login_required
def export_excel():
    """Download the inventory as an Excel workbook."""
    buffer = export_service.export_assets_excel(asset_service.fetch_assets())
    return send_file(
        buffer,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        as_attachment=True,
        download_name=f"inventory_{date.today().isoformat()}.xlsx",
    )
