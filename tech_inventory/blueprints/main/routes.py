"""
Routes for the main blueprint — inventory dashboard and health check.
"""

from flask import render_template, request, session
from flask_login import login_required
from sqlalchemy import text

from tech_inventory.blueprints.main import bp
from tech_inventory.extensions import db
from tech_inventory.models.asset import PRODUCT_TYPES, STATUSES
from tech_inventory.services import asset_service


@bp.route("/")
@login_required
def dashboard():
    """
    Inventory dashboard.

    Lists every asset (newest purchase first), filtered in memory by the
    ``q`` search term and the ``status`` query parameter.  Assets picked
    by the last AI disposal suggestion are highlighted, with a bulk
    action banner for admins.
    """
    search = request.args.get("q", "").strip()
    status = request.args.get("status", "").strip()
    if status not in STATUSES:
        status = ""

    all_assets = asset_service.fetch_assets()
    assets = asset_service.filter_assets(all_assets, term=search, status=status or None)

    # Ids stay in the session until acted on or dismissed; drop any that
    # have since been deleted.
    existing_ids = {asset.id for asset in all_assets}
    suggested_ids = [
        asset_id
        for asset_id in session.get("advisor_suggestion", [])
        if asset_id in existing_ids
    ]

    return render_template(
        "main/dashboard.html",
        assets=assets,
        total_count=len(all_assets),
        search=search,
        selected_status=status,
        statuses=STATUSES,
        product_types=PRODUCT_TYPES,
        suggested_ids=suggested_ids,
    )


@bp.route("/health")
def health_check():
    """
    Health check endpoint for monitoring and load balancers.

    Returns 200 if the app is running and can reach the database.
    """
    try:
        db.session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}, 200
    except Exception as exc:  # pylint: disable=broad-except
        return {"status": "unhealthy", "database": str(exc)}, 503
