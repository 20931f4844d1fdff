"""
Routes for the admin blueprint — user management and the audit log.

All routes require the 'admin' role.
"""

from datetime import datetime, time

from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required
from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.blueprints.admin import bp
from tech_inventory.decorators import role_required
from tech_inventory.models.audit import ACTION_TYPES
from tech_inventory.services import audit_service, auth_service, user_service


# =========================================================================
# User Management
# =========================================================================


@bp.route("/users")
@login_required
@role_required("admin")
def manage_users():
    """List all application users with their roles."""
    page = request.args.get("page", 1, type=int)
    include_inactive = request.args.get("show_inactive", "0") == "1"

    users = user_service.get_all_users(
        include_inactive=include_inactive,
        page=page,
        per_page=25,
    )
    roles = user_service.get_all_roles()

    return render_template(
        "admin/manage_users.html",
        users=users,
        roles=roles,
        show_inactive=include_inactive,
    )


@bp.route("/users/new", methods=["POST"])
@login_required
@role_required("admin")
def create_user():
    """Create an account on someone's behalf with a chosen role."""
    email = request.form.get("email", "").strip()
    display_name = request.form.get("display_name", "").strip()
    password = request.form.get("password", "")
    role = request.form.get("role", "user")

    errors = auth_service.validate_registration(email, password, display_name)
    if errors:
        for error in errors:
            flash(error, "danger")
        return redirect(url_for("admin.manage_users"))

    try:
        user_service.create_user(
            email=email,
            display_name=display_name,
            password=password,
            role=role,
            employee_number=request.form.get("employee_number"),
            created_by=current_user.id,
        )
        flash(f"User '{email}' created with role '{role}'.", "success")
    except (ValueError, SQLAlchemyError) as exc:
        flash(str(exc), "danger")

    return redirect(url_for("admin.manage_users"))


@bp.route("/users/<int:user_id>/edit", methods=["GET", "POST"])
@login_required
@role_required("admin")
def edit_user(user_id):
    """Edit a user's profile fields and role."""
    user = user_service.get_user_by_id(user_id)
    if user is None:
        flash("User not found.", "warning")
        return redirect(url_for("admin.manage_users"))

    if request.method == "POST":
        role = request.form.get("role", user.role)
        if user.id == current_user.id and role != user.role:
            flash("You cannot change your own role.", "danger")
            return redirect(url_for("admin.edit_user", user_id=user_id))

        try:
            user_service.update_user(
                user_id=user_id,
                display_name=request.form.get("display_name"),
                email=request.form.get("email"),
                role=role,
                employee_number=request.form.get("employee_number"),
                changed_by=current_user.id,
            )
            flash("User updated.", "success")
            return redirect(url_for("admin.manage_users"))
        except (ValueError, SQLAlchemyError) as exc:
            flash(str(exc), "danger")

    return render_template(
        "admin/edit_user.html",
        user=user,
        roles=user_service.get_all_roles(),
    )


@bp.route("/users/<int:user_id>/deactivate", methods=["POST"])
@login_required
@role_required("admin")
def deactivate_user(user_id):
    """Soft-delete a user."""
    try:
        user_service.deactivate_user(
            user_id=user_id,
            changed_by=current_user.id,
        )
        flash("User deactivated.", "info")
    except ValueError as exc:
        flash(str(exc), "danger")
    return redirect(url_for("admin.manage_users"))


# =========================================================================
# Audit Log
# =========================================================================


@bp.route("/audit-log")
@login_required
@role_required("admin")
def audit_logs():
    """View paginated audit logs with optional filters."""
    page = request.args.get("page", 1, type=int)
    user_search = request.args.get("user", "").strip()
    action_filter = request.args.get("action_type", "")
    entity_filter = request.args.get("entity_type", "")
    start_date = _parse_day(request.args.get("start_date"))
    end_date = _parse_day(request.args.get("end_date"), end_of_day=True)

    logs = audit_service.get_audit_logs(
        page=page,
        per_page=50,
        user_search=user_search or None,
        action_type=action_filter or None,
        entity_type=entity_filter or None,
        start_date=start_date,
        end_date=end_date,
    )

    return render_template(
        "admin/audit_logs.html",
        logs=logs,
        action_types=ACTION_TYPES,
        entity_types=audit_service.get_distinct_entity_types(),
        selected_action=action_filter,
        selected_entity=entity_filter,
        user_search=user_search,
        start_date=request.args.get("start_date", ""),
        end_date=request.args.get("end_date", ""),
        decode=audit_service.decode_value,
    )


# =========================================================================
# Internal helpers
# =========================================================================


def _parse_day(value: str | None, end_of_day: bool = False) -> datetime | None:
    """Turn a YYYY-MM-DD filter into a datetime bound; junk is ignored."""
    if not value:
        return None
    try:
        day = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None
    return datetime.combine(day, time.max if end_of_day else time.min)
