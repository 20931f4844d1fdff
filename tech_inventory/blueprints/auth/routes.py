"""
Routes for the auth blueprint — sign in, sign up, and sign out.

Sign-in checks the email/password pair with ``auth_service`` and hands
the user to Flask-Login.  Sign-up always creates a regular ``user``
account.
"""

from urllib.parse import urlsplit

from flask import flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.blueprints.auth import bp
from tech_inventory.services import auth_service


@bp.route("/login", methods=["GET", "POST"])
def login():
    """Render the sign-in form and process submitted credentials."""
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")
        try:
            user = auth_service.authenticate(email, password)
        except ValueError as exc:
            flash(str(exc), "danger")
            return render_template("auth/login.html", email=email), 401

        auth_service.process_login(user)
        login_user(user, remember=request.form.get("remember") == "1")
        flash(f"Welcome, {user.display_name}!", "success")
        return redirect(_safe_next(request.args.get("next")))

    return render_template("auth/login.html", email="")


@bp.route("/register", methods=["GET", "POST"])
def register():
    """Self-service sign-up for regular users."""
    if current_user.is_authenticated:
        return redirect(url_for("main.dashboard"))

    if request.method == "POST":
        email = request.form.get("email", "").strip()
        password = request.form.get("password", "")
        display_name = request.form.get("display_name", "").strip()
        employee_number = request.form.get("employee_number", "").strip() or None

        errors = auth_service.validate_registration(email, password, display_name)
        if password != request.form.get("confirm_password", ""):
            errors.append("Passwords do not match.")
        if errors:
            for error in errors:
                flash(error, "danger")
            return render_template("auth/register.html", form_data=request.form)

        try:
            user = auth_service.register(
                email=email,
                password=password,
                display_name=display_name,
                employee_number=employee_number,
            )
        except (ValueError, SQLAlchemyError) as exc:
            flash(f"Could not create the account: {exc}", "danger")
            return render_template("auth/register.html", form_data=request.form)

        auth_service.process_login(user)
        login_user(user)
        flash("Your account has been created.", "success")
        return redirect(url_for("main.dashboard"))

    return render_template("auth/register.html", form_data={})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Sign the user out and return to the sign-in page."""
    auth_service.process_logout(current_user.id)
    logout_user()
    flash("You have been signed out.", "info")
    return redirect(url_for("auth.login"))


def _safe_next(target: str | None) -> str:
    """Only follow relative ``next`` targets on this site."""
    if target:
        parts = urlsplit(target)
        if not parts.scheme and not parts.netloc and target.startswith("/"):
            return target
    return url_for("main.dashboard")
