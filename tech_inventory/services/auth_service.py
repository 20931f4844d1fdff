"""
Auth service — email/password sign-up and sign-in.

Validates credentials against the hashed passwords stored on ``User``
and records logins and logouts in the audit trail.  Flask-Login owns the
identity in the session; the user loader in the app factory reads the
role from the user record on every request.  The audit writes here are
best-effort: a storage error is logged and never blocks signing in or
out.
"""

import logging
import re

from flask import session
from sqlalchemy.exc import SQLAlchemyError

from tech_inventory.extensions import db
from tech_inventory.models.user import ROLE_USER, User
from tech_inventory.services import audit_service, user_service

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Same message for unknown email and wrong password.
_INVALID_CREDENTIALS = "Invalid email or password."


def validate_registration(
    email: str, password: str, display_name: str
) -> list[str]:
    """Return a list of validation errors for a sign-up form (empty if valid)."""
    errors = []
    if not _EMAIL_RE.match(email or ""):
        errors.append("A valid email address is required.")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        errors.append(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )
    if len((display_name or "").strip()) < 2:
        errors.append("Name must be at least 2 characters.")
    return errors


def register(
    email: str,
    password: str,
    display_name: str,
    employee_number: str | None = None,
) -> User:
    """
    Create a regular user account from the sign-up form.

    Self-registration always grants the ``user`` role; admins are
    promoted from the user management page or created by
    ``flask create-admin``.

    Raises:
        ValueError: If the form is invalid or the email is taken.
    """
    errors = validate_registration(email, password, display_name)
    if errors:
        raise ValueError(" ".join(errors))

    user = user_service.create_user(
        email=email,
        display_name=display_name,
        password=password,
        role=ROLE_USER,
        employee_number=employee_number,
    )
    logger.info("Self-registered user %s", user.email)
    return user


def authenticate(email: str, password: str) -> User:
    """
    Check an email/password pair.

    Returns:
        The matching active User.

    Raises:
        ValueError: If the credentials are wrong or the account is
                    deactivated.
    """
    user = user_service.get_user_by_email(email or "")
    if user is None or not user.check_password(password or ""):
        logger.warning("Failed sign-in attempt for %s", email)
        raise ValueError(_INVALID_CREDENTIALS)
    if not user.is_active:
        logger.warning("Sign-in attempt for deactivated user %s", email)
        raise ValueError("This account has been deactivated.")
    return user


def process_login(user: User) -> bool:
    """
    Stamp the last-login time and audit the sign-in.

    Returns:
        False if the write failed (rolled back and logged).
    """
    user_service.record_login(user)
    return _record_session_event(user.id, "LOGIN")


def process_logout(user_id: int) -> bool:
    """Audit a sign-out and drop the advisor suggestion from the session."""
    audited = _record_session_event(user_id, "LOGOUT")
    clear_session()
    return audited


def clear_session() -> None:
    """Remove application-specific keys from the Flask session."""
    session.pop("advisor_suggestion", None)


def _record_session_event(user_id: int, action_type: str) -> bool:
    try:
        audit_service.log_session_event(user_id, action_type)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Audit write failed for %s of user %d", action_type, user_id)
        return False
    return True
