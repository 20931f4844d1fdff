"""
User service — user lookup, creation, role assignment, deactivation.

Handles CRUD for application users.  Password checks live in
``auth_service``; this service manages the records themselves.
Every change is written to the audit trail.
"""

import logging
from datetime import datetime, timezone

from tech_inventory.extensions import db
from tech_inventory.models.user import ROLE_USER, ROLES, User
from tech_inventory.services import audit_service

logger = logging.getLogger(__name__)


# -- User lookup -----------------------------------------------------------


def get_user_by_id(user_id: int) -> User | None:
    """Return a user by primary key, or None if not found."""
    return db.session.get(User, user_id)


def get_user_by_email(email: str) -> User | None:
    """Return a user by exact email address, ignoring case."""
    return User.query.filter(
        db.func.lower(User.email) == email.strip().lower()
    ).first()


def get_all_users(
    include_inactive: bool = False,
    page: int = 1,
    per_page: int = 50,
):
    """
    Return a paginated list of users, newest first.

    Args:
        include_inactive: If True, include deactivated users.
        page:             Page number (1-indexed).
        per_page:         Records per page.

    Returns:
        A Flask-SQLAlchemy pagination object.
    """
    query = User.query.order_by(User.created_at.desc(), User.id.desc())
    if not include_inactive:
        query = query.filter(User.is_active == True)  # noqa: E712
    return query.paginate(page=page, per_page=per_page, error_out=False)


def get_all_roles() -> tuple[str, ...]:
    """Return the role names a user can be assigned."""
    return ROLES


# -- User creation ---------------------------------------------------------


def create_user(
    email: str,
    display_name: str,
    password: str,
    role: str = ROLE_USER,
    employee_number: str | None = None,
    created_by: int | None = None,
) -> User:
    """
    Create a new user with a hashed password.

    Args:
        email:           Sign-in email (stored lower-cased).
        display_name:    Name shown in the UI and the audit log.
        password:        Plain-text password; only its hash is stored.
        role:            ``admin`` or ``user``.
        employee_number: Optional HR employee number.
        created_by:      ID of the admin creating the user, or None for
                         self-registration and the CLI.

    Returns:
        The newly created User record.

    Raises:
        ValueError: If the role is unknown or the email is taken.
    """
    if role not in ROLES:
        raise ValueError(f"Role '{role}' not found.")
    email = email.strip().lower()
    if get_user_by_email(email) is not None:
        raise ValueError(f"A user with email {email} already exists.")

    user = User(
        email=email,
        display_name=display_name.strip(),
        employee_number=(employee_number or "").strip() or None,
        role=role,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.flush()  # Get the user ID for audit logging.

    audit_service.log_change(
        user_id=created_by if created_by is not None else user.id,
        action_type="CREATE",
        entity_type="user",
        entity_id=user.id,
        new_value=user.to_dict(),
    )
    db.session.commit()

    logger.info("Created user %s with role %s", email, role)
    return user


# -- User updates ----------------------------------------------------------


def update_user(
    user_id: int,
    display_name: str | None = None,
    email: str | None = None,
    role: str | None = None,
    employee_number: str | None = None,
    changed_by: int | None = None,
) -> User:
    """
    Update a user's profile fields and role.

    Fields passed as None are left unchanged.

    Returns:
        The updated User record.

    Raises:
        ValueError: If the user or role is not found, or the new email
                    belongs to someone else.
    """
    user = get_user_by_id(user_id)
    if user is None:
        raise ValueError(f"User ID {user_id} not found.")
    if role is not None and role not in ROLES:
        raise ValueError(f"Role '{role}' not found.")

    previous = user.to_dict()

    if email is not None:
        email = email.strip().lower()
        other = get_user_by_email(email)
        if other is not None and other.id != user.id:
            raise ValueError(f"A user with email {email} already exists.")
        user.email = email
    if display_name is not None:
        user.display_name = display_name.strip()
    if role is not None:
        user.role = role
    if employee_number is not None:
        user.employee_number = employee_number.strip() or None
    user.updated_at = datetime.now(timezone.utc)

    audit_service.log_change(
        user_id=changed_by,
        action_type="UPDATE",
        entity_type="user",
        entity_id=user.id,
        previous_value=previous,
        new_value=user.to_dict(),
    )
    db.session.commit()

    logger.info("Updated user %s (role %s)", user.email, user.role)
    return user


def deactivate_user(user_id: int, changed_by: int | None = None) -> User:
    """
    Soft-delete a user by setting is_active to False.

    Assets keep their ``created_by``/``disposed_by`` references, so
    users are never hard-deleted.

    Raises:
        ValueError: If the user is not found or tries to deactivate
                    themselves.
    """
    user = get_user_by_id(user_id)
    if user is None:
        raise ValueError(f"User ID {user_id} not found.")
    if changed_by is not None and changed_by == user_id:
        raise ValueError("You cannot deactivate your own account.")

    user.is_active = False
    user.updated_at = datetime.now(timezone.utc)

    audit_service.log_change(
        user_id=changed_by,
        action_type="UPDATE",
        entity_type="user",
        entity_id=user.id,
        previous_value={"is_active": True},
        new_value={"is_active": False},
    )
    db.session.commit()

    logger.info("Deactivated user %s", user.email)
    return user


def record_login(user: User) -> None:
    """Stamp the last-login time (committed by the caller)."""
    user.last_login = datetime.now(timezone.utc)
