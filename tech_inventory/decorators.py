"""
Authorization decorators for route-level access control.

Used in combination with Flask-Login's ``@login_required``:

    @bp.route('/admin/users')
    @login_required
    @role_required('admin')
    def manage_users():
        ...

JSON routes get a JSON 403 body instead of a flashed message.
"""

import logging
from functools import wraps

from flask import abort, flash, jsonify, request
from flask_login import current_user

logger = logging.getLogger(__name__)


def role_required(*role_names: str):
    """
    Decorator that restricts access to users with one of the specified roles.

    Args:
        role_names: One or more role name strings (e.g., 'admin').

    Usage::

        @role_required('admin')
        def protected_view():
            ...
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not current_user.has_role(*role_names):
                logger.warning(
                    "Access denied: user %d (%s) with role '%s' "
                    "attempted %s %s (requires one of: %s)",
                    current_user.id,
                    current_user.email,
                    current_user.role,
                    request.method,
                    request.path,
                    ", ".join(role_names),
                )
                if request.is_json or request.path.startswith("/api/"):
                    return jsonify(error="forbidden"), 403
                flash("You do not have permission to perform this action.", "danger")
                abort(403)
            return func(*args, **kwargs)

        return wrapper

    return decorator
