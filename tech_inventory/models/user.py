"""
Authentication models — ``user`` table.

Users sign in with email and password.  Passwords are stored as salted
hashes produced by Werkzeug; the plain text never reaches the database.

Role = what you can do.  Only two roles exist: ``admin`` manages the
inventory and users, ``user`` can browse and export it.
"""

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from tech_inventory.extensions import db

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


class User(UserMixin, db.Model):
    """
    Application user record.

    Inherits from ``UserMixin`` to satisfy Flask-Login requirements
    (``is_authenticated``, ``get_id``).  The ``is_active`` column
    overrides the mixin property so deactivated users cannot sign in.
    """

    __tablename__ = "user"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin', 'user')", name="CK_user_role"
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    email = db.Column(db.String(200), unique=True, nullable=False)
    display_name = db.Column(db.String(200), nullable=False)
    employee_number = db.Column(db.String(50), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=ROLE_USER)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    last_login = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.now()
    )

    # ---- Passwords -------------------------------------------------------

    def set_password(self, password: str) -> None:
        """Hash and store a new password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Return True if ``password`` matches the stored hash."""
        return check_password_hash(self.password_hash, password)

    # ---- Role checks -----------------------------------------------------

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def has_role(self, *role_names: str) -> bool:
        """Check if the user has any of the given role names."""
        return self.role in role_names

    def to_dict(self) -> dict:
        """Snapshot used for audit entries (never includes the hash)."""
        return {
            "email": self.email,
            "display_name": self.display_name,
            "employee_number": self.employee_number,
            "role": self.role,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
