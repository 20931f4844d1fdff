"""
Audit logging model — ``audit_log`` table.

``AuditLog`` records every mutation of an asset or user record, plus
sign-ins and sign-outs.  Rows are append-only: the application has no
code path that updates or deletes them.
"""

from tech_inventory.extensions import db

ACTION_TYPES = ("CREATE", "UPDATE", "DELETE", "LOGIN", "LOGOUT")


class AuditLog(db.Model):
    """
    Records all data changes in the application.

    Change details are stored as JSON blobs for flexibility.

    JSON conventions for ``previous_value`` / ``new_value``:
      - CREATE: previous_value is NULL, new_value has full record.
      - UPDATE: both contain the full record before and after.
      - DELETE: previous_value has full record, new_value is NULL.
    """

    __tablename__ = "audit_log"
    __table_args__ = (
        db.CheckConstraint(
            "action_type IN ('CREATE', 'UPDATE', 'DELETE', 'LOGIN', 'LOGOUT')",
            name="CK_audit_log_action_type",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    action_type = db.Column(db.String(50), nullable=False)
    # Name of the affected table (e.g. ``asset``, ``user``).
    entity_type = db.Column(db.String(100), nullable=False)
    entity_id = db.Column(db.Integer, nullable=True)
    previous_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.String(500), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.now(), index=True
    )

    # -- Relationships -----------------------------------------------------
    user = db.relationship("User")

    def __repr__(self) -> str:
        return (
            f"<AuditLog {self.action_type} {self.entity_type}"
            f":{self.entity_id}>"
        )
