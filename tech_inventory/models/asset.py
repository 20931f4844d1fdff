"""
Asset model — ``asset`` table.

One row per tracked hardware item.  The lifecycle columns
(``disposal_reason``, ``disposal_date``, ``disposed_by``) are populated
only once the asset reaches the terminal ``disposed`` status.
"""

from tech_inventory.extensions import db

PRODUCT_TYPES = (
    "Laptop",
    "Desktop",
    "Monitor",
    "Keyboard",
    "Mouse",
    "Printer",
    "Other",
)

STATUS_ACTIVE = "active"
STATUS_OBSOLETE = "obsolete"
STATUS_DISPOSED = "disposed"
STATUSES = (STATUS_ACTIVE, STATUS_OBSOLETE, STATUS_DISPOSED)

# Position of each status along the one-way lifecycle.
STATUS_ORDER = {
    STATUS_ACTIVE: 0,
    STATUS_OBSOLETE: 1,
    STATUS_DISPOSED: 2,
}


class Asset(db.Model):
    """
    A physical or virtual IT item in the inventory.

    Serial numbers are expected to be unique but the schema does not
    enforce it; duplicates are surfaced by the dashboard search instead.
    """

    __tablename__ = "asset"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('active', 'obsolete', 'disposed')",
            name="CK_asset_status",
        ),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(200), nullable=False)
    product_type = db.Column(db.String(50), nullable=False)
    model = db.Column(db.String(200), nullable=False)
    serial_number = db.Column(db.String(100), nullable=False, index=True)
    purchase_date = db.Column(db.Date, nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    disposal_reason = db.Column(db.Text, nullable=True)
    disposal_date = db.Column(db.DateTime, nullable=True)
    disposal_document_url = db.Column(db.String(500), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    disposed_by = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    created_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime, nullable=False, server_default=db.func.now()
    )

    # -- Relationships -----------------------------------------------------
    creator = db.relationship("User", foreign_keys=[created_by])
    disposer = db.relationship("User", foreign_keys=[disposed_by])

    @property
    def is_disposed(self) -> bool:
        return self.status == STATUS_DISPOSED

    def __repr__(self) -> str:
        return f"<Asset {self.id} {self.name} status={self.status}>"
