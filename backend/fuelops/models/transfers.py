from __future__ import annotations

from ..extensions import db
from ..time_utils import format_business, to_utc_z
from ._numeric import to_number


class StockTransfer(db.Model):
    """
    Inter-barracks stock transfer request.

    LIFECYCLE:
    1. pending: requested; source sufficiency checked (advisory only)
    2. approved: terminal; source debited and destination credited, two ledger entries
    3. rejected: terminal; no balance side effects

    No transition leaves a terminal state.
    """
    __tablename__ = "stock_transfers"
    __table_args__ = (
        db.Index("ix_stock_transfers_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    from_barracks_id = db.Column(db.Integer, db.ForeignKey("barracks.id"), nullable=False, index=True)
    to_barracks_id = db.Column(db.Integer, db.ForeignKey("barracks.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(12, 2), nullable=False)

    # pending, approved, rejected
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    comment = db.Column(db.Text, nullable=True)

    requested_by = db.Column(db.Integer, nullable=False)
    request_date = db.Column(db.DateTime, nullable=False)
    approved_by = db.Column(db.Integer, nullable=True)
    approval_date = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    from_barracks = db.relationship("Barracks", foreign_keys=[from_barracks_id])
    to_barracks = db.relationship("Barracks", foreign_keys=[to_barracks_id])
    item = db.relationship("Item")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_barracks_id": self.from_barracks_id,
            "from_barracks_name": self.from_barracks.name if self.from_barracks else None,
            "to_barracks_id": self.to_barracks_id,
            "to_barracks_name": self.to_barracks.name if self.to_barracks else None,
            "item_id": self.item_id,
            "item_name": self.item.name if self.item else None,
            "item_unit": self.item.unit if self.item else None,
            "quantity": to_number(self.quantity),
            "status": self.status,
            "comment": self.comment,
            "requested_by": self.requested_by,
            "request_date": format_business(self.request_date),
            "approved_by": self.approved_by,
            "approval_date": format_business(self.approval_date),
            "created_at": to_utc_z(self.created_at),
        }
