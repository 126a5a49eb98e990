from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import format_business, to_utc_z
from ._numeric import to_number
from .ledger import ImmutableRecordError


class Sale(db.Model):
    """
    Posted fuel sale on credit.

    Created once by services/sales_service.post_sale together with its two
    ledger entries (station stock out, client charge). Never modified.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_station_date", "station_id", "sale_date"),
        db.Index("ix_sales_client_date", "client_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False)
    vehicle_id = db.Column(db.Integer, db.ForeignKey("vehicles.id"), nullable=False, index=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)

    quantity = db.Column(db.Numeric(12, 2), nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_price = db.Column(db.Numeric(12, 2), nullable=False)
    sale_date = db.Column(db.DateTime, nullable=False, index=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    station = db.relationship("Station")
    vehicle = db.relationship("Vehicle")
    client = db.relationship("Client")

    def to_dict(self, *, expand: bool = False) -> dict:
        data = {
            "id": self.id,
            "station_id": self.station_id,
            "vehicle_id": self.vehicle_id,
            "client_id": self.client_id,
            "quantity": to_number(self.quantity),
            "unit_price": to_number(self.unit_price),
            "total_price": to_number(self.total_price),
            "sale_date": format_business(self.sale_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if expand:
            data["station_name"] = self.station.name if self.station else None
            data["vehicle_name"] = self.vehicle.name if self.vehicle else None
            data["client_name"] = self.client.name if self.client else None
        return data


@event.listens_for(Sale, "before_update")
def _sale_no_update(mapper, connection, target):
    raise ImmutableRecordError(f"Sale {target.id} is immutable")
