from __future__ import annotations

from ..extensions import db
from ..time_utils import format_business, to_utc_z
from ._numeric import to_number


class Station(db.Model):
    """
    Fuel station.

    current_fuel_price is a materialized value owned by the price
    recalculator (services/pricing_service.py). It is rewritten in the same
    transaction as every PriceWindow insert/update/delete for the station and
    must never be set directly.
    """
    __tablename__ = "stations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    current_fuel_price = db.Column(db.Numeric(12, 2), nullable=True)
    price_recalculated_at = db.Column(db.DateTime, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Station id={self.id} name={self.name!r} price={self.current_fuel_price}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "current_fuel_price": to_number(self.current_fuel_price),
            "price_recalculated_at": format_business(self.price_recalculated_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PriceWindow(db.Model):
    """
    A price valid for a station from start_date, optionally until end_date.

    Windows may overlap; the recalculator picks the latest-starting eligible
    one. Dates are business-local.
    """
    __tablename__ = "price_windows"
    __table_args__ = (
        db.Index("ix_price_windows_station_start", "station_id", "start_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    station_id = db.Column(db.Integer, db.ForeignKey("stations.id"), nullable=False, index=True)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    station = db.relationship("Station", backref=db.backref("price_windows", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "station_id": self.station_id,
            "price": to_number(self.price),
            "start_date": format_business(self.start_date),
            "end_date": format_business(self.end_date),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
