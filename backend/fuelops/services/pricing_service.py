# Overview: Price windows and the effective-price recalculator for stations.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import PriceWindow, Station
from ..time_utils import business_now, format_business
from ..validation import parse_amount, parse_date, to_decimal
from . import resource_store
from .concurrency import lock_for_update, run_in_transaction
"""
Effective price rules (authoritative)

- A station's current_fuel_price is derived, never set by hand: it is
  recomputed by recalculate() in the same transaction as every insert,
  update or delete of one of its price windows.
- Eligible windows have start_date <= now (business time). When
  PRICE_WINDOW_ENFORCE_END_DATE is on, a window whose end_date is set and
  already passed is not eligible; a NULL end_date is open-ended.
- Among eligible windows the latest start_date wins; ties go to the highest id.
- No eligible window means no price (NULL); sales are refused until one exists.
- A date-only end_date covers that whole business day.
"""

_UNSET = object()


def _enforce_end_date() -> bool:
    return bool(current_app.config.get("PRICE_WINDOW_ENFORCE_END_DATE", True))


def _lock_station(station_id: int) -> Station:
    q = db.session.query(Station).filter(Station.id == station_id)
    station = lock_for_update(q).first()
    if station is None:
        raise NotFound(f"Station {station_id} not found", details={"entity": "Station", "id": station_id})
    return station


def select_effective_window(station_id: int, now) -> PriceWindow | None:
    q = db.session.query(PriceWindow).filter(
        PriceWindow.station_id == station_id,
        PriceWindow.start_date <= now,
    )
    if _enforce_end_date():
        q = q.filter(or_(PriceWindow.end_date.is_(None), PriceWindow.end_date >= now))
    return q.order_by(PriceWindow.start_date.desc(), PriceWindow.id.desc()).first()


def recalculate(station_id: int, now=None) -> Decimal | None:
    """
    Recompute and store the station's effective price. Runs inside the
    caller's transaction (flushes, does not commit).
    """
    now = parse_date(now, "now", required=False) or business_now()
    station = _lock_station(station_id)
    window = select_effective_window(station_id, now)

    price = to_decimal(window.price) if window is not None else None
    station.current_fuel_price = price
    station.price_recalculated_at = now
    db.session.flush()

    current_app.logger.info(
        "station %s effective price=%s window=%s as of %s",
        station_id, price, window.id if window else None, format_business(now),
    )
    return price


def _validate_range(start, end) -> None:
    if end is not None and end < start:
        raise ValidationError("end_date cannot be before start_date")


def create_price_window(
    station_id: int,
    price,
    start_date,
    end_date=None,
    *,
    actor_user_id: int | None = None,
    now=None,
) -> PriceWindow:
    price = parse_amount(price, "price", allow_zero=False)
    start = parse_date(start_date, "start_date")
    end = parse_date(end_date, "end_date", required=False, end_of_day=True)
    _validate_range(start, end)
    resource_store.require(Station, station_id, "Station")

    def _op():
        window = PriceWindow(
            station_id=station_id,
            price=price,
            start_date=start,
            end_date=end,
            created_by_user_id=actor_user_id,
        )
        db.session.add(window)
        db.session.flush()
        recalculate(station_id, now)
        return window

    return run_in_transaction(_op)


def _require_window(station_id: int, window_id: int) -> PriceWindow:
    window = db.session.get(PriceWindow, window_id)
    if window is None or window.station_id != station_id:
        raise NotFound(
            f"Price window {window_id} not found for station {station_id}",
            details={"entity": "PriceWindow", "id": window_id},
        )
    return window


def update_price_window(
    station_id: int,
    window_id: int,
    *,
    price=_UNSET,
    start_date=_UNSET,
    end_date=_UNSET,
    now=None,
) -> PriceWindow:
    """Patch a window; passing end_date=None makes it open-ended."""
    changes = {}
    if price is not _UNSET:
        changes["price"] = parse_amount(price, "price", allow_zero=False)
    if start_date is not _UNSET:
        changes["start_date"] = parse_date(start_date, "start_date")
    if end_date is not _UNSET:
        changes["end_date"] = parse_date(end_date, "end_date", required=False, end_of_day=True)
    if not changes:
        raise ValidationError("No fields to update")

    def _op():
        window = _require_window(station_id, window_id)
        for key, value in changes.items():
            setattr(window, key, value)
        _validate_range(window.start_date, window.end_date)
        db.session.flush()
        recalculate(station_id, now)
        return window

    return run_in_transaction(_op)


def delete_price_window(station_id: int, window_id: int, *, now=None) -> Decimal | None:
    """Delete a window and return the station's new effective price."""
    def _op():
        window = _require_window(station_id, window_id)
        db.session.delete(window)
        db.session.flush()
        return recalculate(station_id, now)

    return run_in_transaction(_op)


def list_price_windows(station_id: int) -> list[PriceWindow]:
    resource_store.require(Station, station_id, "Station")
    return (
        db.session.query(PriceWindow)
        .filter(PriceWindow.station_id == station_id)
        .order_by(PriceWindow.start_date.desc(), PriceWindow.id.desc())
        .all()
    )


def get_effective_price(station_id: int) -> Decimal | None:
    """The stored effective price (what sales are validated against)."""
    station = resource_store.require(Station, station_id, "Station")
    if station.current_fuel_price is None:
        return None
    return to_decimal(station.current_fuel_price)


def recalculate_all(now=None, *, station_id: int | None = None) -> dict[int, Decimal | None]:
    """Recompute every station (or one); each station commits on its own."""
    if station_id is not None:
        ids = [resource_store.require(Station, station_id, "Station").id]
    else:
        ids = [row.id for row in db.session.query(Station.id).order_by(Station.id).all()]

    results = {}
    for sid in ids:
        results[sid] = run_in_transaction(lambda sid=sid: recalculate(sid, now))
    return results
