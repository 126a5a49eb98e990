# Overview: Posting fuel sales on credit: one sale, one stock debit, one client charge, atomically.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..errors import NotFound, PreconditionFailed, ValidationError
from ..extensions import db
from ..models import Client, Sale, Station, Vehicle
from ..time_utils import business_now
from ..validation import CENT, parse_amount, parse_date, to_decimal
from . import ledger_service, resource_store
from .concurrency import run_in_transaction
from .ledger_service import OwnerKey, sufficient_balance
"""
Sale posting (authoritative)

A sale is created exactly once and never modified. Posting it writes, in one
transaction:
  1. the Sale row,
  2. a station_stock entry with amount_out = quantity (must be covered),
  3. a client entry with amount_out = total_price.
Any failure after the first write rolls all three back. The Sale and both
entries carry the same business timestamp.

Checked before any write:
- station, client and vehicle exist
- the station has an effective price, and unit_price is within 0.01 of it
- total_price (when supplied) is within 0.01 of quantity * unit_price
"""

PRICE_TOLERANCE = Decimal("0.01")


def compute_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    return (quantity * unit_price).quantize(CENT, rounding=ROUND_HALF_UP)


def _check_price(station: Station, unit_price: Decimal) -> None:
    if station.current_fuel_price is None:
        raise PreconditionFailed(
            f"Station {station.id} has no effective fuel price",
            details={"station_id": station.id},
        )
    current = to_decimal(station.current_fuel_price)
    if abs(unit_price - current) > PRICE_TOLERANCE:
        raise PreconditionFailed(
            "Unit price does not match the station's current fuel price",
            details={"unit_price": float(unit_price), "current_fuel_price": float(current)},
        )


def post_sale(
    *,
    station_id: int,
    vehicle_id: int,
    client_id: int,
    quantity,
    unit_price,
    total_price=None,
    sale_date=None,
    actor_user_id: int | None = None,
) -> Sale:
    """
    Post a credit sale.

    Raises ValidationError, NotFound, PreconditionFailed (price mismatch or no
    price), InsufficientBalance (station stock) or ConcurrencyConflict.
    """
    qty = parse_amount(quantity, "quantity", allow_zero=False)
    price = parse_amount(unit_price, "unit_price", allow_zero=False)
    expected_total = compute_total(qty, price)
    supplied_total = parse_amount(total_price, "total_price", required=False)
    if supplied_total is not None and abs(supplied_total - expected_total) > PRICE_TOLERANCE:
        raise ValidationError(
            "total_price does not equal quantity * unit_price",
            details={"total_price": float(supplied_total), "expected": float(expected_total)},
        )
    total = supplied_total if supplied_total is not None else expected_total
    when = parse_date(sale_date, "sale_date", required=False) or business_now()

    def _op():
        station = resource_store.require(Station, station_id, "Station")
        resource_store.require(Client, client_id, "Client")
        resource_store.require(Vehicle, vehicle_id, "Vehicle")
        _check_price(station, price)

        stock_key, client_key = OwnerKey.station_stock(station_id), OwnerKey.client(client_id)
        ledger_service.lock_accounts(stock_key, client_key)
        # Sale and both legs share the time the ledger will record.
        sale_time = ledger_service.effective_time((stock_key, client_key), when)

        sale = Sale(
            station_id=station_id,
            vehicle_id=vehicle_id,
            client_id=client_id,
            quantity=qty,
            unit_price=price,
            total_price=total,
            sale_date=sale_time,
            created_by_user_id=actor_user_id,
        )
        db.session.add(sale)
        db.session.flush()

        ledger_service.apply_movement(
            stock_key,
            amount_out=qty,
            occurred_at=sale_time,
            description=f"Sale #{sale.id}",
            precondition=sufficient_balance(qty),
            actor_user_id=actor_user_id,
            sale_id=sale.id,
        )
        ledger_service.apply_movement(
            client_key,
            amount_out=total,
            occurred_at=sale_time,
            description=f"Fuel sale #{sale.id}",
            reference=f"SALE-{sale.id}",
            actor_user_id=actor_user_id,
            sale_id=sale.id,
        )
        return sale

    sale = run_in_transaction(_op)
    current_app.logger.info(
        "sale %s posted station=%s client=%s qty=%s total=%s",
        sale.id, station_id, client_id, qty, total,
    )
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFound(f"Sale {sale_id} not found", details={"entity": "Sale", "id": sale_id})
    return sale
