# Overview: Stock flows for stations and barracks built on the ledger mutation primitive.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import BalanceAccount, Barracks, Item, LedgerEntry, Station
from ..time_utils import to_utc_z
from ..validation import parse_amount, parse_text, to_decimal
from . import ledger_service, resource_store
from .concurrency import run_in_transaction
from .ledger_service import BARRACK_STOCK, OwnerKey
"""
Stock semantics:
- Station stock is one balance per station (fuel, litres).
- Barracks stock is one balance per (barracks, item).
- Stock never goes below zero; movements that would need it are either
  rejected by a sufficiency precondition or clamped at 0.
- Quantities are reported as JSON numbers.
"""


def replenish_station_stock(
    station_id: int,
    quantity,
    date=None,
    description: str | None = None,
    *,
    actor_user_id: int | None = None,
) -> LedgerEntry:
    """Receive fuel into a station (stock in)."""
    qty = parse_amount(quantity, "quantity", allow_zero=False)
    description = parse_text(description, "description", max_length=1000) or "Stock replenishment"
    key = OwnerKey.station_stock(station_id)

    entry = run_in_transaction(
        lambda: ledger_service.apply_movement(
            key,
            amount_in=qty,
            occurred_at=date,
            description=description,
            actor_user_id=actor_user_id,
        )
    )
    current_app.logger.info(
        "station %s replenished qty=%s balance=%s", station_id, qty, entry.balance,
    )
    return entry


def receive_barrack_stock(
    barracks_id: int,
    item_id: int,
    quantity,
    date=None,
    description: str | None = None,
    *,
    actor_user_id: int | None = None,
) -> LedgerEntry:
    """Receive an item into a barracks (stock in)."""
    qty = parse_amount(quantity, "quantity", allow_zero=False)
    return ledger_service.post_movement(
        OwnerKey.barrack_stock(barracks_id, item_id),
        amount_in=qty,
        occurred_at=date,
        description=parse_text(description, "description", max_length=1000) or "Stock received",
        actor_user_id=actor_user_id,
    )


def get_station_stock(station_id: int) -> dict:
    station = resource_store.require(Station, station_id, "Station")
    key = OwnerKey.station_stock(station_id)
    account = ledger_service.get_account(key)
    return {
        "station_id": station.id,
        "station_name": station.name,
        "quantity": float(ledger_service.resolve_balance(key)),
        "last_updated": to_utc_z(account.updated_at) if account else None,
    }


def station_stock_ledger(station_id: int, *, page: int = 1, limit: int = 50) -> dict:
    resource_store.require(Station, station_id, "Station")
    return ledger_service.list_entries(OwnerKey.station_stock(station_id), page=page, limit=limit)


def get_barrack_stock(barracks_id: int, item_id: int):
    return ledger_service.resolve_balance(OwnerKey.barrack_stock(barracks_id, item_id))


def barracks_stock_ledger(barracks_id: int, *, item_id: int | None = None, page: int = 1, limit: int = 50) -> dict:
    """Entries for every item of a barracks (or one item), newest first."""
    resource_store.require(Barracks, barracks_id, "Barracks")
    if item_id is not None:
        return ledger_service.list_entries(OwnerKey.barrack_stock(barracks_id, item_id), page=page, limit=limit)

    q = db.session.query(LedgerEntry).filter(
        LedgerEntry.domain == BARRACK_STOCK,
        LedgerEntry.owner_id == barracks_id,
    ).order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
    return resource_store.paginate(q, page, limit)


def all_barrack_stock() -> list[dict]:
    """Current stock of every (barracks, item) pair that has history."""
    rows = (
        db.session.query(BalanceAccount, Barracks, Item)
        .join(Barracks, Barracks.id == BalanceAccount.owner_id)
        .join(Item, Item.id == BalanceAccount.item_id)
        .filter(BalanceAccount.domain == BARRACK_STOCK)
        .order_by(Barracks.name.asc(), Item.name.asc())
        .all()
    )
    return [
        {
            "barracks_id": barracks.id,
            "barracks_name": barracks.name,
            "item_id": item.id,
            "item_name": item.name,
            "unit": item.unit,
            "quantity": float(to_decimal(account.balance)),
        }
        for account, barracks, item in rows
    ]


def list_barracks() -> list[Barracks]:
    return resource_store.list_all(Barracks, order_by=Barracks.name.asc())


def list_items() -> list[Item]:
    return resource_store.list_all(Item, order_by=Item.name.asc())

