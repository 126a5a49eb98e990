# Overview: Reference resources (stations, clients, vehicles, barracks, items) and client money flows.

from __future__ import annotations

from ..errors import ValidationError
from ..models import Barracks, Client, Item, LedgerEntry, Station, Vehicle
from ..validation import parse_amount, parse_id, parse_text
from . import ledger_service, resource_store
from .ledger_service import ZERO, OwnerKey

"""
Client balance sign convention:
- The balance is a receivable: previous + amount_out - amount_in, unclamped.
- A sale charges the client with amount_out = total, so the balance rises.
- Payments and credit notes are amount_in and lower it.
- outstanding = max(0, balance); a negative balance is credit held.
"""


# --- stations -------------------------------------------------------------

def create_station(*, name, address=None, phone=None, email=None) -> Station:
    # current_fuel_price starts NULL; only the price recalculator sets it.
    return resource_store.create(
        Station,
        name=parse_text(name, "name", required=True),
        address=parse_text(address, "address"),
        phone=parse_text(phone, "phone", max_length=64),
        email=parse_text(email, "email"),
    )


def list_stations() -> list[Station]:
    return resource_store.list_all(Station, order_by=Station.name.asc())


def get_station(station_id: int) -> Station:
    return resource_store.require(Station, station_id, "Station")


# --- clients and vehicles -------------------------------------------------

def create_client(*, name, email=None, phone=None) -> Client:
    return resource_store.create(
        Client,
        name=parse_text(name, "name", required=True),
        email=parse_text(email, "email"),
        phone=parse_text(phone, "phone", max_length=64),
    )


def list_clients() -> list[Client]:
    return resource_store.list_all(Client, order_by=Client.name.asc())


def get_client(client_id: int) -> Client:
    return resource_store.require(Client, client_id, "Client")


def create_vehicle(*, name, address=None, client_id=None) -> Vehicle:
    client_id = parse_id(client_id, "client_id", required=False)
    if client_id is not None:
        resource_store.require(Client, client_id, "Client")
    return resource_store.create(
        Vehicle,
        name=parse_text(name, "name", required=True),
        address=parse_text(address, "address"),
        client_id=client_id,
    )


def list_vehicles(client_id: int | None = None) -> list[Vehicle]:
    if client_id is None:
        return resource_store.list_all(Vehicle, order_by=Vehicle.name.asc())
    return resource_store.list_all(Vehicle, order_by=Vehicle.name.asc(), client_id=client_id)


# --- barracks and items ---------------------------------------------------

def create_barracks(*, name, location=None, description=None) -> Barracks:
    return resource_store.create(
        Barracks,
        name=parse_text(name, "name", required=True),
        location=parse_text(location, "location"),
        description=parse_text(description, "description", max_length=1000),
    )


def create_item(*, name, description=None, unit="L") -> Item:
    return resource_store.create(
        Item,
        name=parse_text(name, "name", required=True),
        description=parse_text(description, "description", max_length=1000),
        unit=parse_text(unit, "unit", max_length=16) or "L",
    )


# --- client money ---------------------------------------------------------

def post_client_entry(
    client_id: int,
    amount_in=0,
    amount_out=0,
    date=None,
    reference: str | None = None,
    *,
    description: str | None = None,
    actor_user_id: int | None = None,
) -> LedgerEntry:
    """
    Manual client ledger entry (payment received, credit note, correction).

    Exactly one of amount_in / amount_out is normally set; both may be given
    for a combined adjustment. Posted as its own unit of work.
    """
    amount_in = parse_amount(amount_in or 0, "amount_in")
    amount_out = parse_amount(amount_out or 0, "amount_out")
    if amount_in == 0 and amount_out == 0:
        raise ValidationError("Either amount_in or amount_out must be greater than zero")

    return ledger_service.post_movement(
        OwnerKey.client(client_id),
        amount_in=amount_in,
        amount_out=amount_out,
        occurred_at=date,
        description=parse_text(description, "description", max_length=1000) or "Manual client entry",
        reference=parse_text(reference, "reference"),
        actor_user_id=actor_user_id,
    )


def get_client_balance(client_id: int) -> dict:
    client = get_client(client_id)
    balance = ledger_service.resolve_balance(OwnerKey.client(client_id))
    return {
        "client_id": client.id,
        "client_name": client.name,
        "balance": float(balance),
        "outstanding": float(max(ZERO, balance)),
    }


def client_ledger(client_id: int, *, page: int = 1, limit: int = 50) -> dict:
    get_client(client_id)
    return ledger_service.list_entries(OwnerKey.client(client_id), page=page, limit=limit)
