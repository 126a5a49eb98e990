"""
Sale posting tests: the two-leg transaction, its preconditions, and
rollback when a leg fails.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from fuelops.errors import InsufficientBalance, NotFound, PreconditionFailed, ValidationError
from fuelops.extensions import db
from fuelops.models import LedgerEntry, Sale
from fuelops.services import accounts_service, inventory_service, ledger_service, sales_service
from fuelops.services.ledger_service import OwnerKey


def _sale(station, fuel_client, vehicle, **overrides):
    fields = dict(
        station_id=station.id,
        vehicle_id=vehicle.id,
        client_id=fuel_client.id,
        quantity=100,
        unit_price=10,
    )
    fields.update(overrides)
    return sales_service.post_sale(**fields)


def test_sale_debits_stock_and_charges_client(stocked_station, fuel_client, vehicle):
    sale = _sale(stocked_station, fuel_client, vehicle)

    assert sale.total_price == Decimal("1000.00")
    assert ledger_service.resolve_balance(OwnerKey.station_stock(stocked_station.id)) == Decimal("400.00")
    assert ledger_service.resolve_balance(OwnerKey.client(fuel_client.id)) == Decimal("1000.00")

    entries = db.session.query(LedgerEntry).filter_by(sale_id=sale.id).all()
    assert len(entries) == 2
    stock_leg = next(e for e in entries if e.domain == "station_stock")
    client_leg = next(e for e in entries if e.domain == "client")
    assert stock_leg.amount_out == Decimal("100.00")
    assert client_leg.amount_out == Decimal("1000.00")
    assert client_leg.reference == f"SALE-{sale.id}"


def test_insufficient_stock_rejected_without_writes(stocked_station, fuel_client, vehicle):
    with pytest.raises(InsufficientBalance):
        _sale(stocked_station, fuel_client, vehicle, quantity=600)

    assert db.session.query(Sale).count() == 0
    assert db.session.query(LedgerEntry).filter(LedgerEntry.sale_id.isnot(None)).count() == 0
    assert ledger_service.resolve_balance(OwnerKey.station_stock(stocked_station.id)) == Decimal("500.00")


def test_failure_between_legs_rolls_back_everything(stocked_station, fuel_client, vehicle, monkeypatch):
    real_apply = ledger_service.apply_movement
    calls = []

    def failing_apply(owner_key, **kwargs):
        calls.append(owner_key)
        if owner_key.domain == "client":
            raise RuntimeError("injected failure")
        return real_apply(owner_key, **kwargs)

    monkeypatch.setattr(ledger_service, "apply_movement", failing_apply)

    with pytest.raises(RuntimeError):
        _sale(stocked_station, fuel_client, vehicle)

    assert len(calls) == 2
    assert db.session.query(Sale).count() == 0
    assert ledger_service.resolve_balance(OwnerKey.station_stock(stocked_station.id)) == Decimal("500.00")
    assert ledger_service.get_account(OwnerKey.client(fuel_client.id)) is None
    assert db.session.query(LedgerEntry).count() == 1  # only the opening stock entry


def test_unit_price_must_match_current_price(stocked_station, fuel_client, vehicle):
    with pytest.raises(PreconditionFailed):
        _sale(stocked_station, fuel_client, vehicle, unit_price="10.50")

    # within tolerance
    sale = _sale(stocked_station, fuel_client, vehicle, quantity=1, unit_price="10.01")
    assert sale.unit_price == Decimal("10.01")


def test_station_without_price_cannot_sell(station, fuel_client, vehicle):
    with pytest.raises(PreconditionFailed):
        _sale(station, fuel_client, vehicle)


def test_total_price_defaults_and_is_checked(stocked_station, fuel_client, vehicle):
    sale = _sale(stocked_station, fuel_client, vehicle, quantity="12.345", unit_price=10)
    assert sale.quantity == Decimal("12.35")
    assert sale.total_price == Decimal("123.50")

    with pytest.raises(ValidationError):
        _sale(stocked_station, fuel_client, vehicle, quantity=10, total_price=120)

    ok = _sale(stocked_station, fuel_client, vehicle, quantity=10, total_price="100.01")
    assert ok.total_price == Decimal("100.01")


def test_missing_references(stocked_station, fuel_client, vehicle):
    with pytest.raises(NotFound):
        _sale(stocked_station, fuel_client, vehicle, vehicle_id=9999)
    with pytest.raises(NotFound):
        _sale(stocked_station, fuel_client, vehicle, client_id=9999)
    assert db.session.query(Sale).count() == 0


def test_invalid_quantity(stocked_station, fuel_client, vehicle):
    for bad in (0, -1, "abc", None):
        with pytest.raises(ValidationError):
            _sale(stocked_station, fuel_client, vehicle, quantity=bad)


def test_sales_are_immutable(stocked_station, fuel_client, vehicle):
    from fuelops.models import ImmutableRecordError

    sale = _sale(stocked_station, fuel_client, vehicle)
    sale.quantity = Decimal("1")
    with pytest.raises(ImmutableRecordError):
        db.session.flush()
    db.session.rollback()


def test_sale_adds_total_to_existing_client_balance(stocked_station, fuel_client, vehicle):
    accounts_service.post_client_entry(fuel_client.id, amount_out=250, date="2024-01-05", reference="INV-0")
    before = ledger_service.resolve_balance(OwnerKey.client(fuel_client.id))

    sale = _sale(stocked_station, fuel_client, vehicle)

    after = ledger_service.resolve_balance(OwnerKey.client(fuel_client.id))
    assert after - before == sale.total_price == Decimal("1000.00")
    assert accounts_service.get_client_balance(fuel_client.id)["outstanding"] == 1250.0


def test_same_day_earlier_sale_shares_ledger_timestamp(stocked_station, fuel_client, vehicle):
    inventory_service.replenish_station_stock(stocked_station.id, 100, "2024-03-01 15:00:00")

    sale = _sale(stocked_station, fuel_client, vehicle, sale_date="2024-03-01 09:30:00")

    legs = db.session.query(LedgerEntry).filter_by(sale_id=sale.id).all()
    assert len(legs) == 2
    assert sale.sale_date == datetime(2024, 3, 1, 15, 0, 0)
    assert {e.occurred_at for e in legs} == {sale.sale_date}


def test_sale_before_latest_stock_day_is_rejected(stocked_station, fuel_client, vehicle):
    with pytest.raises(PreconditionFailed):
        _sale(stocked_station, fuel_client, vehicle, sale_date="2024-01-09")
    assert db.session.query(Sale).count() == 0
