"""
Ledger mutation engine and balance resolver tests.

Covers the running-balance invariant, preconditions, clamping, owner
checks, backdating and append-only history.
"""

from decimal import Decimal

import pytest

from fuelops.errors import InsufficientBalance, OwnerNotFound, PreconditionFailed, ValidationError
from fuelops.extensions import db
from fuelops.models import BalanceAccount, ImmutableRecordError, LedgerEntry
from fuelops.services import ledger_service
from fuelops.services.ledger_service import OwnerKey, sufficient_balance


def _entries(key):
    return (
        db.session.query(LedgerEntry)
        .filter_by(domain=key.domain, owner_id=key.owner_id, item_id=key.item_key)
        .order_by(LedgerEntry.occurred_at.asc(), LedgerEntry.id.asc())
        .all()
    )


class TestOwnerKey:
    def test_factories(self):
        assert OwnerKey.station_stock(3) == OwnerKey("station_stock", 3)
        assert OwnerKey.client(4).item_key == 0
        assert OwnerKey.barrack_stock(1, 2).item_id == 2
        assert OwnerKey.barrack_stock(1, 2).is_stock
        assert not OwnerKey.client(1).is_stock

    def test_rejects_unknown_domain(self):
        with pytest.raises(ValidationError):
            OwnerKey("petty_cash", 1)

    def test_barrack_stock_requires_item(self):
        with pytest.raises(ValidationError):
            OwnerKey("barrack_stock", 1)


class TestResolveBalance:
    def test_zero_without_history(self, station):
        assert ledger_service.resolve_balance(OwnerKey.station_stock(station.id)) == Decimal("0.00")

    def test_latest_by_business_time_then_id(self, station):
        key = OwnerKey.station_stock(station.id)
        ledger_service.post_movement(key, amount_in=100, occurred_at="2024-01-01")
        ledger_service.post_movement(key, amount_in=50, occurred_at="2024-01-02")
        ledger_service.post_movement(key, amount_out=30, occurred_at="2024-01-02")

        assert ledger_service.resolve_balance(key) == Decimal("120.00")


class TestApplyMovement:
    def test_balance_invariant_over_sequence(self, station):
        key = OwnerKey.station_stock(station.id)
        moves = [(500, 0), (0, 120), (40, 0), (0, 20)]
        for i, (amount_in, amount_out) in enumerate(moves):
            ledger_service.post_movement(
                key, amount_in=amount_in, amount_out=amount_out, occurred_at=f"2024-01-0{i + 1}",
            )

        previous = Decimal("0")
        for entry in _entries(key):
            assert entry.balance == max(Decimal("0"), previous + entry.amount_in - entry.amount_out)
            previous = entry.balance

        account = ledger_service.get_account(key)
        assert account.balance == previous == Decimal("400.00")

    def test_stock_is_clamped_at_zero(self, station):
        key = OwnerKey.station_stock(station.id)
        ledger_service.post_movement(key, amount_in=10, occurred_at="2024-01-01")
        entry = ledger_service.post_movement(key, amount_out=25, occurred_at="2024-01-02")
        assert entry.balance == Decimal("0.00")

    def test_client_balance_is_not_clamped(self, fuel_client):
        key = OwnerKey.client(fuel_client.id)
        entry = ledger_service.post_movement(key, amount_in=75, occurred_at="2024-01-01")
        assert entry.balance == Decimal("-75.00")

    def test_client_charge_raises_balance(self, fuel_client):
        key = OwnerKey.client(fuel_client.id)
        ledger_service.post_movement(key, amount_out=40, occurred_at="2024-01-01")
        entry = ledger_service.post_movement(key, amount_out=60, occurred_at="2024-01-02")
        assert entry.balance == Decimal("100.00")
        entry = ledger_service.post_movement(key, amount_in=25, occurred_at="2024-01-03")
        assert entry.balance == Decimal("75.00")

    def test_failed_precondition_writes_nothing(self, station):
        key = OwnerKey.station_stock(station.id)
        ledger_service.post_movement(key, amount_in=20, occurred_at="2024-01-01")

        with pytest.raises(InsufficientBalance) as exc:
            ledger_service.post_movement(
                key, amount_out=30, occurred_at="2024-01-02", precondition=sufficient_balance(30),
            )
        assert exc.value.details["available"] == 20.0
        assert len(_entries(key)) == 1
        assert ledger_service.resolve_balance(key) == Decimal("20.00")

    def test_negative_amount_rejected(self, station):
        with pytest.raises(ValidationError):
            ledger_service.post_movement(OwnerKey.station_stock(station.id), amount_in=-5)
        assert db.session.query(LedgerEntry).count() == 0

    def test_zero_movement_rejected(self, station):
        with pytest.raises(ValidationError):
            ledger_service.post_movement(OwnerKey.station_stock(station.id))

    def test_unknown_owner(self, db_session):
        with pytest.raises(OwnerNotFound):
            ledger_service.post_movement(OwnerKey.station_stock(999), amount_in=5)
        assert db.session.query(BalanceAccount).count() == 0

    def test_earlier_day_is_rejected(self, station):
        key = OwnerKey.station_stock(station.id)
        ledger_service.post_movement(key, amount_in=10, occurred_at="2024-03-01")
        with pytest.raises(PreconditionFailed):
            ledger_service.post_movement(key, amount_in=10, occurred_at="2024-02-28")

    def test_same_day_earlier_time_follows_latest(self, station):
        key = OwnerKey.station_stock(station.id)
        ledger_service.post_movement(key, amount_in=10, occurred_at="2024-03-01 15:00:00")
        entry = ledger_service.post_movement(key, amount_in=5, occurred_at="2024-03-01")

        assert entry.occurred_at.hour == 15
        assert ledger_service.resolve_balance(key) == Decimal("15.00")

    def test_entries_are_immutable(self, station):
        entry = ledger_service.post_movement(
            OwnerKey.station_stock(station.id), amount_in=10, occurred_at="2024-01-01",
        )
        entry.description = "rewritten"
        with pytest.raises(ImmutableRecordError):
            db.session.flush()
        db.session.rollback()

        db.session.delete(db.session.get(LedgerEntry, entry.id))
        with pytest.raises(ImmutableRecordError):
            db.session.flush()
        db.session.rollback()


def test_list_entries_newest_first(station):
    key = OwnerKey.station_stock(station.id)
    for day in range(1, 6):
        ledger_service.post_movement(key, amount_in=day, occurred_at=f"2024-01-0{day}")

    page = ledger_service.list_entries(key, page=1, limit=2)
    assert page["total"] == 5
    assert page["total_pages"] == 3
    assert [e.amount_in for e in page["items"]] == [Decimal("5.00"), Decimal("4.00")]
