"""
Concurrency tests against a file-backed SQLite database.

Two threads race on the same owner key; the write transaction serializes
them so at most one can spend the shared stock.
"""

import threading
from decimal import Decimal

import pytest

from fuelops import create_app
from fuelops.errors import ConcurrencyConflict, InsufficientBalance, ServiceError
from fuelops.extensions import db
from fuelops.models import Sale
from fuelops.services import accounts_service, inventory_service, ledger_service, pricing_service
from fuelops.services import sales_service, transfer_service
from fuelops.services.ledger_service import OwnerKey


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
        'AUTO_CREATE_SCHEMA': True,
        'CONCURRENCY_RETRY_ATTEMPTS': 3,
    })
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _race(app, func, workers=2):
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def run():
        with app.app_context():
            barrier.wait()
            try:
                result = ("ok", func())
            except ServiceError as exc:
                result = ("error", exc)
            with lock:
                outcomes.append(result)

    threads = [threading.Thread(target=run) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


def test_two_sales_cannot_spend_the_same_stock(file_app):
    with file_app.app_context():
        station = accounts_service.create_station(name="Race Station")
        client = accounts_service.create_client(name="Race Client")
        vehicle = accounts_service.create_vehicle(name="Race Truck", client_id=client.id)
        pricing_service.create_price_window(station.id, 10, "2024-01-01")
        inventory_service.replenish_station_stock(station.id, 100, "2024-01-10")
        station_id, client_id, vehicle_id = station.id, client.id, vehicle.id

    def sell():
        return sales_service.post_sale(
            station_id=station_id,
            vehicle_id=vehicle_id,
            client_id=client_id,
            quantity=60,
            unit_price=10,
        ).id

    outcomes = _race(file_app, sell)

    assert len(outcomes) == 2
    assert [kind for kind, _ in outcomes].count("ok") == 1
    failure = next(value for kind, value in outcomes if kind == "error")
    assert isinstance(failure, (InsufficientBalance, ConcurrencyConflict))

    with file_app.app_context():
        assert db.session.query(Sale).count() == 1
        assert ledger_service.resolve_balance(OwnerKey.station_stock(station_id)) == Decimal("40.00")
        assert ledger_service.resolve_balance(OwnerKey.client(client_id)) == Decimal("600.00")


def test_two_approvals_cannot_spend_the_same_stock(file_app):
    with file_app.app_context():
        source = accounts_service.create_barracks(name="Source")
        dest = accounts_service.create_barracks(name="Dest")
        item = accounts_service.create_item(name="Diesel")
        inventory_service.receive_barrack_stock(source.id, item.id, 100, "2024-01-01")
        transfer_ids = [
            transfer_service.create_transfer(
                from_barracks_id=source.id,
                to_barracks_id=dest.id,
                item_id=item.id,
                quantity=60,
                user_id=1,
            ).id
            for _ in range(2)
        ]
        source_id, dest_id, item_id = source.id, dest.id, item.id

    pending = list(transfer_ids)
    pick = threading.Lock()

    def approve():
        with pick:
            transfer_id = pending.pop()
        return transfer_service.approve_transfer(transfer_id, 2).id

    outcomes = _race(file_app, approve)

    assert [kind for kind, _ in outcomes].count("ok") == 1
    with file_app.app_context():
        assert inventory_service.get_barrack_stock(source_id, item_id) == Decimal("40.00")
        assert inventory_service.get_barrack_stock(dest_id, item_id) == Decimal("60.00")
        statuses = sorted(transfer_service.get_transfer(t).status for t in transfer_ids)
        assert statuses == ["approved", "pending"]
