"""
Pytest fixtures for the fuel ledger backend tests.

Provides an in-memory application, a per-test clean database, a test
client, and small factories for stations, clients, vehicles, barracks and
items.
"""

import pytest

from fuelops import create_app
from fuelops.extensions import db
from fuelops.services import accounts_service, inventory_service, pricing_service


TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'AUTO_CREATE_SCHEMA': False,
    'BUSINESS_TZ_OFFSET_MINUTES': 180,
    'PRICE_WINDOW_ENFORCE_END_DATE': True,
    'DEFAULT_USER_ID': 1,
    'CONCURRENCY_RETRY_ATTEMPTS': 3,
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.config['PRICE_WINDOW_ENFORCE_END_DATE'] = True

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture
def station(db_session):
    return accounts_service.create_station(name="Station A", address="Main Road")


@pytest.fixture
def fuel_client(db_session):
    return accounts_service.create_client(name="Fleet Co", email="fleet@example.com")


@pytest.fixture
def vehicle(db_session, fuel_client):
    return accounts_service.create_vehicle(name="Truck 1", client_id=fuel_client.id)


@pytest.fixture
def priced_station(station):
    """Station with an open-ended price of 10.00 since 2024-01-01."""
    pricing_service.create_price_window(station.id, 10, "2024-01-01")
    return station


@pytest.fixture
def stocked_station(priced_station):
    """Priced station holding 500 L."""
    inventory_service.replenish_station_stock(priced_station.id, 500, "2024-01-10", "Opening stock")
    return priced_station


@pytest.fixture
def barracks_pair(db_session):
    a = accounts_service.create_barracks(name="Main Warehouse", location="Central")
    b = accounts_service.create_barracks(name="North Depot", location="North")
    return a, b


@pytest.fixture
def diesel(db_session):
    return accounts_service.create_item(name="Diesel", description="Automotive diesel fuel", unit="L")
