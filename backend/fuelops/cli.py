# Overview: Flask CLI command groups for schema bootstrap, sample data and price maintenance.

# backend/fuelops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Prefer `flask db upgrade` in production.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Sample data:
# - python -m flask stock seed
#   Barracks, items, opening barracks stock (posted as ledger entries), and a
#   sample station, client and vehicle. Safe to re-run: existing names are skipped.
#
# Prices:
# - python -m flask prices recalc [--station-id 1]
#   Recompute current_fuel_price from price windows as of now.

import click
from flask.cli import with_appcontext

from .errors import ServiceError
from .extensions import db
from .models import Barracks, Client, Item, Station, Vehicle
from .services import accounts_service, inventory_service, pricing_service
from .services.ledger_service import OwnerKey, get_account


SAMPLE_BARRACKS = [
    ("Main Warehouse", "Nairobi Central", "Primary storage facility"),
    ("North Depot", "Thika", "Northern region storage"),
    ("South Depot", "Mombasa", "Coastal region storage"),
    ("West Depot", "Kisumu", "Western region storage"),
    ("East Depot", "Machakos", "Eastern region storage"),
]

SAMPLE_ITEMS = [
    ("Diesel", "Automotive diesel fuel", "L"),
    ("Petrol", "Automotive petrol fuel", "L"),
    ("Kerosene", "Domestic kerosene", "L"),
    ("Lubricating Oil", "Engine lubricating oil", "L"),
    ("Grease", "Industrial grease", "kg"),
    ("Filters", "Fuel and oil filters", "pcs"),
    ("Spark Plugs", "Automotive spark plugs", "pcs"),
]

# (barracks name, item name, opening quantity)
SAMPLE_STOCK = [
    ("Main Warehouse", "Diesel", 50000),
    ("Main Warehouse", "Petrol", 30000),
    ("Main Warehouse", "Kerosene", 10000),
    ("North Depot", "Diesel", 20000),
    ("North Depot", "Petrol", 15000),
    ("South Depot", "Diesel", 25000),
    ("South Depot", "Petrol", 20000),
    ("West Depot", "Diesel", 18000),
    ("East Depot", "Diesel", 22000),
]


@click.group('system')
def system_group():
    """Schema bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Schema is up to date")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('stock')
def stock_group():
    """Sample data and stock commands."""


@stock_group.command('seed')
@with_appcontext
def seed():
    """Load sample barracks, items, opening stock and one station/client/vehicle."""
    barracks = {}
    for name, location, description in SAMPLE_BARRACKS:
        existing = db.session.query(Barracks).filter_by(name=name).first()
        barracks[name] = existing or accounts_service.create_barracks(
            name=name, location=location, description=description,
        )
    click.echo(f"PASS Barracks: {len(barracks)}")

    items = {}
    for name, description, unit in SAMPLE_ITEMS:
        existing = db.session.query(Item).filter_by(name=name).first()
        items[name] = existing or accounts_service.create_item(
            name=name, description=description, unit=unit,
        )
    click.echo(f"PASS Items: {len(items)}")

    for barracks_name, item_name, quantity in SAMPLE_STOCK:
        b, i = barracks[barracks_name], items[item_name]
        if get_account(OwnerKey.barrack_stock(b.id, i.id)) is not None:
            click.echo(f"WARN  Stock for {barracks_name}/{item_name} already has history, skipping...")
            continue
        try:
            inventory_service.receive_barrack_stock(
                b.id, i.id, quantity, description="Opening stock",
            )
            click.echo(f"PASS Opening stock {barracks_name}/{item_name}: {quantity}")
        except ServiceError as e:
            click.echo(f"FAIL Could not post stock for {barracks_name}/{item_name}: {e}")

    if db.session.query(Station).count() == 0:
        station = accounts_service.create_station(name="Central Station", address="Main Road")
        click.echo(f"PASS Created station: {station.name} (ID: {station.id})")
    if db.session.query(Client).count() == 0:
        client = accounts_service.create_client(name="Sample Fleet Ltd", email="fleet@example.com")
        accounts_service.create_vehicle(name="Truck KAA 001A", client_id=client.id)
        click.echo(f"PASS Created client: {client.name} (ID: {client.id}) with 1 vehicle")
    elif db.session.query(Vehicle).count() == 0:
        click.echo("WARN  Clients exist but no vehicles; add one before posting sales")

    click.echo("DONE Sample data loaded")


@click.group('prices')
def prices_group():
    """Effective price maintenance."""


@prices_group.command('recalc')
@click.option('--station-id', type=int, default=None, help='Only this station')
@with_appcontext
def recalc(station_id):
    """Recompute current_fuel_price from price windows."""
    try:
        results = pricing_service.recalculate_all(station_id=station_id)
    except ServiceError as e:
        raise click.ClickException(str(e))
    for sid, price in results.items():
        click.echo(f"Station {sid}: {price if price is not None else 'no price'}")
    click.echo(f"DONE Recalculated {len(results)} station(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(prices_group)
