# Overview: Flask API routes for stations, station stock and price windows.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, with_actor
from ..services import accounts_service, inventory_service, pricing_service, resource_store
from ..validation import parse_page, require_fields


stations_bp = Blueprint("stations", __name__, url_prefix="/api/stations")


@stations_bp.get("")
@handle_service_errors
def list_stations():
    stations = accounts_service.list_stations()
    return jsonify([s.to_dict() for s in stations]), 200


@stations_bp.post("")
@with_actor
@handle_service_errors
def create_station():
    data = require_fields(request.get_json(silent=True), "name")
    station = accounts_service.create_station(
        name=data.get("name"),
        address=data.get("address"),
        phone=data.get("phone"),
        email=data.get("email"),
    )
    return jsonify(station.to_dict()), 201


@stations_bp.get("/<int:station_id>")
@handle_service_errors
def get_station(station_id: int):
    return jsonify(accounts_service.get_station(station_id).to_dict()), 200


# --- stock ----------------------------------------------------------------

@stations_bp.get("/<int:station_id>/stock")
@handle_service_errors
def get_station_stock(station_id: int):
    return jsonify(inventory_service.get_station_stock(station_id)), 200


@stations_bp.post("/<int:station_id>/stock")
@with_actor
@handle_service_errors
def replenish_station_stock(station_id: int):
    """
    Receive fuel into a station.

    Request body:
    {
        "quantity": number,
        "date": "YYYY-MM-DD" (optional, default now),
        "description": str (optional)
    }
    """
    data = require_fields(request.get_json(silent=True), "quantity")
    entry = inventory_service.replenish_station_stock(
        station_id,
        data.get("quantity"),
        data.get("date"),
        data.get("description"),
        actor_user_id=g.user_id,
    )
    return jsonify({
        "entry": entry.to_dict(),
        "stock": inventory_service.get_station_stock(station_id),
    }), 201


@stations_bp.get("/<int:station_id>/stock/ledger")
@handle_service_errors
def get_station_stock_ledger(station_id: int):
    page, limit = parse_page(request.args.get("page"), request.args.get("limit"))
    result = inventory_service.station_stock_ledger(station_id, page=page, limit=limit)
    body = resource_store.serialize_page(result, key="entries")
    body["station_id"] = station_id
    body["current_balance"] = inventory_service.get_station_stock(station_id)["quantity"]
    return jsonify(body), 200


# --- price windows --------------------------------------------------------

def _price_payload(station_id: int) -> float | None:
    price = pricing_service.get_effective_price(station_id)
    return float(price) if price is not None else None


@stations_bp.get("/<int:station_id>/price-windows")
@handle_service_errors
def list_price_windows(station_id: int):
    windows = pricing_service.list_price_windows(station_id)
    return jsonify({
        "station_id": station_id,
        "current_fuel_price": _price_payload(station_id),
        "price_windows": [w.to_dict() for w in windows],
    }), 200


@stations_bp.post("/<int:station_id>/price-windows")
@with_actor
@handle_service_errors
def create_price_window(station_id: int):
    """
    Add a price window and recompute the station's effective price.

    Request body:
    {
        "price": number,
        "start_date": "YYYY-MM-DD[ HH:MM:SS]",
        "end_date": "YYYY-MM-DD[ HH:MM:SS]" (optional, open-ended when omitted)
    }
    """
    data = require_fields(request.get_json(silent=True), "price", "start_date")
    window = pricing_service.create_price_window(
        station_id,
        data.get("price"),
        data.get("start_date"),
        data.get("end_date"),
        actor_user_id=g.user_id,
    )
    return jsonify({
        "price_window": window.to_dict(),
        "current_fuel_price": _price_payload(station_id),
    }), 201


@stations_bp.put("/<int:station_id>/price-windows/<int:window_id>")
@with_actor
@handle_service_errors
def update_price_window(station_id: int, window_id: int):
    data = require_fields(request.get_json(silent=True))
    changes = {k: data[k] for k in ("price", "start_date", "end_date") if k in data}
    window = pricing_service.update_price_window(station_id, window_id, **changes)
    return jsonify({
        "price_window": window.to_dict(),
        "current_fuel_price": _price_payload(station_id),
    }), 200


@stations_bp.delete("/<int:station_id>/price-windows/<int:window_id>")
@with_actor
@handle_service_errors
def delete_price_window(station_id: int, window_id: int):
    price = pricing_service.delete_price_window(station_id, window_id)
    return jsonify({
        "deleted": window_id,
        "current_fuel_price": float(price) if price is not None else None,
    }), 200

