# backend/fuelops/routes/sales.py
"""
Sales API: posting credit sales and sales reports.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, with_actor
from ..services import reporting_service, resource_store, sales_service
from ..validation import parse_id, parse_page, require_fields


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _filters() -> dict:
    args = request.args
    return {
        "station_id": parse_id(args.get("station_id"), "station_id", required=False),
        "client_id": parse_id(args.get("client_id"), "client_id", required=False),
        "vehicle_id": parse_id(args.get("vehicle_id"), "vehicle_id", required=False),
    }


@sales_bp.post("")
@with_actor
@handle_service_errors
def create_sale():
    """
    Post a credit sale.

    Request body:
    {
        "station_id": int,
        "vehicle_id": int,
        "client_id": int,
        "quantity": number,
        "unit_price": number,
        "total_price": number (optional, defaults to quantity * unit_price),
        "sale_date": "YYYY-MM-DD[ HH:MM:SS]" (optional, default now)
    }

    Returns:
        201: Sale posted
        400: Invalid request
        404: Station, client or vehicle not found
        409: Price mismatch, insufficient stock, or concurrent update
    """
    data = require_fields(
        request.get_json(silent=True),
        "station_id", "vehicle_id", "client_id", "quantity", "unit_price",
    )
    sale = sales_service.post_sale(
        station_id=parse_id(data.get("station_id"), "station_id"),
        vehicle_id=parse_id(data.get("vehicle_id"), "vehicle_id"),
        client_id=parse_id(data.get("client_id"), "client_id"),
        quantity=data.get("quantity"),
        unit_price=data.get("unit_price"),
        total_price=data.get("total_price"),
        sale_date=data.get("sale_date"),
        actor_user_id=g.user_id,
    )
    return jsonify(sale.to_dict(expand=True)), 201


@sales_bp.get("")
@handle_service_errors
def list_sales():
    sales = reporting_service.list_sales(
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
        **_filters(),
    )
    return jsonify([s.to_dict(expand=True) for s in sales]), 200


@sales_bp.get("/<int:sale_id>")
@handle_service_errors
def get_sale(sale_id: int):
    return jsonify(sales_service.get_sale(sale_id).to_dict(expand=True)), 200


@sales_bp.get("/station/<int:station_id>")
@handle_service_errors
def sales_for_station(station_id: int):
    sales = reporting_service.sales_for_station(station_id)
    return jsonify([s.to_dict() for s in sales]), 200


@sales_bp.get("/client/<int:client_id>")
@handle_service_errors
def sales_for_client(client_id: int):
    page, limit = parse_page(request.args.get("page"), request.args.get("limit"), default_limit=10)
    result = reporting_service.sales_for_client(client_id, page=page, limit=limit)
    body = resource_store.serialize_page(result, key="sales")
    body["sales"] = [s.to_dict(expand=True) for s in result["items"]]
    return jsonify(body), 200


@sales_bp.get("/date/<day>")
@handle_service_errors
def sales_by_date(day: str):
    result = reporting_service.sales_by_date(day, **_filters())
    return jsonify({
        "sales": [s.to_dict(expand=True) for s in result["sales"]],
        "summary": result["summary"],
    }), 200


@sales_bp.get("/monthly")
@handle_service_errors
def monthly_sales():
    return jsonify(reporting_service.monthly_totals()), 200


@sales_bp.get("/daily-trend")
@handle_service_errors
def daily_sales_trend():
    trend = reporting_service.daily_sales_trend(
        request.args.get("start_date"),
        request.args.get("end_date"),
        station_id=parse_id(request.args.get("station_id"), "station_id", required=False),
    )
    return jsonify(trend), 200


@sales_bp.get("/summaries")
@handle_service_errors
def sales_summaries():
    year = parse_id(request.args.get("year"), "year", required=False)
    month = parse_id(request.args.get("month"), "month", required=False)
    rows = reporting_service.sales_summaries(year=year, month=month, **_filters())
    return jsonify(rows), 200
