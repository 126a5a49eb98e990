# Overview: Flask API routes for clients, their vehicles and client balance ledgers.

from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, with_actor
from ..services import accounts_service, resource_store
from ..validation import parse_page, require_fields


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@handle_service_errors
def list_clients():
    return jsonify([c.to_dict() for c in accounts_service.list_clients()]), 200


@clients_bp.post("")
@with_actor
@handle_service_errors
def create_client():
    data = require_fields(request.get_json(silent=True), "name")
    client = accounts_service.create_client(
        name=data.get("name"),
        email=data.get("email"),
        phone=data.get("phone"),
    )
    return jsonify(client.to_dict()), 201


@clients_bp.get("/<int:client_id>")
@handle_service_errors
def get_client(client_id: int):
    body = accounts_service.get_client(client_id).to_dict()
    body["balance"] = accounts_service.get_client_balance(client_id)["balance"]
    return jsonify(body), 200


@clients_bp.get("/<int:client_id>/balance")
@handle_service_errors
def get_client_balance(client_id: int):
    return jsonify(accounts_service.get_client_balance(client_id)), 200


@clients_bp.get("/<int:client_id>/ledger")
@handle_service_errors
def get_client_ledger(client_id: int):
    page, limit = parse_page(request.args.get("page"), request.args.get("limit"))
    result = accounts_service.client_ledger(client_id, page=page, limit=limit)
    body = resource_store.serialize_page(result, key="entries")
    body.update(accounts_service.get_client_balance(client_id))
    return jsonify(body), 200


@clients_bp.post("/<int:client_id>/ledger")
@with_actor
@handle_service_errors
def post_client_entry(client_id: int):
    """
    Manual client entry (payment, credit note, correction).

    Request body:
    {
        "amount_in": number (optional),
        "amount_out": number (optional),
        "date": "YYYY-MM-DD" (optional, default now),
        "reference": str (optional),
        "description": str (optional)
    }
    """
    data = require_fields(request.get_json(silent=True))
    entry = accounts_service.post_client_entry(
        client_id,
        data.get("amount_in"),
        data.get("amount_out"),
        data.get("date"),
        data.get("reference"),
        description=data.get("description"),
        actor_user_id=g.user_id,
    )
    return jsonify({
        "entry": entry.to_dict(),
        "balance": accounts_service.get_client_balance(client_id),
    }), 201


@clients_bp.get("/<int:client_id>/vehicles")
@handle_service_errors
def list_client_vehicles(client_id: int):
    accounts_service.get_client(client_id)
    return jsonify([v.to_dict() for v in accounts_service.list_vehicles(client_id)]), 200


@clients_bp.post("/<int:client_id>/vehicles")
@with_actor
@handle_service_errors
def create_client_vehicle(client_id: int):
    data = require_fields(request.get_json(silent=True), "name")
    vehicle = accounts_service.create_vehicle(
        name=data.get("name"),
        address=data.get("address"),
        client_id=client_id,
    )
    return jsonify(vehicle.to_dict()), 201
