# backend/fuelops/routes/transfers.py
"""
Inter-barracks stock transfer API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import handle_service_errors, with_actor
from ..services import accounts_service, inventory_service, resource_store, transfer_service
from ..validation import parse_id, parse_page, require_fields


transfers_bp = Blueprint("stock_transfers", __name__, url_prefix="/api/stock-transfers")


@transfers_bp.get("")
@handle_service_errors
def list_transfers():
    transfers = transfer_service.list_transfers(request.args.get("status") or None)
    return jsonify([t.to_dict() for t in transfers]), 200


@transfers_bp.post("")
@with_actor
@handle_service_errors
def create_transfer():
    """
    Request a transfer between two barracks.

    Request body:
    {
        "from_barracks_id": int,
        "to_barracks_id": int,
        "item_id": int,
        "quantity": number,
        "comment": str (optional)
    }

    Returns:
        201: Transfer created (pending)
        400: Invalid request
        404: Barracks or item not found
        409: Source stock below quantity
    """
    data = require_fields(
        request.get_json(silent=True),
        "from_barracks_id", "to_barracks_id", "item_id", "quantity",
    )
    transfer = transfer_service.create_transfer(
        from_barracks_id=data.get("from_barracks_id"),
        to_barracks_id=data.get("to_barracks_id"),
        item_id=data.get("item_id"),
        quantity=data.get("quantity"),
        comment=data.get("comment"),
        user_id=g.user_id,
    )
    return jsonify(transfer.to_dict()), 201


@transfers_bp.get("/<int:transfer_id>")
@handle_service_errors
def get_transfer(transfer_id: int):
    return jsonify(transfer_service.get_transfer(transfer_id).to_dict()), 200


@transfers_bp.get("/status/<status>")
@handle_service_errors
def list_transfers_by_status(status: str):
    transfers = transfer_service.list_transfers(status)
    return jsonify([t.to_dict() for t in transfers]), 200


@transfers_bp.post("/<int:transfer_id>/approve")
@with_actor
@handle_service_errors
def approve_transfer(transfer_id: int):
    """
    Approve a pending transfer.

    Returns:
        200: Transfer approved, stock moved
        404: Transfer not found
        409: Transfer not pending, or source stock insufficient
    """
    transfer = transfer_service.approve_transfer(transfer_id, g.user_id)
    return jsonify(transfer.to_dict()), 200


@transfers_bp.post("/<int:transfer_id>/reject")
@with_actor
@handle_service_errors
def reject_transfer(transfer_id: int):
    data = request.get_json(silent=True) or {}
    comment = data.get("comment") if isinstance(data, dict) else None
    transfer = transfer_service.reject_transfer(transfer_id, g.user_id, comment)
    return jsonify(transfer.to_dict()), 200


@transfers_bp.get("/ledger/<int:barracks_id>")
@handle_service_errors
def barracks_ledger(barracks_id: int):
    page, limit = parse_page(request.args.get("page"), request.args.get("limit"))
    result = inventory_service.barracks_stock_ledger(
        barracks_id,
        item_id=parse_id(request.args.get("item_id"), "item_id", required=False),
        page=page,
        limit=limit,
    )
    body = resource_store.serialize_page(result, key="entries")
    body["barracks_id"] = barracks_id
    return jsonify(body), 200


@transfers_bp.get("/stock/all")
@handle_service_errors
def all_barrack_stock():
    return jsonify(inventory_service.all_barrack_stock()), 200


@transfers_bp.get("/barracks")
@handle_service_errors
def list_barracks():
    return jsonify([b.to_dict() for b in inventory_service.list_barracks()]), 200


@transfers_bp.post("/barracks")
@with_actor
@handle_service_errors
def create_barracks():
    data = require_fields(request.get_json(silent=True), "name")
    barracks = accounts_service.create_barracks(
        name=data.get("name"),
        location=data.get("location"),
        description=data.get("description"),
    )
    return jsonify(barracks.to_dict()), 201


@transfers_bp.get("/items")
@handle_service_errors
def list_items():
    return jsonify([i.to_dict() for i in inventory_service.list_items()]), 200


@transfers_bp.post("/barracks/<int:barracks_id>/stock")
@with_actor
@handle_service_errors
def receive_barrack_stock(barracks_id: int):
    """Receive an item into a barracks (opening stock or delivery)."""
    data = require_fields(request.get_json(silent=True), "item_id", "quantity")
    entry = inventory_service.receive_barrack_stock(
        barracks_id,
        parse_id(data.get("item_id"), "item_id"),
        data.get("quantity"),
        data.get("date"),
        data.get("description"),
        actor_user_id=g.user_id,
    )
    return jsonify(entry.to_dict()), 201
