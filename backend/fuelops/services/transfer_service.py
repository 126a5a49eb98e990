# backend/fuelops/services/transfer_service.py
"""
Inter-barracks stock transfer service.

LIFECYCLE:
1. pending: requested; source stock checked once (advisory, nothing reserved)
2. approved: source debited, destination credited, two ledger entries
3. rejected: closed without touching stock

approved and rejected are terminal. Approval re-checks source stock under the
account lock, so two approvals drawing on the same stock cannot both pass.
"""
from __future__ import annotations

from flask import current_app

from ..errors import InsufficientBalance, NotFound, PreconditionFailed, ValidationError
from ..extensions import db
from ..models import Barracks, Item, StockTransfer
from ..time_utils import business_now
from ..validation import parse_amount, parse_date, parse_id, parse_text
from . import inventory_service, ledger_service, resource_store
from .concurrency import lock_for_update, run_in_transaction
from .ledger_service import OwnerKey, sufficient_balance


TRANSFER_STATUS_PENDING = "pending"
TRANSFER_STATUS_APPROVED = "approved"
TRANSFER_STATUS_REJECTED = "rejected"

TRANSFER_STATUSES = (TRANSFER_STATUS_PENDING, TRANSFER_STATUS_APPROVED, TRANSFER_STATUS_REJECTED)


def create_transfer(
    *,
    from_barracks_id,
    to_barracks_id,
    item_id,
    quantity,
    user_id: int,
    comment: str | None = None,
    request_date=None,
) -> StockTransfer:
    """
    Create a pending transfer request.

    Raises:
        ValidationError: bad ids/quantity or same source and destination
        NotFound: barracks or item missing
        InsufficientBalance: source stock is already below the quantity
    """
    from_id = parse_id(from_barracks_id, "from_barracks_id")
    to_id = parse_id(to_barracks_id, "to_barracks_id")
    item_id = parse_id(item_id, "item_id")
    qty = parse_amount(quantity, "quantity", allow_zero=False)
    if from_id == to_id:
        raise ValidationError("Source and destination barracks must be different")

    resource_store.require(Barracks, from_id, "Barracks")
    resource_store.require(Barracks, to_id, "Barracks")
    resource_store.require(Item, item_id, "Item")

    available = inventory_service.get_barrack_stock(from_id, item_id)
    if available < qty:
        raise InsufficientBalance(
            f"Insufficient stock in source barracks: available {available}, requested {qty}",
            details={"available": float(available), "requested": float(qty)},
        )

    def _op():
        transfer = StockTransfer(
            from_barracks_id=from_id,
            to_barracks_id=to_id,
            item_id=item_id,
            quantity=qty,
            status=TRANSFER_STATUS_PENDING,
            comment=parse_text(comment, "comment", max_length=1000),
            requested_by=user_id,
            request_date=parse_date(request_date, "request_date", required=False) or business_now(),
        )
        db.session.add(transfer)
        db.session.flush()
        return transfer

    transfer = run_in_transaction(_op)
    current_app.logger.info(
        "transfer %s requested %s -> %s item=%s qty=%s",
        transfer.id, from_id, to_id, item_id, qty,
    )
    return transfer


def _lock_pending(transfer_id: int) -> StockTransfer:
    q = db.session.query(StockTransfer).filter(StockTransfer.id == transfer_id)
    transfer = lock_for_update(q).first()
    if transfer is None:
        raise NotFound(f"Transfer {transfer_id} not found", details={"entity": "StockTransfer", "id": transfer_id})
    if transfer.status != TRANSFER_STATUS_PENDING:
        raise PreconditionFailed(
            f"Transfer {transfer_id} is already {transfer.status}",
            details={"status": transfer.status},
        )
    return transfer


def approve_transfer(transfer_id: int, user_id: int) -> StockTransfer:
    """
    Approve a pending transfer: debit source, credit destination.

    Raises:
        NotFound: unknown transfer
        PreconditionFailed: transfer not pending
        InsufficientBalance: source stock no longer covers the quantity
    """
    def _op():
        transfer = _lock_pending(transfer_id)
        qty = transfer.quantity
        source = OwnerKey.barrack_stock(transfer.from_barracks_id, transfer.item_id)
        dest = OwnerKey.barrack_stock(transfer.to_barracks_id, transfer.item_id)
        ledger_service.lock_accounts(source, dest)
        now = ledger_service.effective_time((source, dest))

        ledger_service.apply_movement(
            source,
            amount_out=qty,
            occurred_at=now,
            description=f"Transfer #{transfer.id} out",
            precondition=sufficient_balance(qty),
            actor_user_id=user_id,
            transfer_id=transfer.id,
        )
        ledger_service.apply_movement(
            dest,
            amount_in=qty,
            occurred_at=now,
            description=f"Transfer #{transfer.id} in",
            actor_user_id=user_id,
            transfer_id=transfer.id,
        )

        transfer.status = TRANSFER_STATUS_APPROVED
        transfer.approved_by = user_id
        transfer.approval_date = now
        db.session.flush()
        return transfer

    transfer = run_in_transaction(_op)
    current_app.logger.info("transfer %s approved by %s", transfer_id, user_id)
    return transfer


def reject_transfer(transfer_id: int, user_id: int, comment: str | None = None) -> StockTransfer:
    """Reject a pending transfer. No stock moves."""
    comment = parse_text(comment, "comment", max_length=1000)

    def _op():
        transfer = _lock_pending(transfer_id)
        transfer.status = TRANSFER_STATUS_REJECTED
        transfer.approved_by = user_id
        transfer.approval_date = business_now()
        if comment:
            transfer.comment = comment
        db.session.flush()
        return transfer

    transfer = run_in_transaction(_op)
    current_app.logger.info("transfer %s rejected by %s", transfer_id, user_id)
    return transfer


def get_transfer(transfer_id: int) -> StockTransfer:
    return resource_store.require(StockTransfer, transfer_id, "Transfer")


def list_transfers(status: str | None = None) -> list[StockTransfer]:
    q = db.session.query(StockTransfer)
    if status is not None:
        if status not in TRANSFER_STATUSES:
            raise ValidationError(f"Invalid status: {status}", details={"allowed": list(TRANSFER_STATUSES)})
        q = q.filter(StockTransfer.status == status)
    return q.order_by(StockTransfer.created_at.desc(), StockTransfer.id.desc()).all()
