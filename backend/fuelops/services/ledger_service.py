# Overview: Balance resolution and the single mutation primitive for every balance-bearing owner.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from flask import current_app

from ..errors import InsufficientBalance, OwnerNotFound, PreconditionFailed, ValidationError
from ..extensions import db
from ..models import BalanceAccount, Barracks, Client, Item, LedgerEntry, Station
from ..time_utils import business_now, format_business
from ..validation import parse_amount, parse_date, to_decimal
from .concurrency import lock_for_update, run_in_transaction
from .resource_store import paginate
"""
Fuel Ledger Invariants (authoritative)

- Every balance change is one LedgerEntry plus one BalanceAccount update,
  written together by apply_movement() and never anywhere else.
- Stock domains (station_stock, barrack_stock): LedgerEntry.balance =
  previous + amount_in - amount_out, clamped at 0.
- Client money is a receivable: balance = previous + amount_out - amount_in,
  not clamped. amount_out is value supplied on credit (a sale charge),
  amount_in is money received. A positive balance is what the client owes;
  a negative one is credit held for the client.
- BalanceAccount.balance always equals the balance of the latest entry.
- "Latest" is (occurred_at DESC, id DESC). A movement dated on an earlier
  business day than the account's latest entry is rejected; a same-day
  movement with an earlier time is stamped at the latest entry's time so the
  chain order and id order agree.
- apply_movement() flushes but never commits. Flows compose one or more legs
  inside run_in_transaction() so all legs land or none do.
"""

STATION_STOCK = "station_stock"
CLIENT = "client"
BARRACK_STOCK = "barrack_stock"

STOCK_DOMAINS = frozenset({STATION_STOCK, BARRACK_STOCK})
DOMAINS = frozenset({STATION_STOCK, CLIENT, BARRACK_STOCK})

ZERO = Decimal("0.00")

Precondition = Callable[[Decimal], bool]


@dataclass(frozen=True)
class OwnerKey:
    """Identity of one balance: station stock, client money, or barracks stock of an item."""
    domain: str
    owner_id: int
    item_id: Optional[int] = None

    def __post_init__(self):
        if self.domain not in DOMAINS:
            raise ValidationError(f"Unknown balance domain: {self.domain}")
        if self.domain == BARRACK_STOCK and self.item_id is None:
            raise ValidationError("barrack_stock balances require an item_id")
        if self.domain != BARRACK_STOCK and self.item_id is not None:
            raise ValidationError(f"{self.domain} balances have no item dimension")

    @classmethod
    def station_stock(cls, station_id: int) -> "OwnerKey":
        return cls(STATION_STOCK, station_id)

    @classmethod
    def client(cls, client_id: int) -> "OwnerKey":
        return cls(CLIENT, client_id)

    @classmethod
    def barrack_stock(cls, barracks_id: int, item_id: int) -> "OwnerKey":
        return cls(BARRACK_STOCK, barracks_id, item_id)

    @property
    def is_stock(self) -> bool:
        return self.domain in STOCK_DOMAINS

    @property
    def item_key(self) -> int:
        # Column value: 0 stands for "no item dimension".
        return self.item_id or 0

    def __str__(self) -> str:
        if self.item_id is not None:
            return f"{self.domain}:{self.owner_id}:{self.item_id}"
        return f"{self.domain}:{self.owner_id}"


def balance_delta(owner_key: OwnerKey, amount_in: Decimal, amount_out: Decimal) -> Decimal:
    """Signed change one movement makes to the owner's balance."""
    if owner_key.domain == CLIENT:
        return amount_out - amount_in
    return amount_in - amount_out


def sufficient_balance(amount) -> Precondition:
    """Precondition: the current balance covers amount."""
    required = to_decimal(amount)
    return lambda current: current >= required


def _owner_filter(query, model, owner_key: OwnerKey):
    return query.filter(
        model.domain == owner_key.domain,
        model.owner_id == owner_key.owner_id,
        model.item_id == owner_key.item_key,
    )


def _latest_entry(owner_key: OwnerKey) -> LedgerEntry | None:
    q = _owner_filter(db.session.query(LedgerEntry), LedgerEntry, owner_key)
    return q.order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc()).first()


def resolve_balance(owner_key: OwnerKey) -> Decimal:
    """
    Current balance of an owner key: the balance of its most recent entry by
    business timestamp, ties broken by id. Zero when there is no history.

    Read-only; usable standalone or inside an open transaction.
    """
    entry = _latest_entry(owner_key)
    if entry is None:
        return ZERO
    return to_decimal(entry.balance)


def get_account(owner_key: OwnerKey) -> BalanceAccount | None:
    q = _owner_filter(db.session.query(BalanceAccount), BalanceAccount, owner_key)
    return q.first()


def owner_exists(owner_key: OwnerKey) -> bool:
    if owner_key.domain == STATION_STOCK:
        return db.session.get(Station, owner_key.owner_id) is not None
    if owner_key.domain == CLIENT:
        return db.session.get(Client, owner_key.owner_id) is not None
    return (
        db.session.get(Barracks, owner_key.owner_id) is not None
        and db.session.get(Item, owner_key.item_id) is not None
    )


def _require_owner(owner_key: OwnerKey) -> None:
    if not owner_exists(owner_key):
        raise OwnerNotFound(
            f"Owner not found for {owner_key}",
            details={"domain": owner_key.domain, "owner_id": owner_key.owner_id, "item_id": owner_key.item_id},
        )


def _lock_account(owner_key: OwnerKey) -> BalanceAccount:
    """Lock the owner's account row, creating it on first movement."""
    q = _owner_filter(db.session.query(BalanceAccount), BalanceAccount, owner_key)
    account = lock_for_update(q).first()
    if account is not None:
        return account

    # A concurrent first movement loses on the unique key and is retried.
    account = BalanceAccount(
        domain=owner_key.domain,
        owner_id=owner_key.owner_id,
        item_id=owner_key.item_key,
        balance=ZERO,
    )
    db.session.add(account)
    db.session.flush()
    return account


def _effective_time(owner_key: OwnerKey, occurred_at: datetime) -> datetime:
    latest = _latest_entry(owner_key)
    if latest is None or occurred_at >= latest.occurred_at:
        return occurred_at
    if occurred_at.date() == latest.occurred_at.date():
        return latest.occurred_at
    raise PreconditionFailed(
        f"Movement dated {format_business(occurred_at)} precedes the latest entry for {owner_key}",
        details={"occurred_at": format_business(occurred_at), "latest": format_business(latest.occurred_at)},
    )


def lock_accounts(*owner_keys: OwnerKey) -> dict[OwnerKey, BalanceAccount]:
    """
    Lock (or create) the accounts of a multi-leg flow in one global order.

    Keys are taken sorted by (domain, owner_id, item), so two flows touching
    the same pair of accounts in opposite directions wait instead of
    deadlocking. apply_movement() on an already locked key reuses the row.
    """
    accounts = {}
    for key in sorted(set(owner_keys), key=lambda k: (k.domain, k.owner_id, k.item_key)):
        _require_owner(key)
        accounts[key] = _lock_account(key)
    return accounts


def effective_time(owner_keys, occurred_at=None) -> datetime:
    """
    One business timestamp valid for every leg of a flow.

    Each key applies the backdating rule; the latest result wins, so all legs
    and the business record they belong to carry the same time. Call after
    lock_accounts() so no entry can land in between.
    """
    when = parse_date(occurred_at, "occurred_at", required=False) or business_now()
    return max(_effective_time(key, when) for key in owner_keys)


def apply_movement(
    owner_key: OwnerKey,
    *,
    amount_in=0,
    amount_out=0,
    occurred_at=None,
    description: str | None = None,
    precondition: Precondition | None = None,
    reference: str | None = None,
    actor_user_id: int | None = None,
    sale_id: int | None = None,
    transfer_id: int | None = None,
) -> LedgerEntry:
    """
    Apply one movement to one owner key inside the caller's transaction.

    Validates amounts, checks the owner exists, locks the account row,
    evaluates the precondition against the current balance, then writes the
    new balance and its ledger entry. Flushes; the caller commits.

    ValidationError and OwnerNotFound are raised before any row is touched;
    InsufficientBalance and PreconditionFailed leave only the flushed account
    row, which the enclosing rollback discards.
    """
    amount_in = parse_amount(amount_in, "amount_in")
    amount_out = parse_amount(amount_out, "amount_out")
    if amount_in == 0 and amount_out == 0:
        raise ValidationError("Movement must have a non-zero amount_in or amount_out")
    when = parse_date(occurred_at, "occurred_at", required=False) or business_now()

    _require_owner(owner_key)
    account = _lock_account(owner_key)
    when = _effective_time(owner_key, when)

    current = resolve_balance(owner_key)
    if precondition is not None and not precondition(current):
        raise InsufficientBalance(
            f"Insufficient balance for {owner_key}: available {current}, requested {amount_out}",
            details={"available": float(current), "requested": float(amount_out)},
        )

    new_balance = current + balance_delta(owner_key, amount_in, amount_out)
    if owner_key.is_stock and new_balance < 0:
        new_balance = ZERO

    account.balance = new_balance
    entry = LedgerEntry(
        account=account,
        domain=owner_key.domain,
        owner_id=owner_key.owner_id,
        item_id=owner_key.item_key,
        amount_in=amount_in,
        amount_out=amount_out,
        balance=new_balance,
        occurred_at=when,
        description=description,
        reference=reference,
        actor_user_id=actor_user_id,
        sale_id=sale_id,
        transfer_id=transfer_id,
    )
    db.session.add(entry)
    db.session.flush()

    current_app.logger.debug(
        "ledger movement %s in=%s out=%s balance=%s entry=%s",
        owner_key, amount_in, amount_out, new_balance, entry.id,
    )
    return entry


def post_movement(owner_key: OwnerKey, **kwargs) -> LedgerEntry:
    """One-leg unit of work: apply_movement() committed on its own."""
    entry = run_in_transaction(lambda: apply_movement(owner_key, **kwargs))
    current_app.logger.info(
        "posted movement %s entry=%s balance=%s", owner_key, entry.id, entry.balance,
    )
    return entry


def list_entries(owner_key: OwnerKey, *, page: int = 1, limit: int = 50) -> dict:
    """Entries for an owner key, newest first."""
    q = _owner_filter(db.session.query(LedgerEntry), LedgerEntry, owner_key)
    q = q.order_by(LedgerEntry.occurred_at.desc(), LedgerEntry.id.desc())
    return paginate(q, page, limit)
