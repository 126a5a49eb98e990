from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import format_business, to_utc_z
from ._numeric import to_number


class BalanceAccount(db.Model):
    """
    Current balance for one owner key (station stock, client money,
    barracks+item stock).

    OWNERSHIP: Written only by services/ledger_service.apply_movement, always in
    the same transaction as the LedgerEntry that explains the change.
    INVARIANT: balance == balance of the latest LedgerEntry of this account.

    item_id is 0 for domains without an item dimension so the unique key stays
    a plain composite (NULLs never collide in a UNIQUE constraint).

    version_id gives optimistic locking on databases that honor it; movements
    also lock the row (SELECT ... FOR UPDATE) before computing a new balance.
    """
    __tablename__ = "balance_accounts"
    __table_args__ = (
        db.UniqueConstraint("domain", "owner_id", "item_id", name="uq_balance_accounts_owner_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    domain = db.Column(db.String(32), nullable=False, index=True)
    owner_id = db.Column(db.Integer, nullable=False, index=True)
    item_id = db.Column(db.Integer, nullable=False, default=0)

    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<BalanceAccount id={self.id} domain={self.domain} owner_id={self.owner_id} "
            f"item_id={self.item_id} balance={self.balance}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "domain": self.domain,
            "owner_id": self.owner_id,
            "item_id": self.item_id or None,
            "balance": to_number(self.balance),
            "updated_at": to_utc_z(self.updated_at),
        }


class LedgerEntry(db.Model):
    """
    Append-only running-balance entry.

    - amount_in / amount_out are non-negative; a business event is one or the other.
    - balance is the account balance after this entry.
    - occurred_at is business time; created_at is system time (DB default).
    - Resolution order is (occurred_at DESC, id DESC).
    - Rows are never updated or deleted; corrections are new entries.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.Index("ix_ledger_entries_account_occurred", "account_id", "occurred_at", "id"),
        db.Index("ix_ledger_entries_domain_owner", "domain", "owner_id", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("balance_accounts.id"), nullable=False)

    # Denormalized owner key for listing without a join.
    domain = db.Column(db.String(32), nullable=False)
    owner_id = db.Column(db.Integer, nullable=False)
    item_id = db.Column(db.Integer, nullable=False, default=0)

    amount_in = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_out = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    balance = db.Column(db.Numeric(12, 2), nullable=False)

    occurred_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    description = db.Column(db.Text, nullable=True)
    reference = db.Column(db.String(255), nullable=True)

    actor_user_id = db.Column(db.Integer, nullable=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    transfer_id = db.Column(db.Integer, db.ForeignKey("stock_transfers.id"), nullable=True, index=True)

    account = db.relationship("BalanceAccount", backref=db.backref("entries", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "domain": self.domain,
            "owner_id": self.owner_id,
            "item_id": self.item_id or None,
            "amount_in": to_number(self.amount_in),
            "amount_out": to_number(self.amount_out),
            "balance": to_number(self.balance),
            "occurred_at": format_business(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            "description": self.description,
            "reference": self.reference,
            "actor_user_id": self.actor_user_id,
            "sale_id": self.sale_id,
            "transfer_id": self.transfer_id,
        }


class ImmutableRecordError(RuntimeError):
    """Raised when code tries to rewrite append-only history through the ORM."""


@event.listens_for(LedgerEntry, "before_update")
def _ledger_entry_no_update(mapper, connection, target):
    raise ImmutableRecordError(f"LedgerEntry {target.id} is immutable")


@event.listens_for(LedgerEntry, "before_delete")
def _ledger_entry_no_delete(mapper, connection, target):
    raise ImmutableRecordError(f"LedgerEntry {target.id} cannot be deleted")
