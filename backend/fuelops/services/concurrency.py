# Overview: Unit-of-work helpers: row locks, write transactions, retry on lost races.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrencyConflict, StoreError
from ..extensions import db

"""
Concurrency discipline (authoritative)

- Every balance mutation runs inside run_in_transaction(): one write
  transaction, committed once, rolled back wholesale on any exception.
- The owning BalanceAccount row is locked (SELECT ... FOR UPDATE) before the
  current balance is read; version_id columns catch lost updates on
  databases that skip row locks.
- SQLite ignores FOR UPDATE, so the transaction is opened with
  BEGIN IMMEDIATE, which serializes writers database-wide.
- Lock timeouts, deadlocks and version mismatches are retried with
  exponential backoff; when attempts run out the caller gets
  ConcurrencyConflict. Other store failures become StoreError, not retried.
"""

_CONCURRENCY_MARKERS = (
    "database is locked",
    "database table is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
    "lock timeout",
    "uq_balance_accounts_owner_key",
    "unique constraint failed: balance_accounts",
)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def begin_write() -> None:
    """Start the session's transaction as a write transaction (SQLite only)."""
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.driver_connection
    if not getattr(raw, "in_transaction", False):
        db.session.execute(text("BEGIN IMMEDIATE"))


def _is_concurrency_error(exc: Exception) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in _CONCURRENCY_MARKERS)


def _default_attempts() -> int:
    return int(current_app.config.get("CONCURRENCY_RETRY_ATTEMPTS", 3))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    The session is rolled back on every failure before it is retried or
    re-raised, so a failed call never leaves partial writes behind.
    """
    if attempts is None:
        attempts = _default_attempts()
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, IntegrityError, StaleDataError) as exc:
            db.session.rollback()
            if not _is_concurrency_error(exc):
                raise StoreError("Database operation failed") from exc
            if attempt >= attempts - 1:
                raise ConcurrencyConflict(
                    "Concurrent update detected; retry the operation",
                    details={"attempts": attempts},
                ) from exc
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError("Database operation failed") from exc
        except Exception:
            db.session.rollback()
            raise


def run_in_transaction(func, *, attempts: int | None = None):
    """Run func as one committed write transaction, retried as a whole."""
    def _op():
        begin_write()
        result = func()
        db.session.commit()
        return result
    return run_with_retry(_op, attempts=attempts)
