# Overview: Thin store for reference resources: raw queries, existence checks, CRUD, pagination.

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import text

from ..errors import NotFound, ValidationError
from ..extensions import db
from .concurrency import run_with_retry

"""
The ledger engine depends on this module only for "does X exist" checks and
for writing primary records. Everything here is plain CRUD over the
SQLAlchemy session; there are no balance rules in this file.
"""


def execute(sql: str, params: dict | None = None) -> list[dict]:
    """Run a parameterized statement and return rows as dicts (empty for DML)."""
    result = db.session.execute(text(sql), params or {})
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]


@contextmanager
def transaction() -> Iterator[Any]:
    """Scoped transaction: commit on success, roll back on any exception."""
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise


def get(model, entity_id: int):
    return db.session.get(model, entity_id)


def exists(model, entity_id: int | None) -> bool:
    if entity_id is None:
        return False
    return db.session.query(model.id).filter(model.id == entity_id).first() is not None


def require(model, entity_id: int | None, label: str | None = None, *, error=NotFound):
    """Return the entity or raise NotFound (or the given subclass)."""
    label = label or model.__name__
    entity = db.session.get(model, entity_id) if entity_id is not None else None
    if entity is None:
        raise error(f"{label} {entity_id} not found", details={"entity": label, "id": entity_id})
    return entity


def create(model, **fields):
    """Insert a primary record and commit."""
    def _op():
        entity = model(**fields)
        db.session.add(entity)
        db.session.commit()
        return entity
    return run_with_retry(_op)


def update(model, entity_id: int, *, allowed: set[str], **fields):
    """Patch writable fields on a primary record and commit."""
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    def _op():
        entity = require(model, entity_id)
        for key, value in fields.items():
            setattr(entity, key, value)
        db.session.commit()
        return entity
    return run_with_retry(_op)


def delete(model, entity_id: int) -> None:
    def _op():
        entity = require(model, entity_id)
        db.session.delete(entity)
        db.session.commit()
    run_with_retry(_op)


def list_all(model, *, order_by=None, **filters) -> list:
    q = db.session.query(model).filter_by(**filters)
    if order_by is not None:
        q = q.order_by(order_by)
    return q.all()


def paginate(query, page: int, limit: int) -> dict:
    """Offset pagination: {items, page, limit, total, total_pages}."""
    total = query.order_by(None).count()
    items = query.limit(limit).offset((page - 1) * limit).all()
    return {
        "items": items,
        "page": page,
        "limit": limit,
        "total": int(total),
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def serialize_page(result: dict, key: str = "items") -> dict:
    """JSON shape for a paginate() result: {key: [...], pagination: {...}}."""
    return {
        key: [item.to_dict() for item in result["items"]],
        "pagination": {k: result[k] for k in ("page", "limit", "total", "total_pages")},
    }
