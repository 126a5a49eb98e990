from __future__ import annotations

from decimal import Decimal


def to_number(value) -> float | None:
    """JSON-friendly rendering of a Numeric(12, 2) column."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    return float(Decimal(str(value)))
