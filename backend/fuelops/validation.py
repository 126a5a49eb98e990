from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError
from .time_utils import TimeParseError, parse_business_datetime


CENT = Decimal("0.01")

# Largest value a Numeric(12, 2) column holds.
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored numeric (Decimal/float/int/None) to a 2dp Decimal."""
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: Any, field: str, *, allow_zero: bool = True, required: bool = True) -> Decimal | None:
    """
    Validate a JSON amount and normalize to a 2dp Decimal.

    Rejects booleans, non-numeric strings, NaN/Infinity, negatives and
    values beyond Numeric(12, 2).
    """
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")

    try:
        if isinstance(value, float):
            amount = Decimal(str(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount == 0 and not allow_zero:
        raise ValidationError(f"{field} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} exceeds maximum {MAX_AMOUNT}")
    return amount


def parse_id(value: Any, field: str, *, required: bool = True) -> int | None:
    """Strict positive integer id (rejects floats, bools, blank strings)."""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValidationError(f"{field} must be an integer")
        value = int(stripped)
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def parse_date(value: Any, field: str, *, required: bool = True, end_of_day: bool = False):
    try:
        dt = parse_business_datetime(value, end_of_day=end_of_day)
    except TimeParseError:
        raise ValidationError(f"{field} must be YYYY-MM-DD or YYYY-MM-DD HH:MM:SS")
    if dt is None and required:
        raise ValidationError(f"{field} is required")
    return dt


def parse_text(value: Any, field: str, *, max_length: int = 255, required: bool = False) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_fields(payload: dict | None, *fields: str) -> dict:
    """Reject non-object bodies and list every missing required key at once."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return payload


def parse_page(page: Any, limit: Any, *, default_limit: int = 50, max_limit: int = 500) -> tuple[int, int]:
    try:
        page_i = int(page) if page not in (None, "") else 1
        limit_i = int(limit) if limit not in (None, "") else default_limit
    except (TypeError, ValueError):
        raise ValidationError("page and limit must be integers")
    page_i = max(1, page_i)
    limit_i = max(1, min(limit_i, max_limit))
    return page_i, limit_i
