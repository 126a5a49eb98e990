from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context

"""
Business time semantics:
- Ledger, sale and price-window timestamps are business-local naive datetimes.
- The business timezone is a fixed UTC offset (config BUSINESS_TZ_OFFSET_MINUTES).
- Inputs with an explicit offset or 'Z' are converted into business time.
- Date-only inputs mean midnight, or the last second of the day for range ends.
"""

DEFAULT_OFFSET_MINUTES = 180
BUSINESS_FORMAT = "%Y-%m-%d %H:%M:%S"


class TimeParseError(ValueError):
    """Raised when a date/datetime input cannot be parsed."""


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def business_offset_minutes() -> int:
    if has_app_context():
        return int(current_app.config.get("BUSINESS_TZ_OFFSET_MINUTES", DEFAULT_OFFSET_MINUTES))
    return DEFAULT_OFFSET_MINUTES


def business_tz() -> timezone:
    return timezone(timedelta(minutes=business_offset_minutes()))


def business_now() -> datetime:
    """'now' in the business timezone (naive)."""
    return (utcnow() + timedelta(minutes=business_offset_minutes())).replace(microsecond=0)


def parse_business_datetime(value, *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Normalize a date/datetime input to a business-local naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" -> midnight (23:59:59 when end_of_day)
    - "YYYY-MM-DD HH:MM:SS" / ISO-8601 without offset -> taken as business time
    - ISO-8601 with "Z" or "+/-HH:MM" -> converted to business time
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
        if end_of_day:
            dt = dt.replace(hour=23, minute=59, second=59)
        return dt
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if len(s) == 10:
            try:
                d = date.fromisoformat(s)
            except ValueError:
                raise TimeParseError(f"invalid date: {value!r}")
            return parse_business_datetime(d, end_of_day=end_of_day)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            raise TimeParseError(f"invalid datetime: {value!r}")
    else:
        raise TimeParseError(f"invalid datetime: {value!r}")

    if dt.tzinfo is not None:
        dt = dt.astimezone(business_tz()).replace(tzinfo=None)
    return dt.replace(microsecond=0)


def format_business(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a business-local datetime as 'YYYY-MM-DD HH:MM:SS'."""
    if dt is None:
        return None
    return dt.strftime(BUSINESS_FORMAT)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
