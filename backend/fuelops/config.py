# backend/fuelops/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fuelops.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fuelops.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business timezone as a fixed offset from UTC (minutes). Default UTC+3.
    BUSINESS_TZ_OFFSET_MINUTES = int(os.environ.get("STATION_TZ_OFFSET_MINUTES", "180"))

    # When on, a price window whose end_date has passed no longer sets the
    # station's current price.
    PRICE_WINDOW_ENFORCE_END_DATE = _env_bool("PRICE_WINDOW_ENFORCE_END_DATE", True)

    # Authentication is out of scope; every request acts as this user.
    DEFAULT_USER_ID = int(os.environ.get("DEFAULT_USER_ID", "1"))

    # Create missing tables once at startup (migrations remain authoritative).
    AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", True)

    CONCURRENCY_RETRY_ATTEMPTS = int(os.environ.get("CONCURRENCY_RETRY_ATTEMPTS", "3"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
