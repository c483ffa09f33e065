# backend/market_orders/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///market_orders.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie: signed token, http-only, same-site=lax, 7-day absolute expiry
    SESSION_COOKIE_NAME = "token"
    SESSION_MAX_AGE_SECONDS = int(os.environ.get("SESSION_MAX_AGE_SECONDS", str(60 * 60 * 24 * 7)))
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE")

    # bcrypt cost factor for PIN hashes
    PIN_HASH_ROUNDS = int(os.environ.get("PIN_HASH_ROUNDS", "10"))

    # Principal recorded as Order.user_id for market-owner checkouts.
    # Falls back to the oldest administrator when unset.
    SYSTEM_USER_ID = os.environ.get("SYSTEM_USER_ID") or None

    # Development only: include exception text in 500 responses
    EXPOSE_ERROR_DETAILS = _env_flag("EXPOSE_ERROR_DETAILS")
