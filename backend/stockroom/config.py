# backend/stockroom/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" persists through SQLAlchemy, "memory" keeps documents in-process (dev only)
    DOCUMENT_STORE = os.environ.get("DOCUMENT_STORE", "sql")

    # Attempts for a batch commit that hits a lock/deadlock before giving up
    STORE_WRITE_ATTEMPTS = int(os.environ.get("STORE_WRITE_ATTEMPTS", "3"))

    # "guard" rejects deleting a referenced family, "cascade_null" detaches products first
    FAMILY_DELETE_POLICY = os.environ.get("FAMILY_DELETE_POLICY", "guard")

    # The bulk price endpoint only accepts positive adjustments unless enabled
    PRICE_UPDATE_ALLOW_DISCOUNTS = _env_flag("PRICE_UPDATE_ALLOW_DISCOUNTS")

    # Header set by the identity provider in front of this service
    USER_HEADER = os.environ.get("USER_HEADER", "X-User-Id")
