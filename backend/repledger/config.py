# backend/repledger/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/repledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///repledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Data store backend, chosen once at startup: "sql" or "memory"
    REPLEDGER_STORE = os.environ.get("REPLEDGER_STORE", "sql")

    # Seed demo products/customers into an empty store on startup
    REPLEDGER_SEED_DEMO_DATA = _env_bool("REPLEDGER_SEED_DEMO_DATA")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
