# Overview: Data store selection; one backend is chosen at startup and reused.

from __future__ import annotations

from flask import current_app

from .base import DataStoreError, Repository
from .memory import MemoryRepository
from .sql import SqlRepository

EXTENSION_KEY = "repledger"

BACKENDS = {
    MemoryRepository.backend_name: MemoryRepository,
    SqlRepository.backend_name: SqlRepository,
}


def build_repository(backend: str) -> Repository:
    """Instantiate the configured backend ("sql" or "memory")."""
    try:
        factory = BACKENDS[backend]
    except KeyError:
        raise ValueError(f"Unknown REPLEDGER_STORE {backend!r}; expected one of {sorted(BACKENDS)}")
    return factory()


def get_repository() -> Repository:
    """Repository bound to the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "BACKENDS",
    "DataStoreError",
    "EXTENSION_KEY",
    "MemoryRepository",
    "Repository",
    "SqlRepository",
    "build_repository",
    "get_repository",
]
