# Overview: Data store contract consumed by the reconciliation services.

"""
Repository Invariants (authoritative)

- Records are immutable; update() stores a copy with the given fields replaced.
- Keyed access only: get/list/insert/update/delete by id, plus equality filters.
- adjust_stock() is the ONLY way product stock changes after creation and is
  atomic per product (no read-then-write), so concurrent deltas commute.
- atomic() is one unit of work: every write inside it commits together or not
  at all. It is re-entrant; only the outermost block commits.
- Ledger events are append-only and written in the same unit of work as the
  change they describe.
- Backend errors surface as DataStoreError and are never retried here.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional

from ..records import KINDS, LedgerEvent
from ..validation import ValidationError


class DataStoreError(Exception):
    """The underlying store is unreachable or rejected a write."""


class Repository(ABC):
    """Keyed record access for products, customers, providers, orders and transactions."""

    backend_name = "abstract"

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in KINDS:
            raise ValidationError(f"Unknown record kind: {kind}")

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Run the enclosed block as a single all-or-nothing unit."""

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    @abstractmethod
    def get(self, kind: str, record_id: str, *, for_update: bool = False):
        """Return the record or None. for_update serialises concurrent writers."""

    @abstractmethod
    def list(self, kind: str, **equals) -> list:
        """All records of a kind, optionally filtered by field equality."""

    @abstractmethod
    def insert(self, kind: str, record):
        """Store a new record. Raises ConflictError if the id exists."""

    @abstractmethod
    def update(self, kind: str, record_id: str, **fields):
        """Partial-field update. Raises NotFoundError if the id is missing."""

    @abstractmethod
    def delete(self, kind: str, record_id: str) -> bool:
        """Delete by id. Returns False when there was nothing to delete."""

    @abstractmethod
    def delete_where(self, kind: str, **equals) -> int:
        """Delete every record matching the equality filter; returns the count."""

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    @abstractmethod
    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        """
        Atomically add delta to a product's stock.

        Returns the new stock, or None when the product does not exist.
        """

    # ------------------------------------------------------------------
    # Ledger events
    # ------------------------------------------------------------------

    @abstractmethod
    def append_event(self, event: LedgerEvent) -> LedgerEvent:
        """Append-only event log."""

    @abstractmethod
    def list_events(
        self,
        *,
        event_type: str | None = None,
        entity_id: str | None = None,
        limit: int | None = None,
    ) -> list[LedgerEvent]:
        """Events oldest first, optionally filtered; limit keeps the newest."""
