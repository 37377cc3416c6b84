# Overview: Embedded in-process data store (id-keyed mappings of immutable records).

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Optional

from ..records import KINDS, PRODUCTS, LedgerEvent
from ..validation import ConflictError, NotFoundError
from .base import Repository


class MemoryRepository(Repository):
    """
    Arena-style store: one dict per kind, keyed by id.

    All access goes through a single re-entrant lock. atomic() snapshots the
    mappings on entry and restores them if the block raises; records are
    immutable, so a shallow copy of each mapping is a full snapshot.
    """

    backend_name = "memory"

    def __init__(self):
        self._lock = threading.RLock()
        self._tables: dict[str, dict] = {kind: {} for kind in KINDS}
        self._events: list[LedgerEvent] = []
        self._depth = 0

    @contextmanager
    def atomic(self):
        with self._lock:
            outermost = self._depth == 0
            if outermost:
                snapshot = {kind: dict(rows) for kind, rows in self._tables.items()}
                event_mark = len(self._events)
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._tables = snapshot
                    del self._events[event_mark:]
                raise
            finally:
                self._depth -= 1

    def get(self, kind: str, record_id: str, *, for_update: bool = False):
        self._check_kind(kind)
        with self._lock:
            return self._tables[kind].get(record_id)

    def list(self, kind: str, **equals) -> list:
        self._check_kind(kind)
        with self._lock:
            rows = list(self._tables[kind].values())
        if not equals:
            return rows
        return [
            row for row in rows
            if all(getattr(row, key) == value for key, value in equals.items())
        ]

    def insert(self, kind: str, record):
        self._check_kind(kind)
        with self._lock:
            table = self._tables[kind]
            if record.id in table:
                raise ConflictError(f"{kind} {record.id} already exists")
            table[record.id] = record
            return record

    def update(self, kind: str, record_id: str, **fields):
        self._check_kind(kind)
        with self._lock:
            table = self._tables[kind]
            current = table.get(record_id)
            if current is None:
                raise NotFoundError(kind, record_id)
            fields.pop("id", None)
            updated = replace(current, **fields)
            table[record_id] = updated
            return updated

    def delete(self, kind: str, record_id: str) -> bool:
        self._check_kind(kind)
        with self._lock:
            return self._tables[kind].pop(record_id, None) is not None

    def delete_where(self, kind: str, **equals) -> int:
        self._check_kind(kind)
        with self._lock:
            doomed = [row.id for row in self.list(kind, **equals)]
            for record_id in doomed:
                del self._tables[kind][record_id]
            return len(doomed)

    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        with self._lock:
            table = self._tables[PRODUCTS]
            product = table.get(product_id)
            if product is None:
                return None
            updated = replace(product, stock=product.stock + delta)
            table[product_id] = updated
            return updated.stock

    def append_event(self, event: LedgerEvent) -> LedgerEvent:
        with self._lock:
            self._events.append(event)
            return event

    def list_events(
        self,
        *,
        event_type: str | None = None,
        entity_id: str | None = None,
        limit: int | None = None,
    ) -> list[LedgerEvent]:
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if entity_id is not None:
            events = [e for e in events if e.entity_id == entity_id]
        if limit is not None:
            events = events[-limit:] if limit > 0 else []
        return events
