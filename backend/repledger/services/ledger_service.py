# Overview: Service-layer operations for the reconciliation event ledger.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..records import LedgerEvent, new_id
from ..repository import Repository
"""
Reconciliation Ledger Invariants (authoritative)

- Append-only audit log for stock and payment reconciliation events.
- No domain/business logic in the ledger itself.
- Events are written inside the same unit of work as the change they record.
- occurred_at is business time.
"""

EVENT_STOCK_ADJUSTED = "stock.adjusted"
EVENT_STOCK_PRODUCT_MISSING = "stock.product_missing"
EVENT_ORDER_CREATED = "order.created"
EVENT_ORDER_UPDATED = "order.updated"
EVENT_ORDER_DELETED = "order.deleted"
EVENT_TRANSACTION_RECORDED = "transaction.recorded"
EVENT_TRANSACTION_UPDATED = "transaction.updated"
EVENT_TRANSACTION_DELETED = "transaction.deleted"


def append_ledger_event(
    repo: Repository,
    *,
    event_type: str,
    entity_type: str,
    entity_id: str,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
    occurred_at: Optional[datetime] = None,
) -> LedgerEvent:
    """
    Append-only ledger event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    fields = {}
    if occurred_at is not None:
        fields["occurred_at"] = occurred_at
    event = LedgerEvent(
        id=new_id("EVT"),
        event_type=event_type,
        entity_type=entity_type,
        entity_id=str(entity_id),
        note=note,
        payload=payload or {},
        **fields,
    )
    return repo.append_event(event)


def list_ledger_events(
    repo: Repository,
    *,
    event_type: str | None = None,
    entity_id: str | None = None,
    limit: int | None = 100,
) -> list[LedgerEvent]:
    return repo.list_events(event_type=event_type, entity_id=entity_id, limit=limit)
