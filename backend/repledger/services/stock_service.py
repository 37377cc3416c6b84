# Overview: Service-layer operations for product stock; applies and reverses signed deltas.

"""
Stock Ledger

WHY: Every inventory change (orders, returns, stock purchases, manual counts)
funnels through here so stock moves by deltas only and each move is recorded.

DESIGN PRINCIPLES:
- Deltas are applied with the repository's atomic increment, never read-then-write
- No floor at zero: negative stock signals an oversell and is tolerated
- A missing product inside a batch is skipped, not fatal: the rest of the batch
  is still reconciled. The skip is never silent; it is logged at WARNING and
  recorded as a stock.product_missing ledger event, and returned to the caller
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..records import PRODUCTS
from ..repository import Repository
from ..validation import NotFoundError, ValidationError
from .ledger_service import (
    EVENT_STOCK_ADJUSTED,
    EVENT_STOCK_PRODUCT_MISSING,
    append_ledger_event,
)

logger = logging.getLogger(__name__)


@dataclass
class StockAdjustmentResult:
    """Outcome of one batch of stock deltas."""
    applied: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.skipped

    def merge(self, other: "StockAdjustmentResult") -> "StockAdjustmentResult":
        for product_id, delta in other.applied.items():
            self.applied[product_id] = self.applied.get(product_id, 0) + delta
        for product_id in other.skipped:
            if product_id not in self.skipped:
                self.skipped.append(product_id)
        return self

    def to_dict(self) -> dict:
        return {
            "applied": dict(self.applied),
            "skipped_product_ids": list(self.skipped),
            "complete": self.complete,
        }


def apply_delta(
    repo: Repository,
    product_id: str,
    delta: int,
    *,
    reference_type: str,
    reference_id: str,
    reason: str = "",
) -> Optional[int]:
    """
    Add delta to one product's stock.

    Returns:
        New stock, or None when the product does not exist (the skip is
        logged and recorded as an event, and nothing is raised).
    """
    if delta == 0:
        return None

    new_stock = repo.adjust_stock(product_id, delta)
    payload = {
        "product_id": product_id,
        "delta": delta,
        "reference_type": reference_type,
        "reference_id": reference_id,
    }

    if new_stock is None:
        logger.warning(
            "Stock adjustment skipped: product %s not found (delta=%s, %s %s)",
            product_id, delta, reference_type, reference_id,
        )
        append_ledger_event(
            repo,
            event_type=EVENT_STOCK_PRODUCT_MISSING,
            entity_type="product",
            entity_id=product_id,
            note=f"Missing product while reconciling {reference_type} {reference_id}",
            payload=payload,
        )
        return None

    payload["stock_after"] = new_stock
    append_ledger_event(
        repo,
        event_type=EVENT_STOCK_ADJUSTED,
        entity_type="product",
        entity_id=product_id,
        note=reason or None,
        payload=payload,
    )
    return new_stock


def apply_deltas(
    repo: Repository,
    deltas: dict[str, int],
    *,
    reference_type: str,
    reference_id: str,
    reason: str = "",
) -> StockAdjustmentResult:
    """Apply a batch of product deltas; missing products are skipped, the rest continue."""
    result = StockAdjustmentResult()
    with repo.atomic():
        for product_id, delta in deltas.items():
            if delta == 0:
                continue
            new_stock = apply_delta(
                repo,
                product_id,
                delta,
                reference_type=reference_type,
                reference_id=reference_id,
                reason=reason,
            )
            if new_stock is None:
                result.skipped.append(product_id)
            else:
                result.applied[product_id] = delta
    return result


def adjust_product_stock(repo: Repository, product_id: str, delta: int, *, reason: str = "") -> int:
    """
    Manual stock correction for a single product (e.g. after a physical count).

    Unlike batch reconciliation, a missing product here is an error.
    """
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    with repo.atomic():
        if repo.get(PRODUCTS, product_id) is None:
            raise NotFoundError(PRODUCTS, product_id)
        return apply_delta(
            repo,
            product_id,
            delta,
            reference_type="manual",
            reference_id=product_id,
            reason=reason or "Manual stock adjustment",
        )
