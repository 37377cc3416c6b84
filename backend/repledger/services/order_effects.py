# Overview: Pure mapping from an order snapshot to the stock deltas it implies.

"""
The single place that encodes what an order does to inventory.

Per item, with effective quantity = quantity + bonus_quantity:
- draft order: no effect
- return: +effective quantity, unless the item is EXPIRED (discarded, 0)
- sale: -effective quantity

Applying an order uses these deltas; reversing it negates the deltas computed
from the *old* snapshot. Deterministic and side-effect free.
"""

from __future__ import annotations

from ..records import CONDITION_EXPIRED, Order, OrderItem


def item_stock_delta(order: Order, item: OrderItem) -> int:
    if order.is_draft:
        return 0
    if order.is_return:
        if item.condition == CONDITION_EXPIRED:
            return 0
        return item.effective_quantity
    return -item.effective_quantity


def compute_stock_deltas(order: Order) -> dict[str, int]:
    """productId -> signed stock delta. Lines for the same product are summed."""
    deltas: dict[str, int] = {}
    for item in order.items:
        deltas[item.product_id] = deltas.get(item.product_id, 0) + item_stock_delta(order, item)
    return deltas


def reverse_deltas(deltas: dict[str, int]) -> dict[str, int]:
    return {product_id: -delta for product_id, delta in deltas.items()}
