# Overview: Service-layer operations for orders; create/update/delete with exactly-once stock effects.

"""
Order Lifecycle Manager

WHY: An order's net stock impact must depend only on its current state, never
on how many times it was edited.

DESIGN PRINCIPLES:
- create: persist, then apply the order's deltas (none for drafts)
- update: reverse the OLD stored snapshot's deltas, persist, apply the NEW
  snapshot's deltas. Both computations honor is_draft independently, so
  draft -> posted and posted -> draft transitions need no special cases
- delete: reverse, cascade-delete the order's transactions, delete the order
- Each operation runs in one repository unit of work, with the order row
  locked, so concurrent edits of the same order cannot double-reverse it
- paid_amount_cents and paid_quantity belong to the transaction ledger: new
  orders start unpaid and edits carry them over from the stored order
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Optional

from ..records import (
    CUSTOMERS,
    ORDERS,
    PRODUCTS,
    STATUS_DRAFT,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
    STATUS_RETURNED,
    TRANSACTIONS,
    Order,
    OrderItem,
)
from ..repository import Repository
from ..validation import NotFoundError, ValidationError
from .ledger_service import (
    EVENT_ORDER_CREATED,
    EVENT_ORDER_DELETED,
    EVENT_ORDER_UPDATED,
    append_ledger_event,
)
from .order_effects import compute_stock_deltas, reverse_deltas
from .stock_service import StockAdjustmentResult, apply_deltas


@dataclass
class OrderChange:
    """An order write and the stock reconciliation it caused."""
    order: Order
    stock: StockAdjustmentResult = field(default_factory=StockAdjustmentResult)
    removed_transactions: int = 0

    def to_dict(self) -> dict:
        data = {
            "order": self.order.to_dict(),
            "stock": self.stock.to_dict(),
        }
        if self.removed_transactions:
            data["removed_transactions"] = self.removed_transactions
        return data


# =============================================================================
# STATUS RULES
# =============================================================================

def resolve_payment_status(order: Order, paid_cents: int, baseline: str) -> str:
    """
    Payment-driven status for an order.

    Returns are credits, not receivables: their status never moves with
    payments. Otherwise PAID when paid >= total, PARTIAL when paid > 0,
    else the given baseline.
    """
    if order.is_return:
        return order.status
    if paid_cents >= order.total_amount_cents:
        return STATUS_PAID
    if paid_cents > 0:
        return STATUS_PARTIAL
    return baseline


def _normalized(order: Order) -> Order:
    is_draft = order.is_draft or order.status == STATUS_DRAFT
    if is_draft:
        status = STATUS_DRAFT
    elif order.is_return:
        status = STATUS_RETURNED
    else:
        status = resolve_payment_status(order, order.paid_amount_cents, STATUS_PENDING)
    return replace(order, is_draft=is_draft, status=status)


def _validate(order: Order) -> None:
    if not order.customer_id:
        raise ValidationError("customer_id required")
    for item in order.items:
        if not item.product_id:
            raise ValidationError("every item needs a product_id")
        if item.quantity < 0 or item.bonus_quantity < 0:
            raise ValidationError("quantity and bonus_quantity must be >= 0")
    if order.is_return and order.total_amount_cents > 0:
        raise ValidationError("return orders must have a non-positive total_amount_cents")


def _with_snapshots(repo: Repository, order: Order) -> Order:
    """Fill the denormalized customer/product names when the caller left them blank."""
    customer_name = order.customer_name
    if not customer_name:
        customer = repo.get(CUSTOMERS, order.customer_id)
        customer_name = customer.name if customer else "Unknown"

    items = []
    for item in order.items:
        if not item.product_name:
            product = repo.get(PRODUCTS, item.product_id)
            if product is not None:
                item = replace(item, product_name=product.name)
        items.append(item)
    return replace(order, customer_name=customer_name, items=tuple(items))


def _carry_paid_quantities(old_items: tuple[OrderItem, ...], new_items: tuple[OrderItem, ...]) -> tuple[OrderItem, ...]:
    """Keep each product's accumulated paid quantities across an edit."""
    carried: dict[str, list[int]] = {}
    for item in old_items:
        carried.setdefault(item.product_id, []).append(item.paid_quantity)

    items = []
    for item in new_items:
        queue = carried.get(item.product_id)
        paid = queue.pop(0) if queue else 0
        items.append(replace(item, paid_quantity=paid))
    return tuple(items)


def _record_fields(order: Order) -> dict:
    return {f.name: getattr(order, f.name) for f in fields(order) if f.name != "id"}


# =============================================================================
# QUERIES
# =============================================================================

def get_order(repo: Repository, order_id: str) -> Order:
    order = repo.get(ORDERS, order_id)
    if order is None:
        raise NotFoundError(ORDERS, order_id)
    return order


def list_orders(
    repo: Repository,
    *,
    customer_id: Optional[str] = None,
    include_drafts: bool = True,
) -> list[Order]:
    filters = {"customer_id": customer_id} if customer_id else {}
    orders = repo.list(ORDERS, **filters)
    if not include_drafts:
        orders = [o for o in orders if not o.is_draft]
    return sorted(orders, key=lambda o: (o.date, o.id), reverse=True)


# =============================================================================
# LIFECYCLE
# =============================================================================

def create_order(repo: Repository, order: Order) -> OrderChange:
    """
    Persist a new order and apply its stock effect (none for drafts).

    Raises:
        ValidationError: invalid order
        ConflictError: an order with this id already exists
    """
    _validate(order)
    # Nothing is paid until a payment transaction says so
    order = replace(
        order,
        paid_amount_cents=0,
        items=tuple(replace(item, paid_quantity=0) for item in order.items),
    )
    with repo.atomic():
        order = _normalized(_with_snapshots(repo, order))
        stored = repo.insert(ORDERS, order)

        stock = apply_deltas(
            repo,
            compute_stock_deltas(stored),
            reference_type="order",
            reference_id=stored.id,
            reason="order created",
        )

        append_ledger_event(
            repo,
            event_type=EVENT_ORDER_CREATED,
            entity_type="order",
            entity_id=stored.id,
            payload={
                "is_draft": stored.is_draft,
                "is_return": stored.is_return,
                "total_amount_cents": stored.total_amount_cents,
                "skipped_product_ids": stock.skipped,
            },
        )
        return OrderChange(order=stored, stock=stock)


def update_order(repo: Repository, order_id: str, new_order: Order) -> OrderChange:
    """
    Replace an order's contents: full reversal of the stored snapshot's stock
    effect, then the new snapshot's effect.

    Raises:
        NotFoundError: no order with this id
        ValidationError: invalid order
    """
    _validate(new_order)
    with repo.atomic():
        old = repo.get(ORDERS, order_id, for_update=True)
        if old is None:
            raise NotFoundError(ORDERS, order_id)

        new_order = replace(
            new_order,
            id=order_id,
            paid_amount_cents=old.paid_amount_cents,
            items=_carry_paid_quantities(old.items, new_order.items),
        )
        new_order = _normalized(_with_snapshots(repo, new_order))

        stock = StockAdjustmentResult()
        if not old.is_draft:
            stock.merge(apply_deltas(
                repo,
                reverse_deltas(compute_stock_deltas(old)),
                reference_type="order",
                reference_id=order_id,
                reason="order edited: reverse previous state",
            ))

        stored = repo.update(ORDERS, order_id, **_record_fields(new_order))

        if not stored.is_draft:
            stock.merge(apply_deltas(
                repo,
                compute_stock_deltas(stored),
                reference_type="order",
                reference_id=order_id,
                reason="order edited: apply new state",
            ))

        append_ledger_event(
            repo,
            event_type=EVENT_ORDER_UPDATED,
            entity_type="order",
            entity_id=order_id,
            payload={
                "was_draft": old.is_draft,
                "is_draft": stored.is_draft,
                "total_amount_cents": stored.total_amount_cents,
                "skipped_product_ids": stock.skipped,
            },
        )
        return OrderChange(order=stored, stock=stock)


def delete_order(repo: Repository, order_id: str) -> OrderChange:
    """
    Reverse an order's stock effect and delete it along with every
    transaction that references it.

    Raises:
        NotFoundError: no order with this id
    """
    with repo.atomic():
        order = repo.get(ORDERS, order_id, for_update=True)
        if order is None:
            raise NotFoundError(ORDERS, order_id)

        stock = StockAdjustmentResult()
        if not order.is_draft:
            stock = apply_deltas(
                repo,
                reverse_deltas(compute_stock_deltas(order)),
                reference_type="order",
                reference_id=order_id,
                reason="order deleted",
            )

        removed = repo.delete_where(TRANSACTIONS, reference_id=order_id)
        repo.delete(ORDERS, order_id)

        append_ledger_event(
            repo,
            event_type=EVENT_ORDER_DELETED,
            entity_type="order",
            entity_id=order_id,
            payload={
                "removed_transactions": removed,
                "skipped_product_ids": stock.skipped,
            },
        )
        return OrderChange(order=order, stock=stock, removed_transactions=removed)
