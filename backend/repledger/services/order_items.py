# Overview: Order line pricing; tagged per-field updates that return new immutable items.

"""
Order line pricing.

Each recognised field has its own update with an explicit recalculation:

- unit_price / quantity: keep the discount percent, recompute the amount
      discount = round(gross * bps / 10000), subtotal = gross - discount
- discount_percent: same formula with the new percent
- discount_amount: subtotal = gross - amount, percent back-computed
- bonus_quantity: free units; moves stock, never changes price
- condition: returns only (GOOD / EXPIRED)

gross = unit_price_cents * quantity. Items are never mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable

from ..records import VALID_CONDITIONS, OrderItem, Product
from ..validation import (
    ValidationError,
    as_int,
    as_str,
    enforce_rules_discount_bps,
    enforce_rules_price,
    require_choice,
)

FIELD_UNIT_PRICE = "unit_price"
FIELD_QUANTITY = "quantity"
FIELD_BONUS_QUANTITY = "bonus_quantity"
FIELD_DISCOUNT_PERCENT = "discount_percent"
FIELD_DISCOUNT_AMOUNT = "discount_amount"
FIELD_CONDITION = "condition"

BPS_SCALE = 10_000


@dataclass(frozen=True)
class ItemUpdate:
    """One tagged change to an order line: which field, and its new value."""
    field: str
    value: Any

    @classmethod
    def from_dict(cls, data: dict) -> "ItemUpdate":
        field_name = as_str(data.get("field"))
        require_choice(field_name, _HANDLERS.keys(), "item field")
        return cls(field=field_name, value=data.get("value"))


def _gross(unit_price_cents: int, quantity: int) -> int:
    return unit_price_cents * quantity


def _discount_for(gross: int, bps: int) -> int:
    # half-up rounding to the cent
    if gross >= 0:
        return (gross * bps + BPS_SCALE // 2) // BPS_SCALE
    return -((-gross * bps + BPS_SCALE // 2) // BPS_SCALE)


def _bps_for(gross: int, discount_cents: int) -> int:
    if gross <= 0:
        return 0
    return (discount_cents * BPS_SCALE + gross // 2) // gross


def _repriced(item: OrderItem, *, unit_price_cents: int, quantity: int, discount_bps: int) -> OrderItem:
    gross = _gross(unit_price_cents, quantity)
    discount = _discount_for(gross, discount_bps)
    return replace(
        item,
        unit_price_cents=unit_price_cents,
        quantity=quantity,
        discount_bps=discount_bps,
        discount_cents=discount,
        subtotal_cents=gross - discount,
    )


def set_unit_price(item: OrderItem, unit_price_cents: int) -> OrderItem:
    enforce_rules_price(unit_price_cents, "unit_price_cents")
    return _repriced(item, unit_price_cents=unit_price_cents, quantity=item.quantity, discount_bps=item.discount_bps)


def set_quantity(item: OrderItem, quantity: int) -> OrderItem:
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    return _repriced(item, unit_price_cents=item.unit_price_cents, quantity=quantity, discount_bps=item.discount_bps)


def set_bonus_quantity(item: OrderItem, bonus_quantity: int) -> OrderItem:
    if bonus_quantity < 0:
        raise ValidationError("bonus_quantity must be >= 0")
    return replace(item, bonus_quantity=bonus_quantity)


def set_discount_percent(item: OrderItem, discount_bps: int) -> OrderItem:
    enforce_rules_discount_bps(discount_bps)
    return _repriced(item, unit_price_cents=item.unit_price_cents, quantity=item.quantity, discount_bps=discount_bps)


def set_discount_amount(item: OrderItem, discount_cents: int) -> OrderItem:
    gross = _gross(item.unit_price_cents, item.quantity)
    if discount_cents < 0:
        raise ValidationError("discount_cents must be >= 0")
    if gross >= 0 and discount_cents > gross:
        raise ValidationError("discount_cents cannot exceed the line's gross amount")
    return replace(
        item,
        discount_cents=discount_cents,
        discount_bps=_bps_for(gross, discount_cents),
        subtotal_cents=gross - discount_cents,
    )


def set_condition(item: OrderItem, condition: str | None) -> OrderItem:
    require_choice(condition, VALID_CONDITIONS, "condition", allow_none=True)
    return replace(item, condition=condition)


def _int_handler(fn: Callable[[OrderItem, int], OrderItem], name: str):
    def handler(item: OrderItem, value: Any) -> OrderItem:
        return fn(item, as_int(value, name))
    return handler


_HANDLERS: dict[str, Callable[[OrderItem, Any], OrderItem]] = {
    FIELD_UNIT_PRICE: _int_handler(set_unit_price, "unit_price_cents"),
    FIELD_QUANTITY: _int_handler(set_quantity, "quantity"),
    FIELD_BONUS_QUANTITY: _int_handler(set_bonus_quantity, "bonus_quantity"),
    FIELD_DISCOUNT_PERCENT: _int_handler(set_discount_percent, "discount_bps"),
    FIELD_DISCOUNT_AMOUNT: _int_handler(set_discount_amount, "discount_cents"),
    FIELD_CONDITION: lambda item, value: set_condition(item, as_str(value) or None),
}


def apply_item_update(item: OrderItem, update: ItemUpdate) -> OrderItem:
    try:
        handler = _HANDLERS[update.field]
    except KeyError:
        raise ValidationError(f"Unsupported item field: {update.field}")
    return handler(item, update.value)


def apply_item_updates(item: OrderItem, updates: Iterable[ItemUpdate]) -> OrderItem:
    for update in updates:
        item = apply_item_update(item, update)
    return item


def new_item(product: Product, *, discount_bps: int = 0, condition: str | None = None) -> OrderItem:
    """Fresh zero-quantity line snapshotting the product's name and base price."""
    enforce_rules_discount_bps(discount_bps)
    return OrderItem(
        product_id=product.id,
        product_name=product.name,
        quantity=0,
        bonus_quantity=0,
        unit_price_cents=product.base_price_cents,
        discount_cents=0,
        discount_bps=discount_bps,
        subtotal_cents=0,
        condition=condition,
    )


def order_total(items: Iterable[OrderItem], *, is_return: bool = False) -> int:
    """Sum of line subtotals; returns are credits and always total negative."""
    total = sum(item.subtotal_cents for item in items)
    return -abs(total) if is_return else total
