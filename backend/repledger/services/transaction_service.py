# Overview: Service-layer operations for transactions; payments, expenses, deposits and their reconciliation.

"""
Transaction Ledger

WHY: Payments move an order's paid amount and status; stock-purchase expenses
move product stock. Recording, editing and deleting a transaction must keep
both in step.

DESIGN PRINCIPLES:
- record: a payment adds its amount to the referenced order (unless
  metadata.skip_order_update) and settles metadata.paid_items
- update: expenses apply the quantity DIFFERENCE to stock; payments apply the
  amount DIFFERENCE to the order. Fields are persisted last
- update never moves an effect to another record: type, reference_id and the
  metadata that drives reversal are fixed once recorded
- delete: undo the stock / paid-amount effect, then delete. A missing
  transaction is a no-op
- Records without structured metadata are reversed from their description text
  (legacy records only; everything written here carries metadata)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Optional

from ..records import (
    METHOD_CASH,
    ORDERS,
    PRODUCTS,
    PROVIDERS,
    STATUS_PENDING,
    TRANSACTIONS,
    TXN_EXPENSE,
    TXN_PAYMENT_RECEIVED,
    VALID_PAYMENT_METHODS,
    Order,
    OrderItem,
    PaidItem,
    Transaction,
    TransactionMetadata,
    new_id,
)
from ..repository import Repository
from ..time_utils import utcnow
from ..validation import NotFoundError, ValidationError, require_choice
from .ledger_service import (
    EVENT_TRANSACTION_DELETED,
    EVENT_TRANSACTION_RECORDED,
    EVENT_TRANSACTION_UPDATED,
    append_ledger_event,
)
from .order_service import resolve_payment_status
from .stock_service import StockAdjustmentResult, apply_deltas

logger = logging.getLogger(__name__)


@dataclass
class TransactionChange:
    """A transaction write plus what it reconciled."""
    transaction: Transaction
    stock: StockAdjustmentResult = field(default_factory=StockAdjustmentResult)
    order: Optional[Order] = None

    def to_dict(self) -> dict:
        return {
            "transaction": self.transaction.to_dict(),
            "stock": self.stock.to_dict(),
            "order": self.order.to_dict() if self.order else None,
        }


# =============================================================================
# LEGACY DESCRIPTION PARSING (CONSTANTS)
# =============================================================================

# "Stock Purchase: 50x Colitra Plus"
_LEGACY_EXPENSE_RE = re.compile(r"Stock Purchase:\s*(\d+)\s*x", re.IGNORECASE)
# "Payment for: 3x Colitra Plus, 2x Nervax"
_LEGACY_PAYMENT_PREFIX = "Payment for:"
_LEGACY_PAYMENT_ITEM_RE = re.compile(r"^\s*(\d+)\s*x\s*(.+?)\s*$", re.IGNORECASE)


def parse_legacy_expense_quantity(description: str | None) -> Optional[int]:
    """Units bought according to a legacy stock-purchase description, or None."""
    if not description:
        return None
    match = _LEGACY_EXPENSE_RE.search(description)
    return int(match.group(1)) if match else None


def parse_legacy_paid_items(description: str | None) -> list[tuple[str, int]]:
    """
    (product_name, quantity) pairs from a legacy itemized payment description.

    Lump-sum payments and unrecognised text yield an empty list.
    """
    if not description:
        return []
    start = description.find(_LEGACY_PAYMENT_PREFIX)
    if start < 0:
        return []

    pairs = []
    for chunk in description[start + len(_LEGACY_PAYMENT_PREFIX):].split(","):
        match = _LEGACY_PAYMENT_ITEM_RE.match(chunk)
        if match:
            pairs.append((match.group(2), int(match.group(1))))
    return pairs


# =============================================================================
# HELPERS
# =============================================================================

def _validate(txn: Transaction) -> None:
    if txn.amount_cents <= 0:
        raise ValidationError("amount_cents must be > 0")
    require_choice(txn.payment_method, VALID_PAYMENT_METHODS, "payment method", allow_none=True)
    if txn.metadata.quantity is not None and txn.metadata.quantity < 0:
        raise ValidationError("metadata.quantity must be >= 0")


def _affects_order(txn: Transaction) -> bool:
    return (
        txn.type == TXN_PAYMENT_RECEIVED
        and bool(txn.reference_id)
        and not txn.metadata.skip_order_update
    )


def _settle_paid_items(items: tuple[OrderItem, ...], paid_items: tuple[PaidItem, ...]) -> tuple[OrderItem, ...]:
    """Add each paid quantity to the first line of the named product."""
    updated = list(items)
    for paid in paid_items:
        for index, item in enumerate(updated):
            if item.product_id == paid.product_id:
                updated[index] = replace(item, paid_quantity=item.paid_quantity + paid.quantity)
                break
        else:
            logger.warning("Paid item %s is not a line of the order; ignored", paid.product_id)
    return tuple(updated)


def _unsettle(items: tuple[OrderItem, ...], matches, quantity: int) -> tuple[OrderItem, ...]:
    """Take quantity back off matching lines in order, never below zero."""
    updated = list(items)
    remaining = quantity
    for index, item in enumerate(updated):
        if remaining <= 0:
            break
        if not matches(item):
            continue
        taken = min(remaining, item.paid_quantity)
        updated[index] = replace(item, paid_quantity=item.paid_quantity - taken)
        remaining -= taken
    return tuple(updated)


def _unsettle_paid_items(items: tuple[OrderItem, ...], txn: Transaction) -> tuple[OrderItem, ...]:
    if txn.metadata.paid_items:
        for paid in txn.metadata.paid_items:
            items = _unsettle(items, lambda i, pid=paid.product_id: i.product_id == pid, paid.quantity)
        return items

    for name, quantity in parse_legacy_paid_items(txn.description):
        items = _unsettle(items, lambda i, n=name: i.product_name == n, quantity)
    return items


def _expense_quantity(txn: Transaction) -> Optional[int]:
    """Units a stock-purchase expense put into stock, as delete will reverse them."""
    if txn.metadata.quantity is not None:
        return txn.metadata.quantity
    return parse_legacy_expense_quantity(txn.description)


def _check_edit(old: Transaction, new: Transaction) -> None:
    """
    Reject edits whose reversal would no longer match what was applied.

    Only amounts and expense metadata.quantity are reconciled on update;
    everything delete reads to undo a transaction must stay as recorded.
    """
    if new.type != old.type:
        raise ValidationError("transaction type cannot be changed")
    if new.reference_id != old.reference_id:
        raise ValidationError("reference_id cannot be changed")
    if new.metadata.skip_order_update != old.metadata.skip_order_update:
        raise ValidationError("metadata.skip_order_update cannot be changed")
    if new.metadata.paid_items != old.metadata.paid_items:
        raise ValidationError("metadata.paid_items cannot be changed")

    if old.type == TXN_EXPENSE:
        quantities = (old.metadata.quantity, new.metadata.quantity)
        if None in quantities and _expense_quantity(new) != _expense_quantity(old):
            raise ValidationError("stock purchase quantity can only be edited through metadata.quantity")

    if _affects_order(old) and not old.metadata.paid_items:
        if parse_legacy_paid_items(new.description) != parse_legacy_paid_items(old.description):
            raise ValidationError("itemized payment description cannot be changed")


def _locked_order(repo: Repository, txn: Transaction) -> Optional[Order]:
    order = repo.get(ORDERS, txn.reference_id, for_update=True)
    if order is None:
        logger.warning(
            "Payment %s references missing order %s; order not updated",
            txn.id, txn.reference_id,
        )
    return order


def _record_fields(txn: Transaction) -> dict:
    return {f.name: getattr(txn, f.name) for f in fields(txn) if f.name != "id"}


# =============================================================================
# QUERIES
# =============================================================================

def get_transaction(repo: Repository, transaction_id: str) -> Transaction:
    txn = repo.get(TRANSACTIONS, transaction_id)
    if txn is None:
        raise NotFoundError(TRANSACTIONS, transaction_id)
    return txn


def list_transactions(
    repo: Repository,
    *,
    txn_type: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> list[Transaction]:
    filters = {}
    if txn_type:
        filters["type"] = txn_type
    if reference_id:
        filters["reference_id"] = reference_id
    txns = repo.list(TRANSACTIONS, **filters)
    return sorted(txns, key=lambda t: (t.date, t.id), reverse=True)


# =============================================================================
# LEDGER OPERATIONS
# =============================================================================

def record_transaction(repo: Repository, txn: Transaction) -> TransactionChange:
    """
    Append a transaction. A payment referencing an order adds its amount to
    the order's paid amount and recomputes the status.

    Raises:
        ValidationError: non-positive amount or unknown payment method
        ConflictError: duplicate transaction id
    """
    _validate(txn)
    with repo.atomic():
        stored = repo.insert(TRANSACTIONS, txn)
        change = TransactionChange(transaction=stored)

        if _affects_order(stored):
            order = _locked_order(repo, stored)
            if order is not None:
                paid = order.paid_amount_cents + stored.amount_cents
                change.order = repo.update(
                    ORDERS,
                    order.id,
                    paid_amount_cents=paid,
                    status=resolve_payment_status(order, paid, order.status),
                    items=_settle_paid_items(order.items, stored.metadata.paid_items),
                )

        append_ledger_event(
            repo,
            event_type=EVENT_TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=stored.id,
            payload={
                "type": stored.type,
                "amount_cents": stored.amount_cents,
                "reference_id": stored.reference_id,
            },
        )
        return change


def update_transaction(repo: Repository, transaction_id: str, **changes) -> TransactionChange:
    """
    Edit a stored transaction.

    Expense quantity edits move stock by the difference; payment amount edits
    move the order's paid amount by the difference.

    Raises:
        NotFoundError: no transaction with this id
        ValidationError: the edited transaction is invalid, or the edit changes
            type, reference_id, skip_order_update or paid_items
    """
    changes.pop("id", None)
    with repo.atomic():
        old = repo.get(TRANSACTIONS, transaction_id, for_update=True)
        if old is None:
            raise NotFoundError(TRANSACTIONS, transaction_id)

        new = replace(old, **changes)
        _validate(new)
        _check_edit(old, new)
        change = TransactionChange(transaction=new)

        old_qty = old.metadata.quantity
        new_qty = new.metadata.quantity
        if (
            old.type == TXN_EXPENSE
            and old_qty is not None
            and new_qty is not None
            and old.reference_id
            and new.reference_id == old.reference_id
            and new_qty != old_qty
            and repo.get(PRODUCTS, old.reference_id) is not None
        ):
            change.stock = apply_deltas(
                repo,
                {old.reference_id: new_qty - old_qty},
                reference_type="transaction",
                reference_id=transaction_id,
                reason="stock purchase quantity edited",
            )

        amount_diff = new.amount_cents - old.amount_cents
        if _affects_order(old) and amount_diff:
            order = _locked_order(repo, old)
            if order is not None:
                paid = order.paid_amount_cents + amount_diff
                change.order = repo.update(
                    ORDERS,
                    order.id,
                    paid_amount_cents=paid,
                    status=resolve_payment_status(order, paid, order.status),
                )

        change.transaction = repo.update(TRANSACTIONS, transaction_id, **_record_fields(new))

        append_ledger_event(
            repo,
            event_type=EVENT_TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            payload={
                "amount_diff_cents": amount_diff,
                "stock_applied": change.stock.applied,
            },
        )
        return change


def delete_transaction(repo: Repository, transaction_id: str) -> Optional[TransactionChange]:
    """
    Undo a transaction's effects and delete it.

    Returns None (and changes nothing) when the transaction does not exist.
    """
    with repo.atomic():
        txn = repo.get(TRANSACTIONS, transaction_id, for_update=True)
        if txn is None:
            logger.info("Delete of unknown transaction %s ignored", transaction_id)
            return None

        change = TransactionChange(transaction=txn)

        if txn.type == TXN_EXPENSE and txn.reference_id:
            quantity = _expense_quantity(txn)
            if quantity:
                change.stock = apply_deltas(
                    repo,
                    {txn.reference_id: -quantity},
                    reference_type="transaction",
                    reference_id=transaction_id,
                    reason="stock purchase deleted",
                )

        if _affects_order(txn):
            order = _locked_order(repo, txn)
            if order is not None:
                paid = order.paid_amount_cents - txn.amount_cents
                change.order = repo.update(
                    ORDERS,
                    order.id,
                    paid_amount_cents=paid,
                    status=resolve_payment_status(order, paid, STATUS_PENDING),
                    items=_unsettle_paid_items(order.items, txn),
                )

        repo.delete(TRANSACTIONS, transaction_id)

        append_ledger_event(
            repo,
            event_type=EVENT_TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            payload={
                "type": txn.type,
                "amount_cents": txn.amount_cents,
                "reference_id": txn.reference_id,
                "stock_applied": change.stock.applied,
            },
        )
        return change


def record_stock_purchase(
    repo: Repository,
    *,
    product_id: str,
    quantity: int,
    cost_cents: int,
    provider_id: Optional[str] = None,
    payment_method: str = METHOD_CASH,
    date: Optional[datetime] = None,
) -> TransactionChange:
    """
    Receive purchased units into stock and book the matching expense.

    Raises:
        NotFoundError: unknown product or provider
        ValidationError: non-positive quantity or cost
    """
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if cost_cents <= 0:
        raise ValidationError("cost_cents must be > 0")

    with repo.atomic():
        product = repo.get(PRODUCTS, product_id)
        if product is None:
            raise NotFoundError(PRODUCTS, product_id)

        provider_name = None
        if provider_id:
            provider = repo.get(PROVIDERS, provider_id)
            if provider is None:
                raise NotFoundError(PROVIDERS, provider_id)
            provider_name = provider.name

        txn = Transaction(
            id=new_id("TXN"),
            type=TXN_EXPENSE,
            amount_cents=cost_cents,
            date=date or utcnow(),
            reference_id=product_id,
            description=f"Stock Purchase: {quantity}x {product.name}",
            payment_method=payment_method,
            provider_id=provider_id,
            provider_name=provider_name,
            metadata=TransactionMetadata(quantity=quantity, product_id=product_id),
        )
        change = record_transaction(repo, txn)
        change.stock = apply_deltas(
            repo,
            {product_id: quantity},
            reference_type="transaction",
            reference_id=txn.id,
            reason="stock purchase",
        )
        return change
