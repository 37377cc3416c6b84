# Overview: Immutable record types shared by every data store backend.

"""
Record types for products, customers, providers, orders and transactions.

Records are frozen dataclasses: a change is a new record produced with
dataclasses.replace(), never an in-place mutation. Repositories store them
keyed by id.

Money is integer cents. Percentages are basis points (100 bps = 1%).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .time_utils import coerce_datetime, to_utc_z, utcnow
from .validation import (
    ValidationError,
    as_bool,
    as_int,
    as_str,
    require_choice,
    require_fields,
)


# =============================================================================
# ENUMERATIONS (CONSTANTS)
# =============================================================================

CUSTOMER_PHARMACY = "PHARMACY"
CUSTOMER_STORE = "STORE"
CUSTOMER_DIRECT = "DIRECT"

VALID_CUSTOMER_TYPES = [CUSTOMER_PHARMACY, CUSTOMER_STORE, CUSTOMER_DIRECT]

CONDITION_GOOD = "GOOD"
CONDITION_EXPIRED = "EXPIRED"

VALID_CONDITIONS = [CONDITION_GOOD, CONDITION_EXPIRED]

STATUS_DRAFT = "DRAFT"
STATUS_PENDING = "PENDING"
STATUS_PARTIAL = "PARTIAL"
STATUS_PAID = "PAID"
STATUS_RETURNED = "RETURNED"

VALID_ORDER_STATUSES = [STATUS_DRAFT, STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID, STATUS_RETURNED]

TXN_PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
TXN_EXPENSE = "EXPENSE"
TXN_DEPOSIT_TO_HQ = "DEPOSIT_TO_HQ"

VALID_TRANSACTION_TYPES = [TXN_PAYMENT_RECEIVED, TXN_EXPENSE, TXN_DEPOSIT_TO_HQ]

METHOD_CASH = "CASH"
METHOD_BANK_TRANSFER = "BANK_TRANSFER"

VALID_PAYMENT_METHODS = [METHOD_CASH, METHOD_BANK_TRANSFER]

# Repository collection names
PRODUCTS = "products"
CUSTOMERS = "customers"
PROVIDERS = "providers"
ORDERS = "orders"
TRANSACTIONS = "transactions"

KINDS = (PRODUCTS, CUSTOMERS, PROVIDERS, ORDERS, TRANSACTIONS)


def new_id(prefix: str) -> str:
    """Human-readable unique id, e.g. ORD-3F2A9C1B7E44."""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


# =============================================================================
# CATALOG
# =============================================================================

@dataclass(frozen=True)
class Product:
    id: str
    name: str
    base_price_cents: int = 0
    # Single source of truth for available units. May go negative (oversell).
    stock: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "base_price_cents": self.base_price_cents,
            "stock": self.stock,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        require_fields(data, ["name"])
        return cls(
            id=as_str(data.get("id")) or new_id("PRD"),
            name=as_str(data["name"]),
            base_price_cents=as_int(data.get("base_price_cents"), "base_price_cents", default=0),
            stock=as_int(data.get("stock"), "stock", default=0),
        )


@dataclass(frozen=True)
class Customer:
    id: str
    name: str
    type: str = CUSTOMER_PHARMACY
    address: Optional[str] = None
    # Sales territory tag
    brick: Optional[str] = None
    default_discount_bps: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "address": self.address,
            "brick": self.brick,
            "default_discount_bps": self.default_discount_bps,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Customer":
        require_fields(data, ["name"])
        customer_type = as_str(data.get("type"), default=CUSTOMER_PHARMACY)
        require_choice(customer_type, VALID_CUSTOMER_TYPES, "customer type")
        return cls(
            id=as_str(data.get("id")) or new_id("CUS"),
            name=as_str(data["name"]),
            type=customer_type,
            address=as_str(data.get("address")) or None,
            brick=as_str(data.get("brick")) or None,
            default_discount_bps=as_int(data.get("default_discount_bps"), "default_discount_bps", default=0),
        )


@dataclass(frozen=True)
class Provider:
    id: str
    name: str
    contact_info: Optional[str] = None
    bank_details: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_info": self.contact_info,
            "bank_details": self.bank_details,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Provider":
        require_fields(data, ["name"])
        return cls(
            id=as_str(data.get("id")) or new_id("PRV"),
            name=as_str(data["name"]),
            contact_info=as_str(data.get("contact_info")) or None,
            bank_details=as_str(data.get("bank_details")) or None,
        )


# =============================================================================
# ORDERS
# =============================================================================

@dataclass(frozen=True)
class OrderItem:
    product_id: str
    # Snapshot of the product name at order time
    product_name: str = ""
    quantity: int = 0
    # Free units: move stock, never priced
    bonus_quantity: int = 0
    unit_price_cents: int = 0
    discount_cents: int = 0
    discount_bps: int = 0
    subtotal_cents: int = 0
    # Returns only: GOOD is restocked, EXPIRED is discarded
    condition: Optional[str] = None
    # Grows only through payment transactions naming this product
    paid_quantity: int = 0

    @property
    def effective_quantity(self) -> int:
        return self.quantity + self.bonus_quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "bonus_quantity": self.bonus_quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "discount_bps": self.discount_bps,
            "subtotal_cents": self.subtotal_cents,
            "condition": self.condition,
            "paid_quantity": self.paid_quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OrderItem":
        require_fields(data, ["product_id"])
        condition = as_str(data.get("condition")) or None
        require_choice(condition, VALID_CONDITIONS, "condition", allow_none=True)
        quantity = as_int(data.get("quantity"), "quantity", default=0)
        bonus = as_int(data.get("bonus_quantity"), "bonus_quantity", default=0)
        if quantity < 0 or bonus < 0:
            raise ValidationError("quantity and bonus_quantity must be >= 0")
        return cls(
            product_id=as_str(data["product_id"]),
            product_name=as_str(data.get("product_name"), default=""),
            quantity=quantity,
            bonus_quantity=bonus,
            unit_price_cents=as_int(data.get("unit_price_cents"), "unit_price_cents", default=0),
            discount_cents=as_int(data.get("discount_cents"), "discount_cents", default=0),
            discount_bps=as_int(data.get("discount_bps"), "discount_bps", default=0),
            subtotal_cents=as_int(data.get("subtotal_cents"), "subtotal_cents", default=0),
            condition=condition,
            paid_quantity=max(0, as_int(data.get("paid_quantity"), "paid_quantity", default=0)),
        )


@dataclass(frozen=True)
class Order:
    id: str
    customer_id: str
    customer_name: str = ""
    date: datetime = field(default_factory=utcnow)
    items: tuple[OrderItem, ...] = ()
    # Signed: positive for sales, negative for returns (credit)
    total_amount_cents: int = 0
    paid_amount_cents: int = 0
    status: str = STATUS_PENDING
    is_draft: bool = False
    is_return: bool = False
    notes: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "date": to_utc_z(self.date),
            "items": [item.to_dict() for item in self.items],
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "status": self.status,
            "is_draft": self.is_draft,
            "is_return": self.is_return,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Order":
        require_fields(data, ["customer_id"])
        status = as_str(data.get("status")) or None
        require_choice(status, VALID_ORDER_STATUSES, "status", allow_none=True)
        # A DRAFT status implies a draft even when the flag was not sent
        is_draft = as_bool(data.get("is_draft")) or status == STATUS_DRAFT
        try:
            order_date = coerce_datetime(data.get("date"))
        except ValueError:
            raise ValidationError("date must be an ISO-8601 date or datetime")
        return cls(
            id=as_str(data.get("id")) or new_id("ORD"),
            customer_id=as_str(data["customer_id"]),
            customer_name=as_str(data.get("customer_name"), default=""),
            date=order_date,
            items=tuple(OrderItem.from_dict(i) for i in (data.get("items") or [])),
            total_amount_cents=as_int(data.get("total_amount_cents"), "total_amount_cents", default=0),
            paid_amount_cents=as_int(data.get("paid_amount_cents"), "paid_amount_cents", default=0),
            status=status or STATUS_PENDING,
            is_draft=is_draft,
            is_return=as_bool(data.get("is_return")),
            notes=as_str(data.get("notes"), default=""),
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

@dataclass(frozen=True)
class PaidItem:
    product_id: str
    quantity: int

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity}


@dataclass(frozen=True)
class TransactionMetadata:
    # Stock purchases: units bought
    quantity: Optional[int] = None
    product_id: Optional[str] = None
    # Payments: which order lines this payment settles
    paid_items: tuple[PaidItem, ...] = ()
    # Suppress the automatic order paid-amount/status update
    skip_order_update: bool = False

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.quantity is not None:
            data["quantity"] = self.quantity
        if self.product_id is not None:
            data["product_id"] = self.product_id
        if self.paid_items:
            data["paid_items"] = [p.to_dict() for p in self.paid_items]
        if self.skip_order_update:
            data["skip_order_update"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict | None) -> "TransactionMetadata":
        if not data:
            return cls()
        paid_items = []
        for raw in data.get("paid_items") or []:
            require_fields(raw, ["product_id", "quantity"])
            qty = as_int(raw["quantity"], "paid_items.quantity")
            if qty <= 0:
                raise ValidationError("paid_items.quantity must be > 0")
            paid_items.append(PaidItem(product_id=as_str(raw["product_id"]), quantity=qty))
        return cls(
            quantity=as_int(data.get("quantity"), "metadata.quantity"),
            product_id=as_str(data.get("product_id")) or None,
            paid_items=tuple(paid_items),
            skip_order_update=as_bool(data.get("skip_order_update")),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    type: str
    # Always a positive magnitude
    amount_cents: int
    date: datetime = field(default_factory=utcnow)
    # Order id for payments, product id for stock-purchase expenses
    reference_id: Optional[str] = None
    description: str = ""
    payment_method: Optional[str] = None
    provider_id: Optional[str] = None
    provider_name: Optional[str] = None
    metadata: TransactionMetadata = field(default_factory=TransactionMetadata)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "date": to_utc_z(self.date),
            "reference_id": self.reference_id,
            "description": self.description,
            "payment_method": self.payment_method,
            "provider_id": self.provider_id,
            "provider_name": self.provider_name,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        require_fields(data, ["type", "amount_cents"])
        txn_type = as_str(data["type"])
        require_choice(txn_type, VALID_TRANSACTION_TYPES, "transaction type")
        method = as_str(data.get("payment_method")) or None
        require_choice(method, VALID_PAYMENT_METHODS, "payment method", allow_none=True)
        try:
            txn_date = coerce_datetime(data.get("date"))
        except ValueError:
            raise ValidationError("date must be an ISO-8601 date or datetime")
        return cls(
            id=as_str(data.get("id")) or new_id("TXN"),
            type=txn_type,
            amount_cents=as_int(data["amount_cents"], "amount_cents"),
            date=txn_date,
            reference_id=as_str(data.get("reference_id")) or None,
            description=as_str(data.get("description"), default=""),
            payment_method=method,
            provider_id=as_str(data.get("provider_id")) or None,
            provider_name=as_str(data.get("provider_name")) or None,
            metadata=TransactionMetadata.from_dict(data.get("metadata")),
        )


# =============================================================================
# LEDGER EVENTS
# =============================================================================

@dataclass(frozen=True)
class LedgerEvent:
    """Append-only record of a reconciliation step (never updated or deleted)."""
    id: str
    event_type: str
    entity_type: str
    entity_id: str
    occurred_at: datetime = field(default_factory=utcnow)
    note: Optional[str] = None
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
            "payload": dict(self.payload),
        }

