# Overview: Service-layer operations for products, customers and providers.

"""
Catalog Service

Products, customers and providers are plain reference data. Two rules:
- product stock is set only at creation; afterwards it moves through the
  stock service (orders, purchases, manual adjustments)
- deleting a customer deletes each of their orders through the order
  lifecycle, so stock is reversed and their transactions removed
"""

from __future__ import annotations

import logging

from ..records import (
    CUSTOMER_DIRECT,
    CUSTOMER_PHARMACY,
    CUSTOMER_STORE,
    CUSTOMERS,
    ORDERS,
    PRODUCTS,
    PROVIDERS,
    VALID_CUSTOMER_TYPES,
    Customer,
    Product,
    Provider,
)
from ..repository import Repository
from ..validation import (
    NotFoundError,
    ValidationError,
    as_int,
    as_str,
    enforce_rules_discount_bps,
    enforce_rules_price,
    require_choice,
)
from .order_service import delete_order

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "base_price_cents"}
CUSTOMER_MUTABLE_FIELDS = {"name", "type", "address", "brick", "default_discount_bps"}
PROVIDER_MUTABLE_FIELDS = {"name", "contact_info", "bank_details"}


def _patch(kind: str, patch: dict, allowed: set) -> dict:
    fields = {}
    for key, value in patch.items():
        if key not in allowed:
            continue
        fields[key] = value
    if "name" in fields and not as_str(fields["name"]):
        raise ValidationError(f"{kind} name cannot be empty")
    return fields


def _require(repo: Repository, kind: str, record_id: str):
    record = repo.get(kind, record_id)
    if record is None:
        raise NotFoundError(kind, record_id)
    return record


def _by_name(records):
    return sorted(records, key=lambda r: (r.name.lower(), r.id))


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products(repo: Repository) -> list[Product]:
    return _by_name(repo.list(PRODUCTS))


def get_product(repo: Repository, product_id: str) -> Product:
    return _require(repo, PRODUCTS, product_id)


def create_product(repo: Repository, product: Product) -> Product:
    enforce_rules_price(product.base_price_cents, "base_price_cents")
    with repo.atomic():
        return repo.insert(PRODUCTS, product)


def update_product(repo: Repository, product_id: str, patch: dict) -> Product:
    """
    Rename or reprice a product.

    Raises:
        ValidationError: the patch tries to set stock directly
    """
    if "stock" in patch:
        raise ValidationError("stock cannot be set directly; use a stock adjustment")
    fields = _patch(PRODUCTS, patch, PRODUCT_MUTABLE_FIELDS)
    if "base_price_cents" in fields:
        fields["base_price_cents"] = as_int(fields["base_price_cents"], "base_price_cents")
        enforce_rules_price(fields["base_price_cents"], "base_price_cents")
    if "name" in fields:
        fields["name"] = as_str(fields["name"])

    with repo.atomic():
        _require(repo, PRODUCTS, product_id)
        return repo.update(PRODUCTS, product_id, **fields)


def delete_product(repo: Repository, product_id: str) -> None:
    """
    Remove a product. Orders keep their name snapshot; later reconciliation
    touching this product is skipped and recorded as a missing-product event.
    """
    with repo.atomic():
        if not repo.delete(PRODUCTS, product_id):
            raise NotFoundError(PRODUCTS, product_id)


# =============================================================================
# CUSTOMERS
# =============================================================================

def list_customers(repo: Repository) -> list[Customer]:
    return _by_name(repo.list(CUSTOMERS))


def get_customer(repo: Repository, customer_id: str) -> Customer:
    return _require(repo, CUSTOMERS, customer_id)


def create_customer(repo: Repository, customer: Customer) -> Customer:
    enforce_rules_discount_bps(customer.default_discount_bps, "default_discount_bps")
    with repo.atomic():
        return repo.insert(CUSTOMERS, customer)


def update_customer(repo: Repository, customer_id: str, patch: dict) -> Customer:
    fields = _patch(CUSTOMERS, patch, CUSTOMER_MUTABLE_FIELDS)
    if "type" in fields:
        require_choice(fields["type"], VALID_CUSTOMER_TYPES, "customer type")
    if "default_discount_bps" in fields:
        fields["default_discount_bps"] = as_int(fields["default_discount_bps"], "default_discount_bps")
        enforce_rules_discount_bps(fields["default_discount_bps"], "default_discount_bps")

    with repo.atomic():
        _require(repo, CUSTOMERS, customer_id)
        return repo.update(CUSTOMERS, customer_id, **fields)


def delete_customer(repo: Repository, customer_id: str) -> int:
    """
    Delete a customer and every order they own.

    Returns:
        Number of orders deleted.
    """
    with repo.atomic():
        _require(repo, CUSTOMERS, customer_id)
        orders = repo.list(ORDERS, customer_id=customer_id)
        for order in orders:
            delete_order(repo, order.id)
        repo.delete(CUSTOMERS, customer_id)

    logger.info("Deleted customer %s with %d order(s)", customer_id, len(orders))
    return len(orders)


# =============================================================================
# PROVIDERS
# =============================================================================

def list_providers(repo: Repository) -> list[Provider]:
    return _by_name(repo.list(PROVIDERS))


def create_provider(repo: Repository, provider: Provider) -> Provider:
    with repo.atomic():
        return repo.insert(PROVIDERS, provider)


def update_provider(repo: Repository, provider_id: str, patch: dict) -> Provider:
    fields = _patch(PROVIDERS, patch, PROVIDER_MUTABLE_FIELDS)
    with repo.atomic():
        _require(repo, PROVIDERS, provider_id)
        return repo.update(PROVIDERS, provider_id, **fields)


def delete_provider(repo: Repository, provider_id: str) -> None:
    # Expenses keep provider_name, so past transactions stay readable
    with repo.atomic():
        if not repo.delete(PROVIDERS, provider_id):
            raise NotFoundError(PROVIDERS, provider_id)


# =============================================================================
# DEMO DATA (CONSTANTS)
# =============================================================================

DEMO_PRODUCTS = [
    Product(id="p1", name="Colitra Plus (new)Tab", base_price_cents=20000, stock=1000),
    Product(id="p2", name="Colitra Plus Tab (Strips) 280", base_price_cents=28000, stock=500),
    Product(id="p3", name="Colitra Plus Tab", base_price_cents=17000, stock=800),
    Product(id="p4", name="Colitra Sach", base_price_cents=14000, stock=1200),
    Product(id="p5", name="Rolltron Cream", base_price_cents=5000, stock=300),
    Product(id="p6", name="Colitra Sach (new) 170", base_price_cents=17000, stock=600),
    Product(id="p7", name="Rolltron Cream 55", base_price_cents=5500, stock=200),
    Product(id="p8", name="Rolltron Cream 60", base_price_cents=6000, stock=200),
    Product(id="p9", name="Rolltron Cream 65", base_price_cents=6500, stock=150),
    Product(id="p10", name="Rolltron Cream 75", base_price_cents=7500, stock=150),
    Product(id="p11", name="Trafitz Tab", base_price_cents=14000, stock=900),
    Product(id="p12", name="Colitra Plus Tab (Strips) 345", base_price_cents=34500, stock=400),
]

DEMO_CUSTOMERS = [
    Customer(id="c1", name="Al-Amal Pharmacy", type=CUSTOMER_PHARMACY, address="Downtown St.", brick="Downtown"),
    Customer(id="c2", name="Care Store", type=CUSTOMER_STORE, address="Market District", brick="Market"),
    Customer(id="c3", name="Dr. John Doe", type=CUSTOMER_DIRECT, address="Private Clinic", brick="Uptown"),
    Customer(
        id="c4",
        name="City Central Pharmacy",
        type=CUSTOMER_PHARMACY,
        address="Main Blvd",
        brick="Central",
        default_discount_bps=500,
    ),
]


def seed_demo_data(repo: Repository) -> dict:
    """
    Insert the demo catalog into an empty store.

    Idempotent: records whose id already exists are left untouched.
    """
    created = {PRODUCTS: 0, CUSTOMERS: 0}
    with repo.atomic():
        for kind, records in ((PRODUCTS, DEMO_PRODUCTS), (CUSTOMERS, DEMO_CUSTOMERS)):
            for record in records:
                if repo.get(kind, record.id) is None:
                    repo.insert(kind, record)
                    created[kind] += 1
    logger.info("Demo data seeded: %s", created)
    return created
