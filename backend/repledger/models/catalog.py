from __future__ import annotations

from ..extensions import db
from ..records import Customer, Product, Provider


class ProductRow(db.Model):
    """
    Product master data.

    stock is the single source of truth for available units. After creation it
    only changes through SqlRepository.adjust_stock (UPDATE stock = stock + delta),
    so there is deliberately no version_id column here: the atomic increment,
    not optimistic locking, is what keeps concurrent deltas from being lost.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name", "name"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    base_price_cents = db.Column(db.Integer, nullable=False, default=0)

    # Signed: negative stock signals an oversell and is tolerated
    stock = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<ProductRow id={self.id!r} name={self.name!r} stock={self.stock}>"

    def to_record(self) -> Product:
        return Product(
            id=self.id,
            name=self.name,
            base_price_cents=self.base_price_cents or 0,
            stock=self.stock or 0,
        )

    def apply_record(self, record: Product) -> None:
        self.id = record.id
        self.name = record.name
        self.base_price_cents = record.base_price_cents
        self.stock = record.stock


class CustomerRow(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_brick", "brick"),
    )

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, default="PHARMACY")
    address = db.Column(db.String(255), nullable=True)
    brick = db.Column(db.String(128), nullable=True)
    default_discount_bps = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_record(self) -> Customer:
        return Customer(
            id=self.id,
            name=self.name,
            type=self.type,
            address=self.address,
            brick=self.brick,
            default_discount_bps=self.default_discount_bps or 0,
        )

    def apply_record(self, record: Customer) -> None:
        self.id = record.id
        self.name = record.name
        self.type = record.type
        self.address = record.address
        self.brick = record.brick
        self.default_discount_bps = record.default_discount_bps


class ProviderRow(db.Model):
    """Supplier paid through stock-purchase expenses."""
    __tablename__ = "providers"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_info = db.Column(db.String(255), nullable=True)
    bank_details = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_record(self) -> Provider:
        return Provider(
            id=self.id,
            name=self.name,
            contact_info=self.contact_info,
            bank_details=self.bank_details,
        )

    def apply_record(self, record: Provider) -> None:
        self.id = record.id
        self.name = record.name
        self.contact_info = record.contact_info
        self.bank_details = record.bank_details
