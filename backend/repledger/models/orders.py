from __future__ import annotations

from ..extensions import db
from ..records import Order, OrderItem


class OrderRow(db.Model):
    """
    Sales order or customer return.

    Items are owned by the order and embedded as a JSON list; they have no
    identity outside it. total_amount_cents is signed (negative for returns).
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_customer_date", "customer_id", "date"),
        db.Index("ix_orders_status", "status"),
    )

    id = db.Column(db.String(64), primary_key=True)
    customer_id = db.Column(db.String(64), nullable=False)
    customer_name = db.Column(db.String(255), nullable=False, default="")
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    items = db.Column(db.JSON, nullable=False, default=list)

    # Payment tracking (all amounts in cents)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Lifecycle status
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    is_draft = db.Column(db.Boolean, nullable=False, default=False)
    is_return = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, nullable=False, default="")

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_record(self) -> Order:
        return Order(
            id=self.id,
            customer_id=self.customer_id,
            customer_name=self.customer_name or "",
            date=self.date,
            items=tuple(OrderItem.from_dict(item) for item in (self.items or [])),
            total_amount_cents=self.total_amount_cents or 0,
            paid_amount_cents=self.paid_amount_cents or 0,
            status=self.status,
            # Older rows may only carry the DRAFT status
            is_draft=bool(self.is_draft or self.status == "DRAFT"),
            is_return=bool(self.is_return),
            notes=self.notes or "",
        )

    def apply_record(self, record: Order) -> None:
        self.id = record.id
        self.customer_id = record.customer_id
        self.customer_name = record.customer_name
        self.date = record.date
        self.items = [item.to_dict() for item in record.items]
        self.total_amount_cents = record.total_amount_cents
        self.paid_amount_cents = record.paid_amount_cents
        self.status = record.status
        self.is_draft = record.is_draft
        self.is_return = record.is_return
        self.notes = record.notes
