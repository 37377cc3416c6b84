from __future__ import annotations

from ..extensions import db
from ..records import Transaction, TransactionMetadata


class TransactionRow(db.Model):
    """
    Financial transaction: payment received, expense, or deposit to HQ.

    reference_id is a weak reference (order id for payments, product id for
    stock-purchase expenses) resolved by lookup, never a foreign key.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_reference", "reference_id"),
        db.Index("ix_transactions_type_date", "type", "date"),
    )

    id = db.Column(db.String(64), primary_key=True)
    type = db.Column(db.String(32), nullable=False)

    # Positive magnitude in cents
    amount_cents = db.Column(db.Integer, nullable=False)
    date = db.Column(db.DateTime(timezone=True), nullable=False)

    reference_id = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=False, default="")
    payment_method = db.Column(db.String(32), nullable=True)
    provider_id = db.Column(db.String(64), nullable=True)
    provider_name = db.Column(db.String(255), nullable=True)

    # "metadata" is reserved on declarative classes
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def to_record(self) -> Transaction:
        return Transaction(
            id=self.id,
            type=self.type,
            amount_cents=self.amount_cents,
            date=self.date,
            reference_id=self.reference_id,
            description=self.description or "",
            payment_method=self.payment_method,
            provider_id=self.provider_id,
            provider_name=self.provider_name,
            metadata=TransactionMetadata.from_dict(self.meta),
        )

    def apply_record(self, record: Transaction) -> None:
        self.id = record.id
        self.type = record.type
        self.amount_cents = record.amount_cents
        self.date = record.date
        self.reference_id = record.reference_id
        self.description = record.description
        self.payment_method = record.payment_method
        self.provider_id = record.provider_id
        self.provider_name = record.provider_name
        self.meta = record.metadata.to_dict()
