from __future__ import annotations

from ..extensions import db
from ..records import LedgerEvent


class LedgerEventRow(db.Model):
    """
    Append-only reconciliation event.

    Written inside the same DB transaction as the change it records.
    No updates or deletes.
    """
    __tablename__ = "ledger_events"
    __table_args__ = (
        db.Index("ix_ledger_events_type_occurred", "event_type", "occurred_at"),
        db.Index("ix_ledger_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    seq = db.Column(db.Integer, primary_key=True)
    id = db.Column(db.String(64), nullable=False, unique=True)
    event_type = db.Column(db.String(64), nullable=False)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(64), nullable=False)

    # occurred_at is business time; created_at is system time (db default)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)

    def to_record(self) -> LedgerEvent:
        return LedgerEvent(
            id=self.id,
            event_type=self.event_type,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            occurred_at=self.occurred_at,
            note=self.note,
            payload=dict(self.payload or {}),
        )

    @classmethod
    def from_record(cls, event: LedgerEvent) -> "LedgerEventRow":
        return cls(
            id=event.id,
            event_type=event.event_type,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            occurred_at=event.occurred_at,
            note=event.note,
            payload=dict(event.payload),
        )
