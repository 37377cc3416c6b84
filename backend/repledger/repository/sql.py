# Overview: Relational data store backed by Flask-SQLAlchemy.

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import replace
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import CustomerRow, LedgerEventRow, OrderRow, ProductRow, ProviderRow, TransactionRow
from ..records import CUSTOMERS, ORDERS, PRODUCTS, PROVIDERS, TRANSACTIONS, LedgerEvent
from ..validation import ConflictError, NotFoundError, ValidationError
from .base import DataStoreError, Repository
from .concurrency import increment_column, lock_for_update

_ROWS = {
    PRODUCTS: ProductRow,
    CUSTOMERS: CustomerRow,
    PROVIDERS: ProviderRow,
    ORDERS: OrderRow,
    TRANSACTIONS: TransactionRow,
}

_DEPTH_KEY = "repledger.atomic_depth"


def _column_values(kind: str, fields: dict) -> dict:
    """Translate record-level fields to column values."""
    values = dict(fields)
    if kind == ORDERS and "items" in values:
        values["items"] = [item.to_dict() for item in values["items"]]
    if kind == TRANSACTIONS and "metadata" in values:
        values["meta"] = values.pop("metadata").to_dict()
    return values


class SqlRepository(Repository):
    """
    Repository over the application's SQLAlchemy session.

    atomic() maps onto the session transaction: the outermost block commits,
    any error rolls the whole unit back. Stock changes are single UPDATE
    statements; order/transaction reads for update take row locks.
    """

    backend_name = "sql"

    @contextmanager
    def atomic(self):
        session = db.session
        depth = session.info.get(_DEPTH_KEY, 0)
        session.info[_DEPTH_KEY] = depth + 1
        try:
            yield self
            if depth == 0:
                session.commit()
        except SQLAlchemyError as exc:
            if depth == 0:
                session.rollback()
            raise DataStoreError(str(exc)) from exc
        except BaseException:
            if depth == 0:
                session.rollback()
            raise
        finally:
            session.info[_DEPTH_KEY] = depth

    def _query(self, kind: str):
        self._check_kind(kind)
        # Reads always reflect the database, never a stale identity-map copy
        return db.session.query(_ROWS[kind]).populate_existing()

    def _row(self, kind: str, record_id: str, *, for_update: bool = False):
        query = self._query(kind).filter_by(id=record_id)
        if for_update:
            query = lock_for_update(query)
        return query.first()

    def get(self, kind: str, record_id: str, *, for_update: bool = False):
        with self.atomic():
            row = self._row(kind, record_id, for_update=for_update)
            return row.to_record() if row is not None else None

    def list(self, kind: str, **equals) -> list:
        with self.atomic():
            row_cls = _ROWS.get(kind)
            query = self._query(kind)
            if equals:
                query = query.filter_by(**equals)
            rows = query.order_by(row_cls.created_at, row_cls.id).all()
            return [row.to_record() for row in rows]

    def insert(self, kind: str, record):
        self._check_kind(kind)
        with self.atomic():
            row_cls = _ROWS[kind]
            exists = db.session.query(row_cls.id).filter_by(id=record.id).first()
            if exists is not None:
                raise ConflictError(f"{kind} {record.id} already exists")
            row = row_cls()
            row.apply_record(record)
            db.session.add(row)
            db.session.flush()
            return row.to_record()

    def update(self, kind: str, record_id: str, **fields):
        with self.atomic():
            row = self._row(kind, record_id)
            if row is None:
                raise NotFoundError(kind, record_id)
            fields.pop("id", None)
            try:
                updated = replace(row.to_record(), **fields)
            except TypeError as exc:
                raise ValidationError(str(exc)) from exc
            # Only touch the given columns so untouched ones (e.g. stock) keep
            # whatever concurrent writers stored.
            for column, value in _column_values(kind, fields).items():
                setattr(row, column, value)
            db.session.flush()
            return updated

    def delete(self, kind: str, record_id: str) -> bool:
        with self.atomic():
            row = self._row(kind, record_id)
            if row is None:
                return False
            db.session.delete(row)
            db.session.flush()
            return True

    def delete_where(self, kind: str, **equals) -> int:
        with self.atomic():
            rows = self._query(kind).filter_by(**equals).all()
            for row in rows:
                db.session.delete(row)
            db.session.flush()
            return len(rows)

    def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        with self.atomic():
            result = db.session.execute(increment_column(ProductRow, product_id, "stock", delta))
            if result.rowcount == 0:
                return None
            return db.session.query(ProductRow.stock).filter_by(id=product_id).scalar()

    def append_event(self, event: LedgerEvent) -> LedgerEvent:
        with self.atomic():
            db.session.add(LedgerEventRow.from_record(event))
            db.session.flush()
            return event

    def list_events(
        self,
        *,
        event_type: str | None = None,
        entity_id: str | None = None,
        limit: int | None = None,
    ) -> list[LedgerEvent]:
        with self.atomic():
            query = db.session.query(LedgerEventRow)
            if event_type is not None:
                query = query.filter(LedgerEventRow.event_type == event_type)
            if entity_id is not None:
                query = query.filter(LedgerEventRow.entity_id == entity_id)
            if limit is not None:
                rows = query.order_by(LedgerEventRow.seq.desc()).limit(max(limit, 0)).all()
                rows.reverse()
            else:
                rows = query.order_by(LedgerEventRow.seq).all()
            return [row.to_record() for row in rows]
