# Overview: Row-locking and atomic-increment helpers for the SQL data store.

from __future__ import annotations

from sqlalchemy import update


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def increment_column(model, record_id, column_name: str, delta: int):
    """
    Build UPDATE model SET column = column + :delta WHERE id = :record_id.

    The database applies the delta to whatever value is current at write time,
    so concurrent increments commute and none is lost to a stale read.
    """
    column = getattr(model, column_name)
    return (
        update(model)
        .where(model.id == record_id)
        .values({column_name: column + delta})
        .execution_options(synchronize_session=False)
    )
