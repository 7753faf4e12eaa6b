# Overview: Transaction scoping and retry helpers for stock-mutating operations.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the whole write
    transaction is serialized by BEGIN IMMEDIATE (see write_transaction).
    """
    return query.with_for_update()


def _begin_immediate(session) -> None:
    """
    Take SQLite's write lock before the first read of the unit of work.

    A deferred transaction would let two writers both read the same stock
    level before either writes. If the connection is already inside a
    transaction that has written, it already holds the write lock.
    """
    connection = session.connection()
    if connection.dialect.name != "sqlite":
        return
    if connection.connection.dbapi_connection.in_transaction:
        return
    session.execute(text("BEGIN IMMEDIATE"))


@contextmanager
def write_transaction(session=None):
    """
    Atomic unit of work for stock-mutating operations.

    Yields the session handle that must be passed explicitly to the
    inventory ledger. Commits when the block exits normally; on any
    exception the whole unit is rolled back before the exception propagates.
    """
    session = session or db.session
    try:
        _begin_immediate(session)
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Only OperationalError ("database is locked", deadlocks) is retried; domain
    errors propagate on the first attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
