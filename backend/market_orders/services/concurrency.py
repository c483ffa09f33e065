# Overview: Database-level locking helpers; no in-process locks are used anywhere.

from __future__ import annotations

from sqlalchemy import text

from ..extensions import db


# Advisory lock key serializing staff identity creation / PIN changes (PostgreSQL)
IDENTITY_LOCK_KEY = 7_340_001


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def serialize_identity_writes() -> None:
    """
    Serialize PIN-uniqueness check-then-insert across processes.

    Must be the first statement of the transaction that performs the check.
    - SQLite: BEGIN IMMEDIATE takes the database write lock up front.
    - PostgreSQL: transaction-scoped advisory lock, released on commit/rollback.
    - Other dialects: no-op (the race is accepted there).
    """
    dialect = db.engine.dialect.name
    if dialect == "sqlite":
        driver_conn = db.session.connection().connection.driver_connection
        if not driver_conn.in_transaction:
            db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        db.session.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": IDENTITY_LOCK_KEY})
