# Overview: Transaction boundaries, row locking and retry for every write unit of work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from ..errors import TransientStorageError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write() takes the
    database write lock up front there instead.

    Rows already in the session's identity map are overwritten with what the
    locked read returns, so checks never run on state loaded before the lock.
    """
    return query.with_for_update().populate_existing()


def begin_write() -> None:
    """
    Open the write transaction for a unit of work.

    - sqlite: BEGIN IMMEDIATE, so concurrent writers serialize on the
      database lock for the whole check-and-decrement. The busy timeout is
      configured on the engine (see create_app).
    - postgresql: bound lock waits and statement time for this transaction.
    """
    dialect = db.engine.dialect.name
    if dialect == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        timeout_ms = int(current_app.config["UNIT_OF_WORK_TIMEOUT_SECONDS"] * 1000)
        db.session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))
        db.session.execute(text(f"SET LOCAL statement_timeout = {timeout_ms}"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts, "database is
    locked"). Once the budget is spent the failure surfaces as
    TransientStorageError, which callers may retry as a whole.
    """
    if attempts is None:
        attempts = current_app.config["UNIT_OF_WORK_RETRY_ATTEMPTS"]
    if backoff_base is None:
        backoff_base = current_app.config["UNIT_OF_WORK_RETRY_BACKOFF_SECONDS"]

    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.error("Unit of work failed after %d attempts: %s", attempts, exc)
                raise TransientStorageError(
                    "Storage temporarily unavailable, retry the operation",
                    details={"attempts": attempts},
                ) from exc
            current_app.logger.warning(
                "Unit of work attempt %d/%d failed, retrying: %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))


def run_in_transaction(func, **retry_kwargs):
    """
    Run func inside one atomic write unit of work and commit it.

    Any exception rolls the whole unit back, so no partial write is ever
    visible.
    """
    def _op():
        try:
            begin_write()
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return run_with_retry(_op, **retry_kwargs)
