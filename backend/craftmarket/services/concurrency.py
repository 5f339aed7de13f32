# Overview: Row locking and retry helpers for cart and order writes.

from __future__ import annotations

import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Lock the selected rows until the transaction ends.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the cart and order version
    columns catch the lost update there instead.
    """
    return query.with_for_update()


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05, retry_on=RETRYABLE_ERRORS):
    """
    Run func (which reads, mutates and commits) and rerun it from scratch on
    any error in retry_on. The default covers OperationalError (lock timeouts,
    deadlocks) and StaleDataError (a version column moved underneath us).
    func must be safe to repeat.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            if has_app_context():
                current_app.logger.warning(
                    "Concurrent write conflict, retrying (attempt %s/%s): %s",
                    attempt + 1, attempts, exc.__class__.__name__,
                )
            time.sleep(backoff_base * (2 ** attempt))

