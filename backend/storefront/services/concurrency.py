# Overview: Locking and retry helpers for stock and status read-modify-write.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking to a query whose rows are about to be mutated.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the version_id column
    on Product and Sale turns a lost update into a StaleDataError instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a unit of work, retrying on lock contention (OperationalError)
    and optimistic version conflicts (StaleDataError).

    Domain errors raised by func propagate immediately; the session is
    rolled back first so no partial write survives.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update detected, retrying (attempt %d of %d)", attempt + 2, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
