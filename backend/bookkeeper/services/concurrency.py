# Overview: Retry helpers for optimistic-locking and lock contention failures.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). `func` must be safe to re-run from
    scratch: it is called again after a rollback.

    Never wrap the second half of a bank-record conversion in this helper;
    re-running it could create a second transaction.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after concurrency failure (attempt %s): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
