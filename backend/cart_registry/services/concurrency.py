# Overview: Transaction runner; every state-changing operation commits through here.

from __future__ import annotations

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import (
    RegistryError,
    StoreConflictExhaustedError,
    StoreUnavailableError,
)


T = TypeVar("T")

DEFAULT_ATTEMPTS = 3

# OperationalError messages that mean "someone else holds the row", not "the store is down"
_CONFLICT_MARKERS = (
    "database is locked",
    "deadlock",
    "could not serialize",
    "lock wait timeout",
)


def is_write_conflict(exc: Exception) -> bool:
    """
    Classify a store exception as a retryable write conflict.

    - StaleDataError: version_id_col mismatch (optimistic lock lost)
    - IntegrityError: concurrent insert of the same primary key (e.g. two
      transactions both creating the cart for a new serial)
    - OperationalError: only lock/serialization failures
    """
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return True
    if isinstance(exc, OperationalError):
        text = str(exc).lower()
        return any(marker in text for marker in _CONFLICT_MARKERS)
    return False


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Optimistic version checks still catch lost updates on SQLite.
    """
    return query.with_for_update()


def run_in_transaction(
    body: Callable[[], T],
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    backoff_base: float = 0.05,
) -> T:
    """
    Run body() and commit, all-or-nothing.

    On a write conflict the session is rolled back and the WHOLE body is
    run again against fresh state, up to `attempts` times. The body must
    therefore be free of side effects outside the session (no mail, no
    fresh random ids).

    Raises:
        RegistryError: raised by the body itself, after rollback
        StoreConflictExhaustedError: conflicts on every attempt
        StoreUnavailableError: any other store failure (not retried)
    """
    attempts = max(1, int(attempts))
    last_exc: Exception | None = None

    for attempt in range(attempts):
        try:
            result = body()
            db.session.commit()
            return result
        except RegistryError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            if not is_write_conflict(exc):
                raise StoreUnavailableError(f"Store operation failed: {exc.__class__.__name__}") from exc
            last_exc = exc
            if attempt < attempts - 1:
                time.sleep(backoff_base * (2 ** attempt))

    raise StoreConflictExhaustedError(
        f"Transaction conflicted {attempts} times; giving up"
    ) from last_exc


def run_read(body: Callable[[], T]) -> T:
    """Run a read-only body, mapping store failures to StoreUnavailableError."""
    try:
        return body()
    except RegistryError:
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreUnavailableError(f"Store read failed: {exc.__class__.__name__}") from exc
