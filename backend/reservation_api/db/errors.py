"""
Translation of storage-engine errors into the reservation error taxonomy.

PostgreSQL reports lock and statement timeouts through SQLSTATE codes; SQLite
reports writer contention as "database is locked". Both become `Timeout`, the
only error the core marks as safe to retry.
"""

from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from reservation_api.core.exceptions import (
    DuplicateReference,
    DuplicateReservation,
    ReservationError,
    StorageError,
    Timeout,
)

# lock_not_available, query_canceled (statement_timeout), deadlock_detected,
# serialization_failure
RETRYABLE_SQLSTATES = {"55P03", "57014", "40P01", "40001"}

REFERENCE_MARKERS = (
    "uq_reservations_reference",
    "uq_reservations_uuid",
    "reservations.reference",
    "reservations.uuid",
)


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def translate_storage_error(exc: Exception) -> ReservationError:
    """Map a SQLAlchemy/driver exception to a ReservationError instance."""
    if isinstance(exc, ReservationError):
        return exc

    if isinstance(exc, PoolTimeoutError):
        return Timeout("timed out waiting for a database connection")

    if isinstance(exc, IntegrityError):
        message = str(exc.orig if exc.orig is not None else exc)
        if any(marker in message for marker in REFERENCE_MARKERS):
            return DuplicateReference()
        return DuplicateReservation(f"constraint violation: {message.splitlines()[0]}")

    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in RETRYABLE_SQLSTATES:
            return Timeout()
        if "database is locked" in str(exc.orig):
            return Timeout()
        return StorageError(f"{type(exc.orig).__name__ if exc.orig is not None else 'DBAPIError'}")

    if isinstance(exc, SQLAlchemyError):
        return StorageError(type(exc).__name__)

    raise TypeError(f"not a storage error: {exc!r}")
