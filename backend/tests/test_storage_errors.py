"""
Tests for storage error translation and the transaction scope.
"""

import asyncio

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select
from sqlalchemy.exc import (
    IntegrityError,
    InvalidRequestError,
    OperationalError,
    ProgrammingError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from reservation_api.core.exceptions import (
    DuplicateReference,
    DuplicateReservation,
    StorageError,
    Timeout,
    ValidationError,
)
from reservation_api.db.errors import translate_storage_error
from reservation_api.db.session import transaction
from reservation_api.models.provider_schedule import ProviderSchedule
from reservation_api.services import reservation_store


class DriverError(Exception):
    """Stands in for a driver exception carrying a SQLSTATE."""

    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def operational(message, sqlstate=None):
    return OperationalError("SELECT 1", {}, DriverError(message, sqlstate))


def timeouts_seen() -> float:
    return REGISTRY.get_sample_value("reservation_storage_timeouts_total") or 0.0


async def _lock_rows(db) -> int:
    return (await db.execute(select(func.count()).select_from(ProviderSchedule))).scalar_one()


# ── translate_storage_error ──────────────────────────────────────────────


@pytest.mark.parametrize(
    "sqlstate",
    [
        "55P03",  # lock_not_available
        "57014",  # query_canceled
        "40P01",  # deadlock_detected
        "40001",  # serialization_failure
    ],
)
def test_retryable_sqlstates_become_timeout(sqlstate):
    error = translate_storage_error(operational("canceling statement", sqlstate))
    assert isinstance(error, Timeout)
    assert error.retryable is True
    assert error.status_code == 503


def test_sqlstate_on_wrapped_cause():
    # asyncpg errors reach SQLAlchemy wrapped in an adapter exception
    adapter = DriverError("adapter")
    adapter.__cause__ = DriverError("lock timeout", "55P03")
    error = translate_storage_error(OperationalError("SELECT 1", {}, adapter))
    assert isinstance(error, Timeout)


def test_sqlite_busy_becomes_timeout():
    assert isinstance(translate_storage_error(operational("database is locked")), Timeout)


def test_pool_timeout_becomes_timeout():
    assert isinstance(translate_storage_error(PoolTimeoutError("QueuePool limit reached")), Timeout)


def test_reference_violation_is_duplicate_reference():
    exc = IntegrityError(
        "INSERT", {}, DriverError('duplicate key value violates unique constraint "uq_reservations_reference"')
    )
    assert isinstance(translate_storage_error(exc), DuplicateReference)


def test_other_integrity_violation():
    exc = IntegrityError("INSERT", {}, DriverError("CHECK constraint failed: check_reservation_window\nDETAIL"))
    error = translate_storage_error(exc)
    assert type(error) is DuplicateReservation
    assert "check_reservation_window" in error.detail
    assert "DETAIL" not in error.detail


def test_other_driver_error_is_storage_error():
    error = translate_storage_error(ProgrammingError("SELECT", {}, DriverError("syntax error", "42601")))
    assert type(error) is StorageError
    assert error.retryable is False
    assert error.status_code == 500


def test_plain_sqlalchemy_error_is_storage_error():
    error = translate_storage_error(InvalidRequestError("session is closed"))
    assert type(error) is StorageError
    assert "InvalidRequestError" in error.detail


def test_reservation_errors_pass_through():
    original = ValidationError("slot_id", "must be positive")
    assert translate_storage_error(original) is original


def test_foreign_exceptions_are_refused():
    with pytest.raises(TypeError):
        translate_storage_error(KeyError("x"))


# ── transaction() ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_commit_on_success(db_session):
    async with transaction(db_session):
        await reservation_store.lock_provider_schedule(db_session, 5)
    assert await _lock_rows(db_session) == 1


@pytest.mark.asyncio
async def test_domain_error_rolls_back(db_session):
    with pytest.raises(ValidationError):
        async with transaction(db_session):
            await reservation_store.lock_provider_schedule(db_session, 5)
            raise ValidationError("slot_id", "must be positive")
    assert await _lock_rows(db_session) == 0


@pytest.mark.asyncio
async def test_storage_error_is_translated_and_rolled_back(db_session):
    before = timeouts_seen()
    with pytest.raises(Timeout) as exc_info:
        async with transaction(db_session):
            await reservation_store.lock_provider_schedule(db_session, 5)
            raise operational("lock timeout", "55P03")

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert timeouts_seen() == before + 1
    assert await _lock_rows(db_session) == 0


@pytest.mark.asyncio
async def test_unexpected_exception_rolls_back(db_session):
    with pytest.raises(RuntimeError):
        async with transaction(db_session):
            await reservation_store.lock_provider_schedule(db_session, 5)
            raise RuntimeError("boom")
    assert await _lock_rows(db_session) == 0


@pytest.mark.asyncio
async def test_cancelled_task_rolls_back(session_factory):
    entered = asyncio.Event()

    async def hold_transaction():
        async with session_factory() as session:
            async with transaction(session):
                await reservation_store.lock_provider_schedule(session, 5)
                entered.set()
                await asyncio.Event().wait()

    task = asyncio.create_task(hold_transaction())
    await entered.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    async with session_factory() as session:
        assert await _lock_rows(session) == 0
