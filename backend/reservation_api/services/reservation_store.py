"""
Persistence for reservations and their history.

CONCURRENCY STRATEGY: Provider Schedule Lock + Row Locks
========================================================

Problem:
  Two customers ask for overlapping windows with the same provider at the
  same time. Both run the overlap query, both see an empty window, both
  insert. Result: a double-booked provider.

  Locking the existing reservations with SELECT ... FOR UPDATE does not help
  when the window is empty: there is nothing to lock, so both writers pass.

Solution:
  Every conflict-checked write takes a row lock on the provider's entry in
  `provider_schedules` before running the overlap query.

  1. INSERT the provider row if missing (ON CONFLICT DO NOTHING)
  2. SELECT provider_schedules WHERE provider_id = :id FOR UPDATE
  3. SELECT reservations.id ... overlap predicate ... FOR UPDATE
  4. If any id comes back -> SlotConflict, else insert/update

  Writers on one provider's timeline queue on step 2; the second one runs the
  overlap query only after the first has committed, and sees its row.
  Different providers never wait on each other. Lock waits are bounded by
  `lock_timeout` (see db/session.py) and surface as Timeout.

  SQLite ignores FOR UPDATE, but its single writer lock (taken by step 1)
  gives the same serialisation for the test suite.

Overlap predicate (half-open windows, back-to-back slots never conflict):
  existing.scheduled_start < :end AND existing.scheduled_end > :start
  AND existing.status IN (pending, confirmed, in_progress)

Mutation functions here are field-scoped: they write what they are given to a
row the caller already fetched with `for_update=True`. Rules about which
changes are legal live in the reservation service.
"""

import functools
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_api.core.exceptions import NotFound
from reservation_api.core.logging import get_logger
from reservation_api.core.metrics import record_conflict_check
from reservation_api.db.errors import translate_storage_error
from reservation_api.domain.enums import (
    BLOCKING_STATUSES,
    CANCELLED_STATUSES,
    ActorRole,
    ChangeType,
    PaymentStatus,
    ReservationStatus,
)
from reservation_api.domain.pricing import CENT, PricingBreakdown
from reservation_api.models.provider_schedule import ProviderSchedule
from reservation_api.models.reservation import Reservation
from reservation_api.models.reservation_history import ReservationHistory

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def storage_errors(func):
    """Re-raise SQLAlchemy/driver errors as ReservationError subclasses."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise translate_storage_error(exc) from exc

    return wrapper


def _overlap_query(
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
):
    query = select(Reservation.id).where(
        Reservation.provider_id == provider_id,
        Reservation.status.in_(sorted(BLOCKING_STATUSES, key=lambda s: s.value)),
        Reservation.scheduled_start < end,
        Reservation.scheduled_end > start,
    )
    if exclude_id is not None:
        query = query.where(Reservation.id != exclude_id)
    return query


# ── Conflict checks ──────────────────────────────────────────────────────


@storage_errors
async def check_conflict(
    db: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> bool:
    """Read-only overlap check. Takes no locks; the answer can be stale."""
    result = await db.execute(_overlap_query(provider_id, start, end, exclude_id).limit(1))
    conflict = result.scalar_one_or_none() is not None
    record_conflict_check("read", conflict)
    return conflict


@storage_errors
async def lock_provider_schedule(db: AsyncSession, provider_id: int) -> None:
    """Create the provider's lock row if needed, then hold it until commit."""
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is not None:
        await db.execute(
            insert(ProviderSchedule)
            .values(provider_id=provider_id)
            .on_conflict_do_nothing(index_elements=[ProviderSchedule.provider_id])
        )
    elif await db.get(ProviderSchedule, provider_id) is None:
        db.add(ProviderSchedule(provider_id=provider_id))
        await db.flush()

    await db.execute(
        select(ProviderSchedule.provider_id)
        .where(ProviderSchedule.provider_id == provider_id)
        .with_for_update()
    )


@storage_errors
async def check_conflict_for_update(
    db: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> bool:
    """
    Overlap check that holds its answer until the transaction ends.

    Must run inside the caller's transaction, before the write it guards.
    """
    await lock_provider_schedule(db, provider_id)
    result = await db.execute(
        _overlap_query(provider_id, start, end, exclude_id)
        .order_by(Reservation.id)
        .with_for_update()
    )
    conflicting_ids = list(result.scalars().all())
    conflict = bool(conflicting_ids)
    record_conflict_check("locking", conflict)
    if conflict:
        logger.info(
            "overlap_detected",
            provider_id=provider_id,
            start=start.isoformat(),
            end=end.isoformat(),
            conflicting_ids=conflicting_ids,
        )
    return conflict


# ── Create / read ────────────────────────────────────────────────────────


@storage_errors
async def create(db: AsyncSession, reservation: Reservation) -> Reservation:
    db.add(reservation)
    await db.flush()
    await db.refresh(reservation)
    return reservation


@storage_errors
async def find_by_id(db: AsyncSession, reservation_id: int, for_update: bool = False) -> Reservation:
    query = select(Reservation).where(Reservation.id == reservation_id)
    if for_update:
        # The identity map may hold a stale copy from an earlier read.
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise NotFound(
            f"Reservation {reservation_id} not found",
            extra_data={"reservation_id": reservation_id},
        )
    return reservation


@storage_errors
async def find_by_reference(db: AsyncSession, reference: str) -> Reservation:
    result = await db.execute(select(Reservation).where(Reservation.reference == reference))
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise NotFound(f"Reservation {reference} not found", extra_data={"reference": reference})
    return reservation


@storage_errors
async def find_by_uuid(db: AsyncSession, reservation_uuid: str) -> Reservation:
    result = await db.execute(select(Reservation).where(Reservation.uuid == reservation_uuid))
    reservation = result.scalar_one_or_none()
    if reservation is None:
        raise NotFound(f"Reservation {reservation_uuid} not found", extra_data={"uuid": reservation_uuid})
    return reservation


@storage_errors
async def list_for_provider(
    db: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
    statuses: Optional[Iterable[ReservationStatus]] = None,
) -> List[Reservation]:
    """Reservations of one provider overlapping [start, end), earliest first."""
    query = select(Reservation).where(
        Reservation.provider_id == provider_id,
        Reservation.scheduled_start < end,
        Reservation.scheduled_end > start,
    )
    if statuses is not None:
        query = query.where(Reservation.status.in_(list(statuses)))
    query = query.order_by(Reservation.scheduled_start.asc(), Reservation.id.asc())
    result = await db.execute(query)
    return list(result.scalars().all())


@storage_errors
async def list_for_customer(
    db: AsyncSession,
    customer_id: int,
    statuses: Optional[Iterable[ReservationStatus]] = None,
    payment_status: Optional[PaymentStatus] = None,
    start_from: Optional[datetime] = None,
    start_to: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Reservation]:
    """A customer's reservations, most recent appointment first."""
    query = select(Reservation).where(Reservation.customer_id == customer_id)
    if statuses is not None:
        query = query.where(Reservation.status.in_(list(statuses)))
    if payment_status is not None:
        query = query.where(Reservation.payment_status == payment_status)
    if start_from is not None:
        query = query.where(Reservation.scheduled_start >= start_from)
    if start_to is not None:
        query = query.where(Reservation.scheduled_start < start_to)
    query = (
        query.order_by(Reservation.scheduled_start.desc(), Reservation.id.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


@dataclass(frozen=True)
class ProviderStats:
    total: int
    completed: int
    cancelled: int
    no_show: int
    total_revenue: Decimal
    average_price: Decimal


def _cents(value: Any) -> Decimal:
    # SUM/AVG come back as Decimal on PostgreSQL and float on SQLite
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


@storage_errors
async def provider_stats(
    db: AsyncSession,
    provider_id: int,
    start: datetime,
    end: datetime,
) -> ProviderStats:
    """
    Counts by outcome for appointments starting in [start, end).
    Revenue and average price only count completed reservations.
    """
    completed = Reservation.status == ReservationStatus.COMPLETED
    query = select(
        func.count(Reservation.id),
        func.count(case((completed, 1))),
        func.count(case((Reservation.status.in_(list(CANCELLED_STATUSES)), 1))),
        func.count(case((Reservation.status == ReservationStatus.NO_SHOW, 1))),
        func.sum(case((completed, Reservation.total_price))),
        func.avg(case((completed, Reservation.total_price))),
    ).where(
        Reservation.provider_id == provider_id,
        Reservation.scheduled_start >= start,
        Reservation.scheduled_start < end,
    )
    total, done, cancelled, no_show, revenue, average = (await db.execute(query)).one()
    return ProviderStats(
        total=total,
        completed=done,
        cancelled=cancelled,
        no_show=no_show,
        total_revenue=_cents(revenue),
        average_price=_cents(average),
    )


# ── Field-scoped mutations ───────────────────────────────────────────────


async def _save(db: AsyncSession, reservation: Reservation) -> Reservation:
    await db.flush()
    # Reload server-side values (updated_at) without an async lazy load.
    await db.refresh(reservation)
    return reservation


@storage_errors
async def update_status(
    db: AsyncSession,
    reservation: Reservation,
    status: ReservationStatus,
    actual_start: Optional[datetime] = None,
    actual_end: Optional[datetime] = None,
) -> Reservation:
    reservation.status = status
    if actual_start is not None:
        reservation.actual_start = actual_start
    if actual_end is not None:
        reservation.actual_end = actual_end
    return await _save(db, reservation)


@storage_errors
async def cancel(
    db: AsyncSession,
    reservation: Reservation,
    status: ReservationStatus,
    cancelled_at: datetime,
    cancelled_by_role: ActorRole,
    cancelled_by_id: Optional[int] = None,
    reason: Optional[str] = None,
    fee: Decimal = Decimal("0.00"),
) -> Reservation:
    reservation.status = status
    reservation.cancelled_at = cancelled_at
    reservation.cancelled_by_role = cancelled_by_role
    reservation.cancelled_by_id = cancelled_by_id
    reservation.cancellation_reason = reason
    reservation.cancellation_fee = fee
    return await _save(db, reservation)


@storage_errors
async def update_payment_status(
    db: AsyncSession,
    reservation: Reservation,
    payment_status: PaymentStatus,
    payment_method: Optional[str] = None,
    payment_reference: Optional[str] = None,
    paid_at: Optional[datetime] = None,
) -> Reservation:
    reservation.payment_status = payment_status
    if payment_method is not None:
        reservation.payment_method = payment_method
    if payment_reference is not None:
        reservation.payment_reference = payment_reference
    if paid_at is not None:
        reservation.paid_at = paid_at
    return await _save(db, reservation)


@storage_errors
async def reschedule(
    db: AsyncSession,
    reservation: Reservation,
    start: datetime,
    end: datetime,
) -> Reservation:
    reservation.scheduled_start = start
    reservation.scheduled_end = end
    reservation.duration_minutes = int((end - start).total_seconds() // 60)
    return await _save(db, reservation)


@storage_errors
async def reprice(
    db: AsyncSession,
    reservation: Reservation,
    breakdown: PricingBreakdown,
    tip_amount: Optional[Decimal] = None,
) -> Reservation:
    reservation.apply_pricing(breakdown)
    if tip_amount is not None:
        reservation.tip_amount = tip_amount
    return await _save(db, reservation)


# ── History ──────────────────────────────────────────────────────────────


@storage_errors
async def create_history(
    db: AsyncSession,
    reservation_id: int,
    change_type: ChangeType,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    actor_role: Optional[ActorRole] = None,
    actor_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> ReservationHistory:
    entry = ReservationHistory(
        reservation_id=reservation_id,
        change_type=change_type,
        old_values=old_values or {},
        new_values=new_values or {},
        actor_role=actor_role,
        actor_id=actor_id,
        reason=reason,
    )
    db.add(entry)
    await db.flush()
    await db.refresh(entry)
    return entry


@storage_errors
async def get_history(db: AsyncSession, reservation_id: int) -> List[ReservationHistory]:
    """History rows of one reservation, newest first."""
    exists = await db.execute(select(Reservation.id).where(Reservation.id == reservation_id))
    if exists.scalar_one_or_none() is None:
        raise NotFound(
            f"Reservation {reservation_id} not found",
            extra_data={"reservation_id": reservation_id},
        )
    result = await db.execute(
        select(ReservationHistory)
        .where(ReservationHistory.reservation_id == reservation_id)
        .order_by(ReservationHistory.created_at.desc(), ReservationHistory.id.desc())
    )
    return list(result.scalars().all())
