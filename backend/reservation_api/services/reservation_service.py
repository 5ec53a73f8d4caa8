"""
Reservation service: validation, transaction scope, conflict checks,
pricing, persistence and audit for every reservation write.

This is the only module that changes reservation rows. Each write runs in one
`transaction(db)` scope and appends exactly one history row before commit, so
a reservation and its audit trail never disagree. Any failure rolls the whole
scope back and is re-raised unchanged.

Lock order for writes that move a reservation in time (reserve, reschedule):
provider schedule row first, then reservation rows. Status-only writes lock
just the reservation row.
"""

import enum
import secrets
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.ext.asyncio import AsyncSession

from reservation_api.core.config import Settings, get_settings
from reservation_api.core.exceptions import (
    CancellationNotAllowed,
    CannotModifyTerminal,
    InvalidPricingInput,
    ReservationError,
    SlotConflict,
    ValidationError,
)
from reservation_api.core.logging import get_logger
from reservation_api.core.metrics import (
    record_reservation_attempt,
    record_status_transition,
    reservation_write_latency,
)
from reservation_api.db.session import transaction
from reservation_api.domain.enums import (
    CANCELLED_STATUSES,
    ActorRole,
    ChangeType,
    PaymentStatus,
    ReservationStatus,
)
from reservation_api.domain.pricing import ZERO, Number, calculate_pricing, money
from reservation_api.domain.state_machine import (
    allowed_transitions as table_transitions,
    is_terminal,
    parse_status,
    validate_transition,
)
from reservation_api.models.reservation import Reservation
from reservation_api.models.reservation_history import ReservationHistory
from reservation_api.services import reservation_store
from reservation_api.services.cache_service import invalidate_provider_schedule
from reservation_api.services.interfaces import (
    CustomerDirectory,
    EmptyServiceCatalog,
    OpenCustomerDirectory,
    OpenProviderDirectory,
    ProviderDirectory,
    ServiceCatalog,
    ServiceDetails,
)

logger = get_logger(__name__)

# `cancel` is stricter than the transition table: in-progress work is not
# cancellable through it.
CANCELLABLE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)

# Accepted by change_status in place of a tagged variant; the actor's role
# picks cancelled_by_customer or cancelled_by_provider.
GENERIC_CANCELLED = "cancelled"
MAX_PAGE_SIZE = 100

PRICING_FIELDS = (
    "service_price", "discount_amount", "tax_rate", "sub_total",
    "tax_amount", "total_price", "tip_amount", "currency",
)
TIMING_FIELDS = ("scheduled_start", "scheduled_end", "duration_minutes")
CANCELLATION_FIELDS = (
    "status", "cancelled_at", "cancelled_by_role", "cancelled_by_id",
    "cancellation_reason", "cancellation_fee",
)
PAYMENT_FIELDS = ("payment_status", "payment_method", "payment_reference", "paid_at")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime, field: str) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if not isinstance(value, datetime):
        raise ValidationError(field, "must be a datetime")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def generate_reference(now: datetime) -> str:
    """Human-readable code: BK + YYYYMMDD + 4 random digits."""
    return f"BK{now:%Y%m%d}{secrets.randbelow(10000):04d}"


def _json_value(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot(reservation: Reservation, fields: Iterable[str]) -> Dict[str, Any]:
    """JSON-safe copy of the named reservation fields for history rows."""
    return {name: _json_value(getattr(reservation, name)) for name in fields}


@dataclass(frozen=True)
class Actor:
    """Who performs an operation. Recorded on history and cancellation."""

    role: ActorRole = ActorRole.SYSTEM
    id: Optional[int] = None


SYSTEM_ACTOR = Actor()


@dataclass(frozen=True)
class ReservationPolicy:
    min_notice: timedelta = timedelta(minutes=60)
    max_advance: timedelta = timedelta(days=30)
    min_duration_minutes: int = 15
    max_duration_minutes: int = 480
    default_tax_rate: Decimal = Decimal("0.08")
    default_currency: str = "USD"

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ReservationPolicy":
        settings = settings or get_settings()
        return cls(
            min_notice=timedelta(minutes=settings.BOOKING_MIN_NOTICE_MINUTES),
            max_advance=timedelta(days=settings.BOOKING_MAX_ADVANCE_DAYS),
            min_duration_minutes=settings.BOOKING_MIN_DURATION_MINUTES,
            max_duration_minutes=settings.BOOKING_MAX_DURATION_MINUTES,
            default_tax_rate=settings.DEFAULT_TAX_RATE,
            default_currency=settings.DEFAULT_CURRENCY,
        )


@dataclass(frozen=True)
class ReserveRequest:
    """
    Input for `reserve`.

    `service_name` and `service_price` may be left out when `service_id`
    names a service the catalog knows; the catalog values are used then.
    `tax_rate` and `currency` default to the policy's values.
    """

    provider_id: int
    slot_id: int
    scheduled_start: datetime
    scheduled_end: datetime
    service_name: Optional[str] = None
    service_price: Optional[Number] = None
    discount_amount: Number = 0
    tax_rate: Optional[Number] = None
    currency: Optional[str] = None
    tip_amount: Number = 0
    service_id: Optional[int] = None
    service_category: Optional[str] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    special_requests: Optional[str] = None
    booking_source: str = "web_app"


class ReservationService:
    """
    Orchestrates reservation writes and reads.

    Collaborators are read-only lookups owned by other parts of the system;
    the permissive defaults accept every provider and customer and trust the
    request's own service data.
    """

    def __init__(
        self,
        providers: Optional[ProviderDirectory] = None,
        catalog: Optional[ServiceCatalog] = None,
        customers: Optional[CustomerDirectory] = None,
        policy: Optional[ReservationPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
        reference_factory: Optional[Callable[[datetime], str]] = None,
    ):
        self.providers = providers or OpenProviderDirectory()
        self.catalog = catalog or EmptyServiceCatalog()
        self.customers = customers or OpenCustomerDirectory()
        self.policy = policy or ReservationPolicy.from_settings()
        self._clock = clock or utcnow
        self._reference_factory = reference_factory or generate_reference

    # ── Validation helpers ───────────────────────────────────────────────

    def _validate_window(self, start: datetime, end: datetime, now: datetime) -> int:
        """Check a requested window against the booking policy; returns minutes."""
        if end <= start:
            raise ValidationError("scheduled_end", "must be after scheduled_start")
        span = end - start
        if span % timedelta(minutes=1):
            raise ValidationError("scheduled_end", "window must be a whole number of minutes")
        duration = span // timedelta(minutes=1)

        policy = self.policy
        if duration < policy.min_duration_minutes:
            raise ValidationError(
                "duration_minutes", f"must be at least {policy.min_duration_minutes} minutes"
            )
        if duration > policy.max_duration_minutes:
            raise ValidationError(
                "duration_minutes", f"cannot exceed {policy.max_duration_minutes} minutes"
            )
        if start < now + policy.min_notice:
            notice_minutes = int(policy.min_notice.total_seconds() // 60)
            raise ValidationError(
                "scheduled_start", f"must be at least {notice_minutes} minutes in advance"
            )
        if start > now + policy.max_advance:
            raise ValidationError(
                "scheduled_start", f"cannot be more than {policy.max_advance.days} days in advance"
            )
        return duration

    @staticmethod
    def _validate_guest(request: ReserveRequest) -> None:
        if not (request.customer_name or "").strip():
            raise ValidationError("customer_name", "is required for guest reservations")
        email = (request.customer_email or "").strip()
        phone = (request.customer_phone or "").strip()
        if not email and not phone:
            raise ValidationError("customer_email", "email or phone is required for guest reservations")
        if email and "@" not in email:
            raise ValidationError("customer_email", "is not a valid email address")

    @staticmethod
    def _non_negative(value: Number, field: str) -> Decimal:
        """Money input check shared by reserve, cancel and reprice."""
        amount = money(value, field)
        if amount < 0:
            raise InvalidPricingInput(field, "cannot be negative")
        return amount

    async def _lookup_service(self, service_id: Optional[int]) -> Optional[ServiceDetails]:
        if service_id is None:
            return None
        details = await self.catalog.get_service(service_id)
        if details is not None and not details.is_active:
            raise ValidationError("service_id", "service is not available")
        return details

    @staticmethod
    def _resolve_target(target_status: Union[ReservationStatus, str], actor: Actor) -> ReservationStatus:
        if target_status == GENERIC_CANCELLED:
            return ReservationStatus.cancelled_for(actor.role)
        return parse_status(target_status)

    # ── Writes ───────────────────────────────────────────────────────────

    async def reserve(
        self,
        db: AsyncSession,
        request: ReserveRequest,
        actor: Optional[Actor] = None,
    ) -> Reservation:
        """
        Admit a new reservation in `pending`.

        Raises ValidationError for bad input, SlotConflict when the window
        overlaps an active reservation of the same provider.
        """
        actor = actor or Actor(ActorRole.CUSTOMER, request.customer_id)
        with reservation_write_latency.labels(operation="reserve").time():
            try:
                reservation = await self._reserve(db, request, actor)
            except SlotConflict:
                record_reservation_attempt("conflict")
                raise
            except ReservationError as exc:
                record_reservation_attempt("error" if exc.status_code >= 500 else "rejected")
                raise

        record_reservation_attempt("success")
        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_created",
            reservation_id=reservation.id,
            reference=reservation.reference,
            provider_id=reservation.provider_id,
            start=reservation.scheduled_start.isoformat(),
            end=reservation.scheduled_end.isoformat(),
            total_price=str(reservation.total_price),
        )
        return reservation

    async def _reserve(self, db: AsyncSession, request: ReserveRequest, actor: Actor) -> Reservation:
        now = self._clock()

        if request.provider_id is None or request.provider_id <= 0:
            raise ValidationError("provider_id", "must be a positive integer")
        if request.slot_id is None or request.slot_id <= 0:
            raise ValidationError("slot_id", "must be a positive integer")

        details = await self._lookup_service(request.service_id)
        service_name = (request.service_name or (details.name if details else "")).strip()
        if not service_name:
            raise ValidationError("service_name", "is required")

        price_input = request.service_price
        if price_input is None and details is not None:
            price_input = details.default_price
        if price_input is None:
            raise ValidationError("service_price", "is required")
        service_price = self._non_negative(price_input, "service_price")
        discount = self._non_negative(request.discount_amount, "discount_amount")
        tip = self._non_negative(request.tip_amount, "tip_amount")

        start = ensure_utc(request.scheduled_start, "scheduled_start")
        end = ensure_utc(request.scheduled_end, "scheduled_end")
        duration = self._validate_window(start, end, now)
        if details is not None and duration != details.duration_minutes:
            raise ValidationError(
                "scheduled_end", f"duration must be {details.duration_minutes} minutes for this service"
            )

        if request.customer_id is None:
            self._validate_guest(request)
        if not await self.providers.is_active(request.provider_id):
            raise ValidationError("provider_id", "provider is not accepting reservations")
        if request.customer_id is not None and not await self.customers.exists(request.customer_id):
            raise ValidationError("customer_id", "customer not found")

        tax_rate = request.tax_rate if request.tax_rate is not None else self.policy.default_tax_rate
        currency = request.currency or self.policy.default_currency

        async with transaction(db):
            if await reservation_store.check_conflict_for_update(db, request.provider_id, start, end):
                logger.warning(
                    "reservation_conflict",
                    provider_id=request.provider_id,
                    start=start.isoformat(),
                    end=end.isoformat(),
                )
                raise SlotConflict(request.provider_id, start, end)

            breakdown = calculate_pricing(service_price, discount, tax_rate, currency)

            reservation = Reservation(
                uuid=str(uuid.uuid4()),
                reference=self._reference_factory(now),
                provider_id=request.provider_id,
                customer_id=request.customer_id,
                customer_name=request.customer_name,
                customer_email=request.customer_email,
                customer_phone=request.customer_phone,
                slot_id=request.slot_id,
                service_id=request.service_id,
                service_name=service_name,
                service_category=request.service_category or (details.category if details else None),
                duration_minutes=duration,
                scheduled_start=start,
                scheduled_end=end,
                status=ReservationStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                tip_amount=tip,
                cancellation_fee=ZERO,
                notes=request.notes,
                special_requests=request.special_requests,
                booking_source=request.booking_source,
            )
            reservation.apply_pricing(breakdown)
            reservation = await reservation_store.create(db, reservation)

            await reservation_store.create_history(
                db,
                reservation.id,
                ChangeType.CREATED,
                new_values=snapshot(reservation, ("status", *TIMING_FIELDS, "total_price", "currency")),
                actor_role=actor.role,
                actor_id=actor.id,
            )

        return reservation

    async def change_status(
        self,
        db: AsyncSession,
        reservation_id: int,
        target_status: Union[ReservationStatus, str],
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Reservation:
        """
        Move a reservation along the transition table.

        Entering in_progress stamps actual_start, completed stamps actual_end,
        a cancelled variant stamps the cancellation metadata.
        """
        with reservation_write_latency.labels(operation="change_status").time():
            async with transaction(db):
                reservation = await reservation_store.find_by_id(db, reservation_id, for_update=True)
                previous = reservation.status
                target = validate_transition(previous, self._resolve_target(target_status, actor))
                now = self._clock()

                if target.is_cancelled:
                    reservation = await reservation_store.cancel(
                        db,
                        reservation,
                        target,
                        cancelled_at=now,
                        cancelled_by_role=actor.role,
                        cancelled_by_id=actor.id,
                        reason=reason,
                    )
                    new_values = snapshot(reservation, CANCELLATION_FIELDS)
                elif target is ReservationStatus.IN_PROGRESS:
                    reservation = await reservation_store.update_status(db, reservation, target, actual_start=now)
                    new_values = snapshot(reservation, ("status", "actual_start"))
                elif target is ReservationStatus.COMPLETED:
                    reservation = await reservation_store.update_status(db, reservation, target, actual_end=now)
                    new_values = snapshot(reservation, ("status", "actual_end"))
                else:
                    reservation = await reservation_store.update_status(db, reservation, target)
                    new_values = snapshot(reservation, ("status",))

                await reservation_store.create_history(
                    db,
                    reservation.id,
                    ChangeType.STATUS_CHANGED,
                    old_values={"status": previous.value},
                    new_values=new_values,
                    actor_role=actor.role,
                    actor_id=actor.id,
                    reason=reason,
                )

        record_status_transition(target.value)
        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_status_changed",
            reservation_id=reservation.id,
            from_status=previous.value,
            to_status=target.value,
            actor_role=actor.role.value,
        )
        return reservation

    async def reschedule(
        self,
        db: AsyncSession,
        reservation_id: int,
        new_start: datetime,
        new_end: datetime,
        actor: Actor,
        reason: Optional[str] = None,
    ) -> Reservation:
        """Move a non-terminal reservation to a new window. Status is unchanged."""
        start = ensure_utc(new_start, "scheduled_start")
        end = ensure_utc(new_end, "scheduled_end")
        self._validate_window(start, end, self._clock())

        with reservation_write_latency.labels(operation="reschedule").time():
            async with transaction(db):
                current = await reservation_store.find_by_id(db, reservation_id)
                await reservation_store.lock_provider_schedule(db, current.provider_id)
                reservation = await reservation_store.find_by_id(db, reservation_id, for_update=True)

                if is_terminal(reservation.status):
                    raise CannotModifyTerminal(reservation.id, reservation.status)

                conflict = await reservation_store.check_conflict_for_update(
                    db, reservation.provider_id, start, end, exclude_id=reservation.id
                )
                if conflict:
                    logger.warning(
                        "reschedule_conflict",
                        reservation_id=reservation.id,
                        provider_id=reservation.provider_id,
                        start=start.isoformat(),
                        end=end.isoformat(),
                    )
                    raise SlotConflict(reservation.provider_id, start, end)

                old_values = snapshot(reservation, TIMING_FIELDS)
                reservation = await reservation_store.reschedule(db, reservation, start, end)
                await reservation_store.create_history(
                    db,
                    reservation.id,
                    ChangeType.RESCHEDULED,
                    old_values=old_values,
                    new_values=snapshot(reservation, TIMING_FIELDS),
                    actor_role=actor.role,
                    actor_id=actor.id,
                    reason=reason,
                )

        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_rescheduled",
            reservation_id=reservation.id,
            old_start=old_values["scheduled_start"],
            new_start=start.isoformat(),
        )
        return reservation

    async def cancel(
        self,
        db: AsyncSession,
        reservation_id: int,
        actor: Actor,
        reason: Optional[str] = None,
        fee: Number = 0,
    ) -> Reservation:
        """Cancel a pending or confirmed reservation on behalf of `actor`."""
        fee_amount = self._non_negative(fee, "cancellation_fee")

        with reservation_write_latency.labels(operation="cancel").time():
            async with transaction(db):
                reservation = await reservation_store.find_by_id(db, reservation_id, for_update=True)
                previous = reservation.status
                if previous not in CANCELLABLE_STATUSES:
                    logger.warning(
                        "cancellation_rejected",
                        reservation_id=reservation.id,
                        status=previous.value,
                    )
                    raise CancellationNotAllowed(reservation.id, previous, CANCELLABLE_STATUSES)
                if fee_amount > reservation.total_price:
                    raise ValidationError("cancellation_fee", "cannot exceed the reservation total")

                target = validate_transition(previous, ReservationStatus.cancelled_for(actor.role))
                reservation = await reservation_store.cancel(
                    db,
                    reservation,
                    target,
                    cancelled_at=self._clock(),
                    cancelled_by_role=actor.role,
                    cancelled_by_id=actor.id,
                    reason=reason,
                    fee=fee_amount,
                )
                await reservation_store.create_history(
                    db,
                    reservation.id,
                    ChangeType.CANCELLED,
                    old_values={"status": previous.value},
                    new_values=snapshot(reservation, CANCELLATION_FIELDS),
                    actor_role=actor.role,
                    actor_id=actor.id,
                    reason=reason,
                )

        record_status_transition(target.value)
        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_cancelled",
            reservation_id=reservation.id,
            status=target.value,
            fee=str(fee_amount),
            actor_role=actor.role.value,
        )
        return reservation

    async def reprice(
        self,
        db: AsyncSession,
        reservation_id: int,
        actor: Actor,
        service_price: Optional[Number] = None,
        discount_amount: Optional[Number] = None,
        tax_rate: Optional[Number] = None,
        tip_amount: Optional[Number] = None,
        reason: Optional[str] = None,
    ) -> Reservation:
        """Recompute the breakdown of a non-terminal reservation. Omitted inputs keep their value."""
        tip = self._non_negative(tip_amount, "tip_amount") if tip_amount is not None else None

        with reservation_write_latency.labels(operation="reprice").time():
            async with transaction(db):
                reservation = await reservation_store.find_by_id(db, reservation_id, for_update=True)
                if is_terminal(reservation.status):
                    raise CannotModifyTerminal(reservation.id, reservation.status)

                breakdown = calculate_pricing(
                    service_price if service_price is not None else reservation.service_price,
                    discount_amount if discount_amount is not None else reservation.discount_amount,
                    tax_rate if tax_rate is not None else reservation.tax_rate,
                    reservation.currency,
                )
                old_values = snapshot(reservation, PRICING_FIELDS)
                reservation = await reservation_store.reprice(db, reservation, breakdown, tip_amount=tip)
                await reservation_store.create_history(
                    db,
                    reservation.id,
                    ChangeType.REPRICED,
                    old_values=old_values,
                    new_values=snapshot(reservation, PRICING_FIELDS),
                    actor_role=actor.role,
                    actor_id=actor.id,
                    reason=reason,
                )

        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_repriced",
            reservation_id=reservation.id,
            old_total=old_values["total_price"],
            new_total=str(reservation.total_price),
        )
        return reservation

    async def update_payment_status(
        self,
        db: AsyncSession,
        reservation_id: int,
        payment_status: Union[PaymentStatus, str],
        actor: Actor,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> Reservation:
        """Record a payment outcome. Allowed in any lifecycle status; `paid` stamps paid_at."""
        try:
            new_status = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError("payment_status", f"unknown payment status: {payment_status!r}") from None

        with reservation_write_latency.labels(operation="payment").time():
            async with transaction(db):
                reservation = await reservation_store.find_by_id(db, reservation_id, for_update=True)
                old_values = snapshot(reservation, PAYMENT_FIELDS)
                reservation = await reservation_store.update_payment_status(
                    db,
                    reservation,
                    new_status,
                    payment_method=payment_method,
                    payment_reference=payment_reference,
                    paid_at=self._clock() if new_status is PaymentStatus.PAID else None,
                )
                await reservation_store.create_history(
                    db,
                    reservation.id,
                    ChangeType.PAYMENT_UPDATED,
                    old_values=old_values,
                    new_values=snapshot(reservation, PAYMENT_FIELDS),
                    actor_role=actor.role,
                    actor_id=actor.id,
                )

        await invalidate_provider_schedule(reservation.provider_id)
        logger.info(
            "reservation_payment_updated",
            reservation_id=reservation.id,
            payment_status=new_status.value,
        )
        return reservation

    # ── Reads ────────────────────────────────────────────────────────────

    async def get_reservation(self, db: AsyncSession, reservation_id: int) -> Reservation:
        return await reservation_store.find_by_id(db, reservation_id)

    async def get_by_reference(self, db: AsyncSession, reference: str) -> Reservation:
        return await reservation_store.find_by_reference(db, reference)

    async def get_by_uuid(self, db: AsyncSession, reservation_uuid: str) -> Reservation:
        return await reservation_store.find_by_uuid(db, reservation_uuid)

    async def get_history(self, db: AsyncSession, reservation_id: int) -> List[ReservationHistory]:
        """Audit trail of one reservation, newest first."""
        return await reservation_store.get_history(db, reservation_id)

    async def check_conflict(
        self,
        db: AsyncSession,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> bool:
        """Advisory availability check. Takes no locks; `reserve` re-checks under lock."""
        start = ensure_utc(start, "start")
        end = ensure_utc(end, "end")
        if end <= start:
            raise ValidationError("end", "must be after start")
        return await reservation_store.check_conflict(db, provider_id, start, end, exclude_id)

    async def allowed_transitions(
        self, db: AsyncSession, reservation_id: int
    ) -> Tuple[ReservationStatus, ...]:
        reservation = await reservation_store.find_by_id(db, reservation_id)
        return table_transitions(reservation.status)

    async def list_provider_reservations(
        self,
        db: AsyncSession,
        provider_id: int,
        day: date,
        statuses: Optional[Iterable[ReservationStatus]] = None,
    ) -> List[Reservation]:
        """One provider's reservations overlapping a UTC calendar day, earliest first."""
        day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        return await reservation_store.list_for_provider(
            db, provider_id, day_start, day_start + timedelta(days=1), statuses
        )

    async def list_customer_reservations(
        self,
        db: AsyncSession,
        customer_id: int,
        statuses: Optional[Iterable[Union[ReservationStatus, str]]] = None,
        payment_status: Optional[Union[PaymentStatus, str]] = None,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Reservation]:
        """
        A customer's reservations, most recent appointment first.

        `statuses` accepts wire values; the generic "cancelled" matches both
        cancelled variants. `start_to` is exclusive.
        """
        if customer_id is None or customer_id <= 0:
            raise ValidationError("customer_id", "must be a positive integer")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError("limit", f"must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise ValidationError("offset", "cannot be negative")

        wanted = None
        if statuses:
            wanted = set()
            for value in statuses:
                if value == GENERIC_CANCELLED:
                    wanted.update(CANCELLED_STATUSES)
                else:
                    wanted.add(parse_status(value))

        payment = None
        if payment_status is not None:
            try:
                payment = PaymentStatus(payment_status)
            except ValueError:
                raise ValidationError("payment_status", f"unknown payment status {payment_status!r}") from None

        start_from = ensure_utc(start_from, "start_from") if start_from is not None else None
        start_to = ensure_utc(start_to, "start_to") if start_to is not None else None
        if start_from is not None and start_to is not None and start_to <= start_from:
            raise ValidationError("start_to", "must be after start_from")

        return await reservation_store.list_for_customer(
            db, customer_id, wanted, payment, start_from, start_to, limit, offset
        )

    async def provider_stats(
        self,
        db: AsyncSession,
        provider_id: int,
        start: datetime,
        end: datetime,
    ) -> reservation_store.ProviderStats:
        """Outcome counts and completed revenue for appointments starting in [start, end)."""
        start = ensure_utc(start, "start")
        end = ensure_utc(end, "end")
        if end <= start:
            raise ValidationError("end", "must be after start")
        return await reservation_store.provider_stats(db, provider_id, start, end)
