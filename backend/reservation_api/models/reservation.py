"""
Reservation model: one row per appointment between a provider and a customer.

Key design decisions:
- `status` is the single source of truth for the lifecycle position; the
  enum's string values are what the column stores
- Composite index on (provider_id, scheduled_start, scheduled_end) serves the
  overlap query used by every conflict check
- Pricing columns are Decimal and written only from a PricingBreakdown
- Cancellation columns stay NULL unless the status is a cancelled variant
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from reservation_api.db.base import Base, TimestampMixin, UTCDateTime, enum_column
from reservation_api.domain.enums import ActorRole, PaymentStatus, ReservationStatus
from reservation_api.domain.pricing import PricingBreakdown


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), nullable=False)
    reference = Column(String(20), nullable=False)

    provider_id = Column(Integer, nullable=False, index=True)
    customer_id = Column(Integer, nullable=True, index=True)
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    slot_id = Column(Integer, nullable=False)
    service_id = Column(Integer, nullable=True)
    service_name = Column(String(255), nullable=False)
    service_category = Column(String(100), nullable=True)
    duration_minutes = Column(Integer, nullable=False)

    scheduled_start = Column(UTCDateTime(), nullable=False)
    scheduled_end = Column(UTCDateTime(), nullable=False)
    actual_start = Column(UTCDateTime(), nullable=True)
    actual_end = Column(UTCDateTime(), nullable=True)

    status = enum_column(
        ReservationStatus, "reservation_status", nullable=False, default=ReservationStatus.PENDING
    )

    service_price = Column(Numeric(10, 2), nullable=False)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    tax_rate = Column(Numeric(5, 4), nullable=False, default=Decimal("0"))
    tax_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    sub_total = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    tip_amount = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    currency = Column(String(3), nullable=False, default="USD")

    payment_status = enum_column(
        PaymentStatus, "payment_status", nullable=False, default=PaymentStatus.PENDING
    )
    payment_method = Column(String(50), nullable=True)
    payment_reference = Column(String(255), nullable=True)
    paid_at = Column(UTCDateTime(), nullable=True)

    cancelled_at = Column(UTCDateTime(), nullable=True)
    cancelled_by_role = enum_column(ActorRole, "actor_role", nullable=True)
    cancelled_by_id = Column(Integer, nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    cancellation_fee = Column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    notes = Column(Text, nullable=True)
    special_requests = Column(Text, nullable=True)
    booking_source = Column(String(30), nullable=False, default="web_app")

    __table_args__ = (
        UniqueConstraint("uuid", name="uq_reservations_uuid"),
        UniqueConstraint("reference", name="uq_reservations_reference"),
        CheckConstraint("scheduled_end > scheduled_start", name="check_reservation_window"),
        CheckConstraint("total_price >= 0", name="check_reservation_total_non_negative"),
        CheckConstraint("duration_minutes > 0", name="check_reservation_duration_positive"),
        # Overlap lookups: provider_id = ? AND scheduled_start < ? AND scheduled_end > ?
        Index("ix_reservations_provider_window", "provider_id", "scheduled_start", "scheduled_end"),
    )

    def apply_pricing(self, breakdown: PricingBreakdown) -> None:
        self.service_price = breakdown.service_price
        self.discount_amount = breakdown.discount_amount
        self.tax_rate = breakdown.tax_rate
        self.sub_total = breakdown.sub_total
        self.tax_amount = breakdown.tax_amount
        self.total_price = breakdown.total_price
        self.currency = breakdown.currency

    @property
    def effective_total(self) -> Decimal:
        """Total including tip. The stored breakdown never includes the tip."""
        return (self.total_price or Decimal("0.00")) + (self.tip_amount or Decimal("0.00"))

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, ref={self.reference}, provider={self.provider_id}, "
            f"status={self.status})>"
        )
