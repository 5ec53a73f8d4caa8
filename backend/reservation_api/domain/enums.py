"""
Closed enumerations used across the reservation core.

The enum values are the serialized representation, both in the database and
on the wire:

    ReservationStatus   pending | confirmed | in_progress | completed |
                        cancelled_by_customer | cancelled_by_provider | no_show
    PaymentStatus       pending | paid | partially_paid | refunded | failed
    ActorRole           customer | provider | admin | system
    ChangeType          created | status_changed | rescheduled | cancelled |
                        repriced | payment_updated
"""

import enum


class ActorRole(str, enum.Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"
    SYSTEM = "system"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"
    CANCELLED_BY_PROVIDER = "cancelled_by_provider"
    NO_SHOW = "no_show"

    @property
    def is_cancelled(self) -> bool:
        return self in CANCELLED_STATUSES

    @classmethod
    def cancelled_for(cls, role: ActorRole) -> "ReservationStatus":
        """Cancelled variant tagged with the cancelling party."""
        if ActorRole(role) is ActorRole.CUSTOMER:
            return cls.CANCELLED_BY_CUSTOMER
        return cls.CANCELLED_BY_PROVIDER


CANCELLED_STATUSES = frozenset({
    ReservationStatus.CANCELLED_BY_CUSTOMER,
    ReservationStatus.CANCELLED_BY_PROVIDER,
})

# Statuses that still occupy the provider's timeline.
BLOCKING_STATUSES = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.IN_PROGRESS,
})


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PARTIALLY_PAID = "partially_paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class ChangeType(str, enum.Enum):
    CREATED = "created"
    STATUS_CHANGED = "status_changed"
    RESCHEDULED = "rescheduled"
    CANCELLED = "cancelled"
    REPRICED = "repriced"
    PAYMENT_UPDATED = "payment_updated"
