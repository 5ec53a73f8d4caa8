"""
Error taxonomy for the reservation core.

Every failure the core reports is one of these classes. Storage-engine errors
are translated into them before they leave the store (see db/errors.py), so
callers never see raw SQLAlchemy or driver exceptions.

`status_code` is only a hint for the HTTP adapter; the core itself is
transport-agnostic.
"""

from typing import Any, Dict, Iterable, Optional


class ReservationError(Exception):
    """Base class for all reservation core errors."""

    status_code = 500
    error_code = "RESERVATION_ERROR"
    default_detail = "Reservation operation failed."
    retryable = False

    def __init__(self, detail: Optional[str] = None, extra_data: Optional[Dict[str, Any]] = None):
        self.detail = detail or self.default_detail
        self.extra_data = extra_data or {}
        super().__init__(self.detail)


class ValidationError(ReservationError):
    """Malformed input. The caller can retry after correcting the named field."""

    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_detail = "Validation error."

    def __init__(self, field: str, message: str):
        self.field = field
        self.errors = {field: message}
        super().__init__(f"{field}: {message}", extra_data={"errors": self.errors})


class InvalidPricingInput(ValidationError):
    error_code = "INVALID_PRICING_INPUT"


class InvalidStatus(ReservationError):
    status_code = 400
    error_code = "INVALID_STATUS"
    default_detail = "Unknown reservation status."

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"invalid status: {value!r}", extra_data={"status": str(value)})


class SlotConflict(ReservationError):
    """The requested window overlaps an active reservation of the same provider."""

    status_code = 409
    error_code = "SLOT_CONFLICT"
    default_detail = "Time slot is not available, please choose another time."

    def __init__(self, provider_id: int, start, end):
        self.provider_id = provider_id
        self.start = start
        self.end = end
        super().__init__(
            extra_data={
                "provider_id": provider_id,
                "start": start.isoformat(),
                "end": end.isoformat(),
            }
        )


class IllegalTransition(ReservationError):
    status_code = 409
    error_code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status, to_status, allowed: Iterable):
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = tuple(allowed)
        allowed_values = [str(getattr(s, "value", s)) for s in self.allowed]
        from_value = getattr(from_status, "value", from_status)
        to_value = getattr(to_status, "value", to_status)
        super().__init__(
            f"cannot change from '{from_value}' to '{to_value}'. Allowed transitions: {allowed_values}",
            extra_data={"from": from_value, "to": to_value, "allowed": allowed_values},
        )


class CannotModifyTerminal(ReservationError):
    status_code = 409
    error_code = "CANNOT_MODIFY_TERMINAL"

    def __init__(self, reservation_id: int, status):
        self.reservation_id = reservation_id
        self.status = status
        value = getattr(status, "value", status)
        super().__init__(
            f"reservation {reservation_id} is in terminal status '{value}'",
            extra_data={"reservation_id": reservation_id, "status": value},
        )


class CancellationNotAllowed(ReservationError):
    status_code = 409
    error_code = "CANCELLATION_NOT_ALLOWED"

    def __init__(self, reservation_id: int, status, cancellable: Iterable):
        self.reservation_id = reservation_id
        self.status = status
        value = getattr(status, "value", status)
        cancellable_values = [s.value for s in cancellable]
        super().__init__(
            f"reservation {reservation_id} cannot be cancelled from status '{value}'. "
            f"Current status must be one of: {cancellable_values}",
            extra_data={"reservation_id": reservation_id, "status": value, "cancellable": cancellable_values},
        )


class NotFound(ReservationError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_detail = "Reservation not found."


class DuplicateReservation(ReservationError):
    status_code = 409
    error_code = "DUPLICATE_RESERVATION"
    default_detail = "Reservation already exists."


class DuplicateReference(DuplicateReservation):
    error_code = "DUPLICATE_REFERENCE"
    default_detail = "Reservation reference already exists."


class Timeout(ReservationError):
    """Lock wait or statement timeout. Safe to retry with backoff."""

    status_code = 503
    error_code = "TIMEOUT"
    default_detail = "Storage timed out, please retry."
    retryable = True


class StorageError(ReservationError):
    error_code = "STORAGE_ERROR"
    default_detail = "Storage failure."
