"""
Reservation lifecycle state machine.

    pending ──> confirmed ──> in_progress ──> completed
       │            │              │
       ├──> no_show <┘              │
       └──────> cancelled_by_* <────┘

The transition table is plain data: a frozen set of (from, to) edges built
once at import time. Nothing here touches storage; side effects of entering a
state (timestamps, cancellation metadata) belong to the reservation service.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping, Tuple, Union

from reservation_api.core.exceptions import IllegalTransition, InvalidStatus
from reservation_api.domain.enums import CANCELLED_STATUSES, ReservationStatus

S = ReservationStatus

_OUTGOING: Mapping[ReservationStatus, FrozenSet[ReservationStatus]] = MappingProxyType({
    S.PENDING: frozenset({S.CONFIRMED, *CANCELLED_STATUSES, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.IN_PROGRESS, *CANCELLED_STATUSES, S.NO_SHOW}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, *CANCELLED_STATUSES}),
    S.COMPLETED: frozenset(),
    S.CANCELLED_BY_CUSTOMER: frozenset(),
    S.CANCELLED_BY_PROVIDER: frozenset(),
    S.NO_SHOW: frozenset(),
})

TRANSITIONS: FrozenSet[Tuple[ReservationStatus, ReservationStatus]] = frozenset(
    (source, target) for source, targets in _OUTGOING.items() for target in targets
)

TERMINAL_STATUSES: FrozenSet[ReservationStatus] = frozenset(
    status for status, targets in _OUTGOING.items() if not targets
)

# Display order for allowed-transition listings.
_ORDER = {status: index for index, status in enumerate(ReservationStatus)}


def parse_status(value: Union[ReservationStatus, str]) -> ReservationStatus:
    """Resolve a status from its enum member or wire value."""
    if isinstance(value, ReservationStatus):
        return value
    try:
        return ReservationStatus(value)
    except ValueError:
        raise InvalidStatus(value) from None


def is_terminal(status: Union[ReservationStatus, str]) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def allowed_transitions(status: Union[ReservationStatus, str]) -> Tuple[ReservationStatus, ...]:
    targets = _OUTGOING[parse_status(status)]
    return tuple(sorted(targets, key=_ORDER.__getitem__))


def can_transition(from_status, to_status) -> bool:
    return (parse_status(from_status), parse_status(to_status)) in TRANSITIONS


def validate_transition(from_status, to_status) -> ReservationStatus:
    """
    Check a status change against the table.

    Returns the parsed target status. Raises InvalidStatus for unknown values
    and IllegalTransition when the edge is not in the table (this includes
    self-transitions and anything leaving a terminal state).
    """
    source = parse_status(from_status)
    target = parse_status(to_status)
    if (source, target) not in TRANSITIONS:
        raise IllegalTransition(source, target, allowed_transitions(source))
    return target
