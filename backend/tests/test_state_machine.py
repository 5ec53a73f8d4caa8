"""
Tests for the reservation lifecycle transition table.
"""

import itertools

import pytest

from reservation_api.core.exceptions import IllegalTransition, InvalidStatus
from reservation_api.domain.enums import ActorRole, ReservationStatus as S
from reservation_api.domain.state_machine import (
    TERMINAL_STATUSES,
    allowed_transitions,
    can_transition,
    is_terminal,
    parse_status,
    validate_transition,
)

CANCELLED = {S.CANCELLED_BY_CUSTOMER, S.CANCELLED_BY_PROVIDER}

EXPECTED = {
    S.PENDING: {S.CONFIRMED, S.NO_SHOW} | CANCELLED,
    S.CONFIRMED: {S.IN_PROGRESS, S.NO_SHOW} | CANCELLED,
    S.IN_PROGRESS: {S.COMPLETED} | CANCELLED,
    S.COMPLETED: set(),
    S.CANCELLED_BY_CUSTOMER: set(),
    S.CANCELLED_BY_PROVIDER: set(),
    S.NO_SHOW: set(),
}


@pytest.mark.parametrize("source, target", list(itertools.product(S, S)))
def test_every_pair_matches_table(source, target):
    if target in EXPECTED[source]:
        assert validate_transition(source, target) is target
    else:
        with pytest.raises(IllegalTransition) as exc_info:
            validate_transition(source, target)
        assert exc_info.value.from_status is source
        assert exc_info.value.to_status is target
        assert set(exc_info.value.allowed) == EXPECTED[source]


def test_terminal_states():
    assert TERMINAL_STATUSES == {S.COMPLETED, S.NO_SHOW} | CANCELLED
    for status in S:
        assert is_terminal(status) == (not EXPECTED[status])


def test_no_self_transitions():
    for status in S:
        assert not can_transition(status, status)


def test_allowed_transitions_are_ordered():
    assert allowed_transitions(S.PENDING) == (
        S.CONFIRMED,
        S.CANCELLED_BY_CUSTOMER,
        S.CANCELLED_BY_PROVIDER,
        S.NO_SHOW,
    )
    assert allowed_transitions(S.COMPLETED) == ()


def test_wire_values_are_parsed():
    assert validate_transition("pending", "confirmed") is S.CONFIRMED
    assert parse_status("no_show") is S.NO_SHOW


@pytest.mark.parametrize("value", ["cancelled", "CONFIRMED", "", "done"])
def test_unknown_status_rejected(value):
    with pytest.raises(InvalidStatus):
        validate_transition(S.PENDING, value)


def test_cancelled_variant_follows_role():
    assert S.cancelled_for(ActorRole.CUSTOMER) is S.CANCELLED_BY_CUSTOMER
    assert S.cancelled_for(ActorRole.PROVIDER) is S.CANCELLED_BY_PROVIDER
    assert S.cancelled_for(ActorRole.ADMIN) is S.CANCELLED_BY_PROVIDER
    assert S.CANCELLED_BY_CUSTOMER.is_cancelled
    assert not S.NO_SHOW.is_cancelled
