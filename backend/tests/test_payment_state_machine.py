"""
Tests for the payment status transition table and seat deltas.
"""

import itertools

import pytest

from booking_engine.core.exceptions import InvalidTransition
from booking_engine.models.enums import BookingStatus, PaymentStatus
from booking_engine.services import payment_state_machine as psm

B = BookingStatus
P = PaymentStatus

ALLOWED = {
    (B.CONFIRMED, P.PENDING, P.COMPLETED),
    (B.CONFIRMED, P.PENDING, P.FAILED),
    (B.CONFIRMED, P.COMPLETED, P.REFUNDED),
    (B.CONFIRMED, P.FAILED, P.PENDING),
    (B.CONFIRMED, P.FAILED, P.COMPLETED),
    (B.CANCELLED, P.PENDING, P.FAILED),
    (B.CANCELLED, P.PENDING, P.REFUNDED),
    (B.CANCELLED, P.FAILED, P.PENDING),
    (B.CANCELLED, P.FAILED, P.REFUNDED),
    (B.CANCELLED, P.COMPLETED, P.REFUNDED),
}


@pytest.mark.parametrize(
    "booking_status,from_status,to_status",
    list(itertools.product(BookingStatus, PaymentStatus, PaymentStatus)),
)
def test_transition_table(booking_status, from_status, to_status):
    expected = (booking_status, from_status, to_status) in ALLOWED
    assert psm.is_valid_transition(booking_status, from_status, to_status) is expected


def test_refunded_is_terminal():
    for booking_status in BookingStatus:
        assert psm.allowed_transitions(booking_status, P.REFUNDED) == frozenset()


def test_check_transition_reports_states():
    with pytest.raises(InvalidTransition) as exc_info:
        psm.check_transition(B.CONFIRMED, P.PENDING, P.REFUNDED)

    err = exc_info.value
    assert err.from_status == "pending"
    assert err.to_status == "refunded"
    assert err.booking_status == "confirmed"
    assert err.to_dict()["error"] == "invalid_transition"


def test_check_transition_accepts_plain_strings():
    psm.check_transition("confirmed", "failed", "completed")


@pytest.mark.parametrize(
    "booking_status,from_status,to_status,delta",
    [
        (B.CONFIRMED, P.PENDING, P.COMPLETED, 1),
        (B.CONFIRMED, P.FAILED, P.COMPLETED, 1),
        (B.CONFIRMED, P.COMPLETED, P.REFUNDED, -1),
        (B.CONFIRMED, P.PENDING, P.FAILED, 0),
        (B.CONFIRMED, P.FAILED, P.PENDING, 0),
        (B.CANCELLED, P.COMPLETED, P.REFUNDED, 0),
        (B.CANCELLED, P.PENDING, P.REFUNDED, 0),
    ],
)
def test_occupancy_delta(booking_status, from_status, to_status, delta):
    assert psm.occupancy_delta(booking_status, from_status, to_status) == delta


@pytest.mark.parametrize(
    "current,expected",
    [
        (P.COMPLETED, P.REFUNDED),
        (P.PENDING, P.PENDING),
        (P.FAILED, P.FAILED),
        (P.REFUNDED, P.REFUNDED),
    ],
)
def test_cancellation_payment_status(current, expected):
    assert psm.cancellation_payment_status(current) == expected
