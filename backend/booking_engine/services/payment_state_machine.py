"""
Payment status state machine.

Pure functions, no I/O. The legal transitions depend on whether the booking
is still confirmed: a cancelled booking can still settle its paperwork
(fail, retry, refund) but can never become a paid seat again.
"""

from booking_engine.core.exceptions import InvalidTransition
from booking_engine.models.enums import BookingStatus, PaymentStatus

P = PaymentStatus

TRANSITIONS: dict[BookingStatus, dict[PaymentStatus, frozenset[PaymentStatus]]] = {
    BookingStatus.CONFIRMED: {
        P.PENDING: frozenset({P.COMPLETED, P.FAILED}),
        P.COMPLETED: frozenset({P.REFUNDED}),
        P.FAILED: frozenset({P.PENDING, P.COMPLETED}),
        P.REFUNDED: frozenset(),
    },
    BookingStatus.CANCELLED: {
        P.PENDING: frozenset({P.FAILED, P.REFUNDED}),
        P.FAILED: frozenset({P.PENDING, P.REFUNDED}),
        P.COMPLETED: frozenset({P.REFUNDED}),
        P.REFUNDED: frozenset(),
    },
}

# Payment state a booking ends up in when it is cancelled
CANCELLATION_PAYMENT_STATUS: dict[PaymentStatus, PaymentStatus] = {
    P.COMPLETED: P.REFUNDED,
    P.PENDING: P.PENDING,
    P.FAILED: P.FAILED,
    P.REFUNDED: P.REFUNDED,
}


def allowed_transitions(booking_status: BookingStatus, from_status: PaymentStatus) -> frozenset[PaymentStatus]:
    return TRANSITIONS[BookingStatus(booking_status)][PaymentStatus(from_status)]


def is_valid_transition(
    booking_status: BookingStatus,
    from_status: PaymentStatus,
    to_status: PaymentStatus,
) -> bool:
    return PaymentStatus(to_status) in allowed_transitions(booking_status, from_status)


def check_transition(
    booking_status: BookingStatus,
    from_status: PaymentStatus,
    to_status: PaymentStatus,
) -> None:
    """Raise InvalidTransition unless the table allows from -> to for this booking status."""
    if not is_valid_transition(booking_status, from_status, to_status):
        raise InvalidTransition(
            from_status=PaymentStatus(from_status).value,
            to_status=PaymentStatus(to_status).value,
            booking_status=BookingStatus(booking_status).value,
        )


def occupancy_delta(
    booking_status: BookingStatus,
    from_status: PaymentStatus,
    to_status: PaymentStatus,
) -> int:
    """
    Seat change caused by a payment transition.

    +1 when a confirmed booking enters completed, -1 when it leaves it,
    0 otherwise. Cancelled bookings hold no seat whatever their payment does.
    """
    if BookingStatus(booking_status) != BookingStatus.CONFIRMED:
        return 0
    was_paid = PaymentStatus(from_status) == P.COMPLETED
    is_paid = PaymentStatus(to_status) == P.COMPLETED
    if is_paid and not was_paid:
        return 1
    if was_paid and not is_paid:
        return -1
    return 0


def cancellation_payment_status(current: PaymentStatus) -> PaymentStatus:
    """Only a completed payment is refunded; anything else is left as it was."""
    return CANCELLATION_PAYMENT_STATUS[PaymentStatus(current)]
