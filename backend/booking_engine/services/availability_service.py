"""
Read-only booking checks used by clients before they attempt a write.

Answers here can be stale by the time the client acts on them; the ledger
re-validates everything under its locks. Nothing in this module writes.
"""

from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.offering import Offering
from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, PaymentStatus
from booking_engine.db.base import as_utc, utcnow
from booking_engine.services import payment_state_machine
from booking_engine.core.config import get_settings


@dataclass(frozen=True)
class BookingDecision:
    can_book: bool
    reason: str  # already_booked, class_not_found, class_past, class_full, available
    message: str
    current_count: Optional[int] = None
    max_participants: Optional[int] = None
    spots_left: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)


async def _has_confirmed_booking(db: AsyncSession, participant_id: int, offering_id: int) -> bool:
    result = await db.execute(
        select(Booking.id)
        .where(
            Booking.participant_id == participant_id,
            Booking.offering_id == offering_id,
            Booking.booking_status == BookingStatus.CONFIRMED,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _get_offering(db: AsyncSession, offering_id: int) -> Optional[Offering]:
    result = await db.execute(
        select(Offering).where(Offering.id == offering_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def can_book(db: AsyncSession, participant_id: int, offering_id: int) -> BookingDecision:
    if await _has_confirmed_booking(db, participant_id, offering_id):
        return BookingDecision(False, "already_booked", "Participant already has a booking for this class")

    offering = await _get_offering(db, offering_id)
    if offering is None:
        return BookingDecision(False, "class_not_found", "Class not found")

    if as_utc(offering.scheduled_start) < utcnow():
        return BookingDecision(
            False,
            "class_past",
            "Cannot book past classes",
            current_count=offering.occupancy,
            max_participants=offering.capacity,
        )

    if offering.is_full:
        return BookingDecision(
            False,
            "class_full",
            "Class is full",
            current_count=offering.occupancy,
            max_participants=offering.capacity,
        )

    return BookingDecision(
        True,
        "available",
        "Class is available for booking",
        current_count=offering.occupancy,
        max_participants=offering.capacity,
        spots_left=offering.spots_left,
    )


async def validate_operation(
    db: AsyncSession,
    operation: str,
    booking_id: Optional[int] = None,
    participant_id: Optional[int] = None,
    offering_id: Optional[int] = None,
    new_payment_status: Optional[PaymentStatus] = None,
) -> dict:
    """
    Dry-run a ledger operation and collect every reason it would fail.

    Unlike can_book this does not stop at the first problem, and it adds
    warnings (a nearly full class) that are not errors.
    """
    errors: list[str] = []
    warnings: list[str] = []

    if operation == "create":
        if participant_id is None or offering_id is None:
            errors.append("Participant ID and Class ID are required for booking creation")
        else:
            if await _has_confirmed_booking(db, participant_id, offering_id):
                errors.append("Participant already has a booking for this class")

            offering = await _get_offering(db, offering_id)
            if offering is None:
                errors.append("Class not found")
            else:
                if as_utc(offering.scheduled_start) < utcnow():
                    errors.append("Cannot book past classes")
                if offering.is_full:
                    errors.append("Class is full")
                elif offering.occupancy >= offering.capacity * get_settings().ALMOST_FULL_RATIO:
                    warnings.append("Class is almost full")

    elif operation == "cancel":
        if booking_id is None or participant_id is None:
            errors.append("Booking ID and Participant ID are required for cancellation")
        else:
            booking = await db.get(Booking, booking_id, populate_existing=True)
            if booking is None or booking.participant_id != participant_id:
                errors.append("Booking not found or access denied")
            elif booking.booking_status == BookingStatus.CANCELLED:
                errors.append("Booking is already cancelled")

    elif operation == "payment_update":
        if booking_id is None or new_payment_status is None:
            errors.append("Booking ID and new payment status are required")
        else:
            booking = await db.get(Booking, booking_id, populate_existing=True)
            if booking is None:
                errors.append("Booking not found")
            elif not payment_state_machine.is_valid_transition(
                booking.booking_status, booking.payment_status, new_payment_status
            ):
                errors.append(
                    f"Invalid payment status transition from {booking.payment_status.value} "
                    f"to {PaymentStatus(new_payment_status).value} "
                    f"for booking status {booking.booking_status.value}"
                )

    else:
        errors.append("Unknown operation type")

    return {
        "valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "operation": operation,
        "timestamp": utcnow(),
    }
