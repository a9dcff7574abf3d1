"""
Capacity counter: the only code that changes Offering.occupancy by +/-1.

Each call row-locks the offering (SELECT ... FOR UPDATE), reads occupancy and
capacity, writes the new value and appends exactly one audit record. Callers
must already be inside `atomic(db)` and hold the offering lock; the counter
never commits on its own so the seat change lands together with the booking
change that caused it.

A full offering is not an exception here: the rejected increment is audited
and reported back through `CounterChange.applied`, so the caller decides
whether to commit the audit row and how to surface ClassFull.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.offering import Offering
from booking_engine.models.booking import Booking
from booking_engine.models.enums import AuditAction, BookingStatus, PaymentStatus
from booking_engine.services import audit_service
from booking_engine.core.exceptions import OfferingNotFound
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CounterChange:
    offering_id: int
    action: AuditAction
    old_count: int
    new_count: int
    capacity: int
    applied: bool = True


async def lock_offering(db: AsyncSession, offering_id: int) -> Optional[Offering]:
    """Load the offering with an exclusive row lock, refreshing any cached copy."""
    result = await db.execute(
        select(Offering)
        .where(Offering.id == offering_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def count_paid_bookings(db: AsyncSession, offering_id: int) -> int:
    """Ground truth occupancy: confirmed bookings with a completed payment."""
    result = await db.execute(
        select(func.count(Booking.id)).where(
            Booking.offering_id == offering_id,
            Booking.booking_status == BookingStatus.CONFIRMED,
            Booking.payment_status == PaymentStatus.COMPLETED,
        )
    )
    return int(result.scalar_one())


async def increment(
    db: AsyncSession,
    offering_id: int,
    participant_id: Optional[int],
    booking_id: Optional[int],
) -> CounterChange:
    offering = await lock_offering(db, offering_id)
    if offering is None:
        raise OfferingNotFound(offering_id=offering_id)

    current = offering.occupancy
    if current + 1 > offering.capacity:
        await audit_service.record_change(
            db,
            offering_id,
            AuditAction.VALIDATION,
            old_count=current,
            new_count=current,
            participant_id=participant_id,
            booking_id=booking_id,
            reason="Increment rejected: would exceed max capacity",
        )
        logger.warning(
            "counter_increment_rejected",
            offering_id=offering_id,
            booking_id=booking_id,
            occupancy=current,
            capacity=offering.capacity,
        )
        return CounterChange(offering_id, AuditAction.VALIDATION, current, current, offering.capacity, applied=False)

    offering.occupancy = current + 1
    await audit_service.record_change(
        db,
        offering_id,
        AuditAction.INCREMENT,
        old_count=current,
        new_count=offering.occupancy,
        participant_id=participant_id,
        booking_id=booking_id,
        reason="Participant added via booking",
    )
    logger.info(
        "counter_incremented",
        offering_id=offering_id,
        booking_id=booking_id,
        old_count=current,
        new_count=offering.occupancy,
    )
    return CounterChange(offering_id, AuditAction.INCREMENT, current, offering.occupancy, offering.capacity)


async def decrement(
    db: AsyncSession,
    offering_id: int,
    participant_id: Optional[int],
    booking_id: Optional[int],
) -> CounterChange:
    offering = await lock_offering(db, offering_id)
    if offering is None:
        raise OfferingNotFound(offering_id=offering_id)

    current = offering.occupancy
    offering.occupancy = max(0, current - 1)
    await audit_service.record_change(
        db,
        offering_id,
        AuditAction.DECREMENT,
        old_count=current,
        new_count=offering.occupancy,
        participant_id=participant_id,
        booking_id=booking_id,
        reason="Participant removed via booking cancellation or refund",
    )
    if current == 0:
        logger.warning("counter_decrement_at_zero", offering_id=offering_id, booking_id=booking_id)
    else:
        logger.info(
            "counter_decremented",
            offering_id=offering_id,
            booking_id=booking_id,
            old_count=current,
            new_count=offering.occupancy,
        )
    return CounterChange(offering_id, AuditAction.DECREMENT, current, offering.occupancy, offering.capacity)
