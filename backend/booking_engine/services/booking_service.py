"""
Booking ledger: create, cancel, and move bookings through their payment states.

CONCURRENCY STRATEGY: Lock, Validate, Mutate, Commit
====================================================

Every mutating operation follows the same shape:

  1. Acquire the per-offering lock (see offering_locks).
  2. Open one transaction (`atomic`) and row-lock the offering, then the
     booking. Always in that order, so two operations never wait on each other
     in opposite directions.
  3. Re-validate against the locked rows (never trust a pre-check).
  4. Write the booking change and, when the booking enters or leaves
     "confirmed + completed", exactly one capacity counter call.
  5. Commit.

This module is the only caller of the capacity counter. There is no
trigger-style hook reacting to payment changes, so one qualifying transition
produces exactly one counter mutation.

Uniqueness of confirmed bookings is guarded twice: the duplicate check runs
under the offering lock, and the partial unique index on
(participant_id, offering_id) catches anything that slips past it from
another process. An IntegrityError at insert is reported as AlreadyBooked.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, PaymentStatus
from booking_engine.db.base import as_utc, utcnow
from booking_engine.db.session import atomic
from booking_engine.services import capacity_counter, payment_state_machine
from booking_engine.services.capacity_counter import CounterChange
from booking_engine.services.offering_locks import offering_lock
from booking_engine.core.exceptions import (
    AccessDenied,
    AlreadyBooked,
    BookingEngineError,
    BookingNotFound,
    ClassFull,
    ClassPast,
    NotFoundOrAccessDenied,
    OfferingNotFound,
)
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_booking_attempt

logger = get_logger(__name__)


@asynccontextmanager
async def _tracked(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except BookingEngineError as exc:
        record_booking_attempt(operation, exc.code)
        raise
    record_booking_attempt(operation, "ok")


async def _find_confirmed_booking(
    db: AsyncSession,
    participant_id: int,
    offering_id: int,
    exclude_booking_id: Optional[int] = None,
) -> Optional[Booking]:
    query = select(Booking).where(
        Booking.participant_id == participant_id,
        Booking.offering_id == offering_id,
        Booking.booking_status == BookingStatus.CONFIRMED,
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


async def _load_booking(db: AsyncSession, booking_id: int, for_update: bool = False) -> Optional[Booking]:
    query = select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _class_full(change: CounterChange, booking: Booking) -> ClassFull:
    return ClassFull(
        booking_id=booking.id,
        offering_id=change.offering_id,
        current_count=change.old_count,
        max_participants=change.capacity,
    )


async def create_booking(
    db: AsyncSession,
    participant_id: int,
    offering_id: int,
    booking_status: BookingStatus = BookingStatus.CONFIRMED,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
) -> Booking:
    """
    Reserve a place for a participant.

    Pending bookings hold no seat; a pre-paid (completed) booking takes one
    immediately and is refused with ClassFull when none is left.
    """
    booking_status = BookingStatus(booking_status)
    payment_status = PaymentStatus(payment_status)
    change: Optional[CounterChange] = None

    async with _tracked("create"):
        async with offering_lock(offering_id), atomic(db):
            offering = await capacity_counter.lock_offering(db, offering_id)
            if offering is None:
                raise OfferingNotFound(offering_id=offering_id)

            if await _find_confirmed_booking(db, participant_id, offering_id):
                raise AlreadyBooked(participant_id=participant_id, offering_id=offering_id)

            if as_utc(offering.scheduled_start) < utcnow():
                raise ClassPast(offering_id=offering_id, scheduled_start=offering.scheduled_start.isoformat())

            if payment_status == PaymentStatus.COMPLETED and offering.is_full:
                logger.warning(
                    "booking_failed_class_full",
                    offering_id=offering_id,
                    occupancy=offering.occupancy,
                    capacity=offering.capacity,
                )
                raise ClassFull(
                    offering_id=offering_id,
                    current_count=offering.occupancy,
                    max_participants=offering.capacity,
                )

            booking = Booking(
                participant_id=participant_id,
                offering_id=offering_id,
                booking_status=booking_status,
                payment_status=payment_status,
            )
            db.add(booking)
            try:
                await db.flush()
            except IntegrityError as exc:
                logger.info("booking_duplicate_at_insert", participant_id=participant_id, offering_id=offering_id)
                raise AlreadyBooked(participant_id=participant_id, offering_id=offering_id) from exc

            if booking.counts_towards_occupancy:
                change = await capacity_counter.increment(db, offering_id, participant_id, booking.id)

        # The booking and the rejected-increment audit row are committed; the caller compensates.
        if change is not None and not change.applied:
            raise _class_full(change, booking)

    logger.info(
        "booking_created",
        booking_id=booking.id,
        participant_id=participant_id,
        offering_id=offering_id,
        booking_status=booking.booking_status.value,
        payment_status=booking.payment_status.value,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    participant_id: int,
) -> Booking:
    """
    Cancel a participant's own confirmed booking.

    A completed payment becomes refunded and releases the seat; pending and
    failed payments keep their status and never held a seat.
    """
    async with _tracked("cancel"):
        booking = await _load_booking(db, booking_id)
        if (
            booking is None
            or booking.participant_id != participant_id
            or booking.booking_status == BookingStatus.CANCELLED
        ):
            raise NotFoundOrAccessDenied(booking_id=booking_id, participant_id=participant_id)

        async with offering_lock(booking.offering_id), atomic(db):
            await capacity_counter.lock_offering(db, booking.offering_id)
            booking = await _load_booking(db, booking_id, for_update=True)
            if booking is None or booking.booking_status == BookingStatus.CANCELLED:
                raise NotFoundOrAccessDenied(booking_id=booking_id, participant_id=participant_id)

            previous_payment = booking.payment_status
            booking.booking_status = BookingStatus.CANCELLED
            booking.payment_status = payment_state_machine.cancellation_payment_status(previous_payment)
            booking.updated_at = utcnow()
            await db.flush()

            if previous_payment == PaymentStatus.COMPLETED:
                await capacity_counter.decrement(db, booking.offering_id, participant_id, booking.id)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        participant_id=participant_id,
        offering_id=booking.offering_id,
        previous_payment_status=previous_payment.value,
        payment_status=booking.payment_status.value,
    )
    return booking


async def update_payment_status(
    db: AsyncSession,
    booking_id: int,
    new_status: PaymentStatus,
) -> Booking:
    """
    Apply a payment outcome reported by the payment collaborator.

    The transition is checked against the state machine for the booking's
    current status. Crossing the completed boundary on a confirmed booking
    moves the seat counter in the same transaction. If the seat cannot be
    taken the payment status is left unchanged and ClassFull is raised.
    """
    new_status = PaymentStatus(new_status)
    change: Optional[CounterChange] = None

    async with _tracked("payment"):
        booking = await _load_booking(db, booking_id)
        if booking is None:
            raise BookingNotFound(booking_id=booking_id)

        async with offering_lock(booking.offering_id), atomic(db):
            await capacity_counter.lock_offering(db, booking.offering_id)
            booking = await _load_booking(db, booking_id, for_update=True)
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)

            previous = booking.payment_status
            payment_state_machine.check_transition(booking.booking_status, previous, new_status)
            delta = payment_state_machine.occupancy_delta(booking.booking_status, previous, new_status)

            if delta > 0:
                change = await capacity_counter.increment(
                    db, booking.offering_id, booking.participant_id, booking.id
                )
            elif delta < 0:
                change = await capacity_counter.decrement(
                    db, booking.offering_id, booking.participant_id, booking.id
                )

            if change is None or change.applied:
                booking.payment_status = new_status
                booking.updated_at = utcnow()
                await db.flush()

        if change is not None and not change.applied:
            raise _class_full(change, booking)

    logger.info(
        "payment_status_updated",
        booking_id=booking.id,
        offering_id=booking.offering_id,
        from_status=previous.value,
        to_status=new_status.value,
        occupancy_delta=delta,
    )
    return booking


async def update_booking_status(
    db: AsyncSession,
    booking_id: int,
    new_status: BookingStatus,
    participant_id: Optional[int] = None,
) -> Booking:
    """
    Corrective booking status change.

    confirmed -> cancelled is a normal cancellation. cancelled -> confirmed
    reactivates the booking, taking a seat again if its payment is completed.
    Setting the current status is a no-op.
    """
    new_status = BookingStatus(new_status)
    change: Optional[CounterChange] = None

    async with _tracked("status"):
        booking = await _load_booking(db, booking_id)
        if booking is None:
            raise BookingNotFound(booking_id=booking_id)
        if participant_id is not None and booking.participant_id != participant_id:
            raise AccessDenied(booking_id=booking_id, participant_id=participant_id)

        if booking.booking_status == new_status:
            return booking

        if new_status == BookingStatus.CANCELLED:
            return await cancel_booking(db, booking_id, booking.participant_id)

        async with offering_lock(booking.offering_id), atomic(db):
            await capacity_counter.lock_offering(db, booking.offering_id)
            booking = await _load_booking(db, booking_id, for_update=True)
            if booking is None:
                raise BookingNotFound(booking_id=booking_id)
            if booking.booking_status == BookingStatus.CONFIRMED:
                return booking

            if await _find_confirmed_booking(db, booking.participant_id, booking.offering_id, booking.id):
                raise AlreadyBooked(participant_id=booking.participant_id, offering_id=booking.offering_id)

            if booking.payment_status == PaymentStatus.COMPLETED:
                change = await capacity_counter.increment(
                    db, booking.offering_id, booking.participant_id, booking.id
                )

            if change is None or change.applied:
                booking.booking_status = BookingStatus.CONFIRMED
                booking.updated_at = utcnow()
                try:
                    await db.flush()
                except IntegrityError as exc:
                    raise AlreadyBooked(
                        participant_id=booking.participant_id,
                        offering_id=booking.offering_id,
                    ) from exc

        if change is not None and not change.applied:
            raise _class_full(change, booking)

    logger.info(
        "booking_reactivated",
        booking_id=booking.id,
        participant_id=booking.participant_id,
        offering_id=booking.offering_id,
        payment_status=booking.payment_status.value,
    )
    return booking


async def get_booking(db: AsyncSession, booking_id: int, participant_id: Optional[int] = None) -> Booking:
    booking = await _load_booking(db, booking_id)
    if booking is None:
        raise BookingNotFound(booking_id=booking_id)
    if participant_id is not None and booking.participant_id != participant_id:
        raise AccessDenied(booking_id=booking_id, participant_id=participant_id)
    return booking


async def get_participant_bookings(db: AsyncSession, participant_id: int) -> list[Booking]:
    """Get all bookings for a participant, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.participant_id == participant_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
