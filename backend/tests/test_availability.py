"""
Tests for read-only booking checks.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.enums import PaymentStatus
from booking_engine.services import booking_service
from booking_engine.services.availability_service import can_book, validate_operation


@pytest.mark.asyncio
async def test_can_book_available(db_session: AsyncSession, test_offering):
    decision = await can_book(db_session, 1, test_offering.id)

    assert decision.can_book is True
    assert decision.reason == "available"
    assert decision.spots_left == 3


@pytest.mark.asyncio
async def test_can_book_reasons(db_session: AsyncSession, test_offering, full_offering, past_offering):
    await booking_service.create_booking(db_session, 1, test_offering.id)

    assert (await can_book(db_session, 1, test_offering.id)).reason == "already_booked"
    assert (await can_book(db_session, 1, 9999)).reason == "class_not_found"
    assert (await can_book(db_session, 1, past_offering.id)).reason == "class_past"

    full = await can_book(db_session, 1, full_offering.id)
    assert full.can_book is False
    assert full.reason == "class_full"
    assert (full.current_count, full.max_participants) == (2, 2)


@pytest.mark.asyncio
async def test_validate_create_collects_all_errors(db_session: AsyncSession, make_offering):
    offering = await make_offering(capacity=1, occupancy=1, days_ahead=-1)

    result = await validate_operation(db_session, "create", participant_id=1, offering_id=offering.id)

    assert result["valid"] is False
    assert "Cannot book past classes" in result["errors"]
    assert "Class is full" in result["errors"]


@pytest.mark.asyncio
async def test_validate_create_warns_when_almost_full(db_session: AsyncSession, make_offering):
    offering = await make_offering(capacity=10, occupancy=9)

    result = await validate_operation(db_session, "create", participant_id=1, offering_id=offering.id)

    assert result["valid"] is True
    assert result["warnings"] == ["Class is almost full"]


@pytest.mark.asyncio
async def test_validate_create_missing_ids(db_session: AsyncSession):
    result = await validate_operation(db_session, "create", participant_id=1)
    assert result["valid"] is False


@pytest.mark.asyncio
async def test_validate_cancel(db_session: AsyncSession, test_offering):
    booking = await booking_service.create_booking(db_session, 1, test_offering.id)

    ok = await validate_operation(db_session, "cancel", booking_id=booking.id, participant_id=1)
    assert ok["valid"] is True

    wrong_owner = await validate_operation(db_session, "cancel", booking_id=booking.id, participant_id=2)
    assert wrong_owner["errors"] == ["Booking not found or access denied"]

    await booking_service.cancel_booking(db_session, booking.id, 1)
    again = await validate_operation(db_session, "cancel", booking_id=booking.id, participant_id=1)
    assert again["errors"] == ["Booking is already cancelled"]


@pytest.mark.asyncio
async def test_validate_payment_update(db_session: AsyncSession, test_offering):
    booking = await booking_service.create_booking(db_session, 1, test_offering.id)

    ok = await validate_operation(
        db_session, "payment_update", booking_id=booking.id, new_payment_status=PaymentStatus.COMPLETED
    )
    assert ok["valid"] is True

    bad = await validate_operation(
        db_session, "payment_update", booking_id=booking.id, new_payment_status=PaymentStatus.REFUNDED
    )
    assert bad["errors"] == [
        "Invalid payment status transition from pending to refunded for booking status confirmed"
    ]


@pytest.mark.asyncio
async def test_validate_unknown_operation(db_session: AsyncSession):
    result = await validate_operation(db_session, "teleport")
    assert result["errors"] == ["Unknown operation type"]
