"""
Booking endpoints: the ledger operations exposed over HTTP.

Every route that can move occupancy invalidates the offering listing cache
after the ledger has committed.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingCancelResponse,
    PaymentStatusUpdate,
    BookingStatusUpdate,
    OperationValidationRequest,
    OperationValidationResponse,
)
from booking_engine.services import booking_service
from booking_engine.services.availability_service import validate_operation
from booking_engine.services.cache_service import invalidate_offering_cache
from booking_engine.api.dependencies import get_participant_id
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Book an offering.

    Pending bookings reserve a place without a seat; pre-paid bookings take a
    seat immediately and fail with 409 class_full when none is left.
    """
    booking = await booking_service.create_booking(
        db,
        participant_id,
        booking_data.offering_id,
        booking_data.booking_status,
        booking_data.payment_status,
    )
    await invalidate_offering_cache()
    return booking


@router.get("/", response_model=list[BookingResponse])
async def list_participant_bookings(
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings for the requesting participant."""
    return await booking_service.get_participant_bookings(db, participant_id)


@router.post("/validate", response_model=OperationValidationResponse)
async def validate_operation_endpoint(
    request: OperationValidationRequest,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """Dry-run a booking operation and report every error and warning."""
    return await validate_operation(
        db,
        request.operation,
        booking_id=request.booking_id,
        participant_id=participant_id,
        offering_id=request.offering_id,
        new_payment_status=request.new_payment_status,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_endpoint(
    booking_id: int,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, booking_id, participant_id)


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; a paid seat is refunded and released."""
    booking = await booking_service.cancel_booking(db, booking_id, participant_id)
    await invalidate_offering_cache()
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        booking_status=booking.booking_status,
        payment_status=booking.payment_status,
    )


@router.patch("/{booking_id}/payment", response_model=BookingResponse)
async def update_payment_status_endpoint(
    booking_id: int,
    update: PaymentStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    """
    Payment outcome callback from the payment collaborator.
    Illegal transitions return 409 invalid_transition with from/to states.
    """
    booking = await booking_service.update_payment_status(db, booking_id, update.payment_status)
    await invalidate_offering_cache()
    return booking


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status_endpoint(
    booking_id: int,
    update: BookingStatusUpdate,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """Corrective booking status change (cancel or reactivate)."""
    booking = await booking_service.update_booking_status(
        db, booking_id, update.booking_status, participant_id
    )
    await invalidate_offering_cache()
    return booking
