"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from booking_engine.models.enums import BookingStatus, PaymentStatus


class BookingCreate(BaseModel):
    offering_id: int = Field(..., gt=0)
    booking_status: BookingStatus = BookingStatus.CONFIRMED
    payment_status: PaymentStatus = PaymentStatus.PENDING


class BookingResponse(BaseModel):
    id: int
    participant_id: int
    offering_id: int
    booking_status: BookingStatus
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    booking_status: BookingStatus
    payment_status: PaymentStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class BookingStatusUpdate(BaseModel):
    booking_status: BookingStatus


class OperationValidationRequest(BaseModel):
    operation: Literal["create", "cancel", "payment_update"]
    booking_id: Optional[int] = None
    offering_id: Optional[int] = None
    new_payment_status: Optional[PaymentStatus] = None


class OperationValidationResponse(BaseModel):
    valid: bool
    errors: list[str]
    warnings: list[str]
    operation: str
    timestamp: datetime
