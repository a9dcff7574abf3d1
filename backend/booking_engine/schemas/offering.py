"""
Pydantic schemas for offering-related responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from booking_engine.models.enums import OfferingKind


class OfferingResponse(BaseModel):
    id: int
    title: str
    kind: OfferingKind
    host_id: Optional[int]
    capacity: int
    occupancy: int
    spots_left: int
    scheduled_start: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class OfferingListResponse(BaseModel):
    offerings: list[OfferingResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class AvailabilityResponse(BaseModel):
    can_book: bool
    reason: str
    message: str
    current_count: Optional[int] = None
    max_participants: Optional[int] = None
    spots_left: Optional[int] = None


class ParticipantCountResponse(BaseModel):
    offering_id: int
    paid_bookings: int
    occupancy: int
    capacity: int


class OccupancyStatsResponse(BaseModel):
    total_offerings: int
    total_participants: int
    average_participants: float
    full_offerings: int
    utilization_rate: float
