"""
Offering endpoints: listings, live availability, counts and audit history.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.models.enums import OfferingKind
from booking_engine.schemas.offering import (
    OfferingResponse,
    OfferingListResponse,
    AvailabilityResponse,
    ParticipantCountResponse,
    OccupancyStatsResponse,
)
from booking_engine.schemas.audit import AuditRecordResponse
from booking_engine.services.offering_service import get_offering, list_offerings
from booking_engine.services.availability_service import can_book
from booking_engine.services.audit_service import list_audit_records
from booking_engine.services.capacity_counter import count_paid_bookings
from booking_engine.services.reconciliation_service import get_occupancy_stats
from booking_engine.services.cache_service import get_cached_offerings, set_cached_offerings
from booking_engine.api.dependencies import get_participant_id
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/offerings", tags=["Offerings"])


@router.get("/", response_model=OfferingListResponse)
async def list_offerings_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    kind: Optional[OfferingKind] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """
    List offerings with pagination.
    Results are cached in Redis and invalidated whenever occupancy changes.
    """
    kind_value = kind.value if kind else None
    cached = await get_cached_offerings(page, page_size, upcoming_only, kind_value)
    if cached:
        logger.info("offerings_list_cache_hit", page=page)
        cached["cached"] = True
        return OfferingListResponse(**cached)

    offerings, total = await list_offerings(db, page, page_size, upcoming_only, kind)

    response = OfferingListResponse(
        offerings=[OfferingResponse.model_validate(o) for o in offerings],
        total=total,
        page=page,
        page_size=page_size,
        cached=False,
    )
    await set_cached_offerings(page, page_size, upcoming_only, kind_value, response.model_dump(mode="json"))
    return response


@router.get("/stats", response_model=OccupancyStatsResponse)
async def occupancy_stats_endpoint(
    host_id: Optional[int] = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Occupancy statistics, across all offerings or for one host."""
    return await get_occupancy_stats(db, host_id)


@router.get("/{offering_id}", response_model=OfferingResponse)
async def get_offering_endpoint(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single offering by ID. Not cached (needs real-time seat counts)."""
    return await get_offering(db, offering_id)


@router.get("/{offering_id}/availability", response_model=AvailabilityResponse)
async def availability_endpoint(
    offering_id: int,
    participant_id: int = Depends(get_participant_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Can this participant book this offering right now?
    Advisory only: booking re-checks everything under lock.
    """
    decision = await can_book(db, participant_id, offering_id)
    return decision.to_dict()


@router.get("/{offering_id}/participants/count", response_model=ParticipantCountResponse)
async def participant_count_endpoint(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Live count of paid, confirmed bookings next to the stored counter."""
    offering = await get_offering(db, offering_id)
    paid = await count_paid_bookings(db, offering_id)
    return ParticipantCountResponse(
        offering_id=offering.id,
        paid_bookings=paid,
        occupancy=offering.occupancy,
        capacity=offering.capacity,
    )


@router.get("/{offering_id}/audit", response_model=list[AuditRecordResponse])
async def audit_history_endpoint(
    offering_id: int,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Counter audit trail for an offering, newest first."""
    return await list_audit_records(db, offering_id, limit)
