"""
Offering read operations.

Offerings are created and edited by the catalog, not by this service; the
engine only reads them here and writes `occupancy` through the capacity
counter.
"""

from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.offering import Offering
from booking_engine.models.enums import OfferingKind
from booking_engine.db.base import utcnow
from booking_engine.core.exceptions import OfferingNotFound
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)


async def get_offering(db: AsyncSession, offering_id: int) -> Offering:
    """Get a single offering by ID."""
    result = await db.execute(
        select(Offering).where(Offering.id == offering_id).execution_options(populate_existing=True)
    )
    offering = result.scalar_one_or_none()

    if not offering:
        raise OfferingNotFound(offering_id=offering_id)
    return offering


async def list_offerings(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    kind: Optional[OfferingKind] = None,
) -> tuple[list[Offering], int]:
    """
    List offerings with pagination, soonest first.
    Uses the ix_offerings_scheduled_start index for date filtering.
    """
    query = select(Offering)

    if upcoming_only:
        query = query.where(Offering.scheduled_start >= utcnow())
    if kind is not None:
        query = query.where(Offering.kind == kind)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    offerings_query = (
        query
        .order_by(Offering.scheduled_start.asc(), Offering.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(offerings_query)
    offerings = list(result.scalars().all())

    return offerings, total
