"""
Reconciliation endpoints for operators and schedulers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.db.session import get_db
from booking_engine.schemas.audit import ReconciliationRowResponse, ReconciliationReport
from booking_engine.services.reconciliation_service import sync_one, validate_all
from booking_engine.services.cache_service import invalidate_offering_cache
from booking_engine.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/reconciliation", tags=["Reconciliation"])


@router.post("/offerings/{offering_id}/sync", response_model=ReconciliationRowResponse)
async def sync_offering_endpoint(
    offering_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Recompute one offering's occupancy from its paid bookings."""
    row = await sync_one(db, offering_id)
    if row.was_fixed:
        await invalidate_offering_cache()
    return row


@router.post("/validate-all", response_model=ReconciliationReport)
async def validate_all_endpoint(db: AsyncSession = Depends(get_db)):
    """Check every offering and repair drifted counters."""
    rows = await validate_all(db)
    fixed = sum(1 for row in rows if row.was_fixed)
    if fixed:
        await invalidate_offering_cache()
    return ReconciliationReport(
        results=[ReconciliationRowResponse.model_validate(row) for row in rows],
        checked=len(rows),
        fixed=fixed,
    )
