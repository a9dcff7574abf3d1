"""
Reconciliation: recompute occupancy from the booking set and repair drift.

Ground truth is count(bookings WHERE confirmed AND completed). Drift should
never happen through the ledger, but manual edits, restores and bugs do
happen, and drift must be fixable rather than silently tolerated.

`sync_one` fixes a single offering. `validate_all` sweeps every offering, one
short transaction and one offering lock at a time, so a long sweep never
blocks bookings for offerings it is not currently looking at. Offerings that
vanish mid-sweep or stay locked past the timeout are logged and skipped.

A count above capacity (only reachable by editing bookings behind the
ledger's back) is stored clamped to capacity and logged as overbooked, so the
CHECK constraints keep holding and repeated syncs stay no-ops.
"""

import asyncio
from dataclasses import dataclass, asdict
from typing import Optional

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_engine.models.offering import Offering
from booking_engine.models.enums import AuditAction
from booking_engine.db.base import utcnow
from booking_engine.db.session import atomic
from booking_engine.services import audit_service
from booking_engine.services.capacity_counter import count_paid_bookings, lock_offering
from booking_engine.services.offering_locks import offering_lock
from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import OfferingNotFound, SystemBusy
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import reconciliation_fixes, reconciliation_runs, reconciliation_skips

logger = get_logger(__name__)

DRIFT_REASON = "drift correction"


@dataclass(frozen=True)
class ReconciliationRow:
    offering_id: int
    old_count: int
    new_count: int
    was_fixed: bool

    def to_dict(self) -> dict:
        return asdict(self)


async def _reconcile(db: AsyncSession, offering_id: int) -> ReconciliationRow:
    async with offering_lock(offering_id), atomic(db):
        offering = await lock_offering(db, offering_id)
        if offering is None:
            raise OfferingNotFound(offering_id=offering_id)

        actual = await count_paid_bookings(db, offering_id)
        target = min(actual, offering.capacity)
        stored = offering.occupancy

        if actual > offering.capacity:
            logger.error(
                "offering_overbooked",
                offering_id=offering_id,
                paid_bookings=actual,
                capacity=offering.capacity,
            )

        if target == stored:
            return ReconciliationRow(offering_id, stored, stored, False)

        offering.occupancy = target
        offering.updated_at = utcnow()
        await audit_service.record_change(
            db,
            offering_id,
            AuditAction.SYNC,
            old_count=stored,
            new_count=target,
            reason=DRIFT_REASON,
        )

    reconciliation_fixes.inc()
    logger.warning("occupancy_drift_corrected", offering_id=offering_id, old_count=stored, new_count=target)
    return ReconciliationRow(offering_id, stored, target, True)


async def sync_one(db: AsyncSession, offering_id: int) -> ReconciliationRow:
    """Bring one offering's occupancy back in line with its paid bookings."""
    reconciliation_runs.labels(mode="single").inc()
    return await _reconcile(db, offering_id)


async def validate_all(db: AsyncSession) -> list[ReconciliationRow]:
    """Check and repair every offering; returns one report row per offering checked."""
    reconciliation_runs.labels(mode="sweep").inc()
    result = await db.execute(select(Offering.id).order_by(Offering.scheduled_start, Offering.id))
    offering_ids = list(result.scalars().all())
    # Close the read transaction so no snapshot is held across the sweep
    await db.commit()

    report: list[ReconciliationRow] = []
    for offering_id in offering_ids:
        try:
            report.append(await _reconcile(db, offering_id))
        except OfferingNotFound:
            reconciliation_skips.labels(reason="not_found").inc()
            logger.warning("reconciliation_offering_vanished", offering_id=offering_id)
        except SystemBusy:
            reconciliation_skips.labels(reason="busy").inc()
            logger.warning("reconciliation_offering_busy", offering_id=offering_id)

    fixed = sum(1 for row in report if row.was_fixed)
    logger.info("reconciliation_sweep_completed", checked=len(report), fixed=fixed, total=len(offering_ids))
    return report


async def get_occupancy_stats(db: AsyncSession, host_id: Optional[int] = None) -> dict:
    """Occupancy statistics across offerings, optionally for one host."""
    query = select(
        func.count(Offering.id),
        func.coalesce(func.sum(Offering.occupancy), 0),
        func.coalesce(func.sum(Offering.capacity), 0),
        func.coalesce(func.sum(case((Offering.occupancy >= Offering.capacity, 1), else_=0)), 0),
    )
    if host_id is not None:
        query = query.where(Offering.host_id == host_id)

    total_offerings, total_participants, total_capacity, full_offerings = (await db.execute(query)).one()
    total_offerings = int(total_offerings)
    total_participants = int(total_participants)
    total_capacity = int(total_capacity)

    return {
        "total_offerings": total_offerings,
        "total_participants": total_participants,
        "average_participants": round(total_participants / total_offerings, 2) if total_offerings else 0.0,
        "full_offerings": int(full_offerings),
        "utilization_rate": round(total_participants / total_capacity * 100, 2) if total_capacity else 0.0,
    }


async def run_periodic_reconciliation(
    session_factory: async_sessionmaker,
    interval_seconds: Optional[int] = None,
    on_fixed=None,
) -> None:
    """
    Background sweep started from the application lifespan.
    Runs until cancelled; a failed pass is logged and retried next interval.
    """
    interval = interval_seconds or get_settings().RECONCILE_INTERVAL_SECONDS
    logger.info("reconciliation_scheduler_started", interval_seconds=interval)
    while True:
        await asyncio.sleep(interval)
        try:
            async with session_factory() as db:
                report = await validate_all(db)
            if on_fixed is not None and any(row.was_fixed for row in report):
                await on_fixed()
        except Exception as e:
            logger.error("reconciliation_sweep_failed", error=str(e))
