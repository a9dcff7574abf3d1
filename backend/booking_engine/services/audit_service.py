"""
Audit log for occupancy counter changes.

Every counter call writes exactly one row, including rejected increments
(action=validation, old_count == new_count). Rows are added to the caller's
transaction, so a rolled-back mutation leaves no audit trace either.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.audit import AuditRecord
from booking_engine.models.enums import AuditAction
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_counter_mutation

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50


async def record_change(
    db: AsyncSession,
    offering_id: int,
    action: AuditAction,
    old_count: int,
    new_count: int,
    participant_id: Optional[int] = None,
    booking_id: Optional[int] = None,
    reason: Optional[str] = None,
) -> AuditRecord:
    record = AuditRecord(
        offering_id=offering_id,
        participant_id=participant_id,
        action=action,
        old_count=old_count,
        new_count=new_count,
        booking_id=booking_id,
        reason=reason,
    )
    db.add(record)
    await db.flush()
    record_counter_mutation(action.value)
    return record


async def list_audit_records(
    db: AsyncSession,
    offering_id: int,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[AuditRecord]:
    """Audit history for one offering, newest first."""
    result = await db.execute(
        select(AuditRecord)
        .where(AuditRecord.offering_id == offering_id)
        .order_by(AuditRecord.created_at.desc(), AuditRecord.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
