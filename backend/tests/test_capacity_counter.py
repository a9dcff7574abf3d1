"""
Tests for the capacity counter and its audit trail.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import OfferingNotFound
from booking_engine.db.session import atomic
from booking_engine.models.enums import AuditAction
from booking_engine.services import capacity_counter
from booking_engine.services.audit_service import list_audit_records
from booking_engine.services.offering_service import get_offering


@pytest.mark.asyncio
async def test_increment_writes_one_audit_row(db_session: AsyncSession, test_offering):
    async with atomic(db_session):
        change = await capacity_counter.increment(db_session, test_offering.id, 7, None)

    assert change.applied
    assert (change.old_count, change.new_count) == (0, 1)

    offering = await get_offering(db_session, test_offering.id)
    assert offering.occupancy == 1

    records = await list_audit_records(db_session, test_offering.id)
    assert len(records) == 1
    assert records[0].action == AuditAction.INCREMENT
    assert (records[0].old_count, records[0].new_count) == (0, 1)
    assert records[0].participant_id == 7


@pytest.mark.asyncio
async def test_increment_at_capacity_is_rejected_and_audited(db_session: AsyncSession, full_offering):
    async with atomic(db_session):
        change = await capacity_counter.increment(db_session, full_offering.id, 7, None)

    assert not change.applied
    assert change.action == AuditAction.VALIDATION

    offering = await get_offering(db_session, full_offering.id)
    assert offering.occupancy == 2

    records = await list_audit_records(db_session, full_offering.id)
    assert len(records) == 1
    assert records[0].action == AuditAction.VALIDATION
    assert records[0].old_count == records[0].new_count == 2
    assert "exceed max capacity" in records[0].reason


@pytest.mark.asyncio
async def test_decrement_floors_at_zero(db_session: AsyncSession, test_offering):
    async with atomic(db_session):
        change = await capacity_counter.decrement(db_session, test_offering.id, 7, None)

    assert (change.old_count, change.new_count) == (0, 0)
    offering = await get_offering(db_session, test_offering.id)
    assert offering.occupancy == 0

    records = await list_audit_records(db_session, test_offering.id)
    assert [r.action for r in records] == [AuditAction.DECREMENT]


@pytest.mark.asyncio
async def test_counter_unknown_offering(db_session: AsyncSession):
    with pytest.raises(OfferingNotFound):
        async with atomic(db_session):
            await capacity_counter.increment(db_session, 9999, 7, None)


@pytest.mark.asyncio
async def test_rolled_back_change_leaves_no_trace(db_session: AsyncSession, test_offering):
    with pytest.raises(RuntimeError):
        async with atomic(db_session):
            await capacity_counter.increment(db_session, test_offering.id, 7, None)
            raise RuntimeError("boom")

    offering = await get_offering(db_session, test_offering.id)
    assert offering.occupancy == 0
    assert await list_audit_records(db_session, test_offering.id) == []


@pytest.mark.asyncio
async def test_audit_history_newest_first_with_limit(db_session: AsyncSession, test_offering):
    async with atomic(db_session):
        await capacity_counter.increment(db_session, test_offering.id, 1, None)
        await capacity_counter.increment(db_session, test_offering.id, 2, None)
        await capacity_counter.decrement(db_session, test_offering.id, 1, None)

    records = await list_audit_records(db_session, test_offering.id, limit=2)
    assert [r.action for r in records] == [AuditAction.DECREMENT, AuditAction.INCREMENT]
    assert records[1].participant_id == 2
