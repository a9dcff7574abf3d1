"""
Pydantic schemas for audit and reconciliation reports.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from booking_engine.models.enums import AuditAction


class AuditRecordResponse(BaseModel):
    id: int
    offering_id: int
    participant_id: Optional[int]
    action: AuditAction
    old_count: int
    new_count: int
    booking_id: Optional[int]
    reason: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class ReconciliationRowResponse(BaseModel):
    offering_id: int
    old_count: int
    new_count: int
    was_fixed: bool

    model_config = {"from_attributes": True}


class ReconciliationReport(BaseModel):
    results: list[ReconciliationRowResponse]
    checked: int
    fixed: int
