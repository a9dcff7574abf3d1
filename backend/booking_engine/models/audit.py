"""
Append-only audit trail of occupancy counter changes.

Rows are written once and never updated or deleted. There are no foreign keys
so history survives even if the offering or booking rows go away.
"""

from sqlalchemy import Column, Integer, String, DateTime, Index, CheckConstraint, func

from booking_engine.db.base import Base, utcnow
from booking_engine.models.enums import AuditAction, enum_column, sql_in


class AuditRecord(Base):
    __tablename__ = "participant_count_audit"

    id = Column(Integer, primary_key=True, index=True)
    offering_id = Column(Integer, nullable=False)
    participant_id = Column(Integer, nullable=True)
    action = Column(enum_column(AuditAction), nullable=False)
    old_count = Column(Integer, nullable=False)
    new_count = Column(Integer, nullable=False)
    booking_id = Column(Integer, nullable=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("ix_audit_offering_created", "offering_id", "created_at"),
        CheckConstraint(f"action IN ({sql_in(AuditAction)})", name="check_audit_action"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditRecord(offering={self.offering_id}, action={self.action}, "
            f"{self.old_count}->{self.new_count})>"
        )
