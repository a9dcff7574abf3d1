"""
Offering model: a bookable class or multi-day retreat with seat inventory.

Key design decisions:
- `occupancy` is denormalized (avoids COUNT over bookings on every read) and is
  only written by the capacity counter and reconciliation
- CHECK constraints keep 0 <= occupancy <= capacity at the DB level
- Index on `scheduled_start` for listings and the reconciliation sweep order
"""

from sqlalchemy import Column, Integer, String, DateTime, Index, CheckConstraint
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin
from booking_engine.models.enums import OfferingKind, enum_column, sql_in


class Offering(Base, TimestampMixin):
    __tablename__ = "offerings"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    kind = Column(enum_column(OfferingKind), nullable=False, default=OfferingKind.CLASS)
    host_id = Column(Integer, nullable=True, index=True)
    capacity = Column(Integer, nullable=False)
    occupancy = Column(Integer, nullable=False, default=0)
    scheduled_start = Column(DateTime(timezone=True), nullable=False)

    bookings = relationship("Booking", back_populates="offering", lazy="raise")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_capacity_positive"),
        CheckConstraint("occupancy >= 0", name="check_occupancy_non_negative"),
        CheckConstraint("occupancy <= capacity", name="check_occupancy_lte_capacity"),
        CheckConstraint(f"kind IN ({sql_in(OfferingKind)})", name="check_offering_kind"),
        Index("ix_offerings_scheduled_start", "scheduled_start"),
    )

    @property
    def spots_left(self) -> int:
        return max(0, self.capacity - self.occupancy)

    @property
    def is_full(self) -> bool:
        return self.occupancy >= self.capacity

    def __repr__(self) -> str:
        return f"<Offering(id={self.id}, title={self.title}, occupancy={self.occupancy}/{self.capacity})>"
