"""
Booking model representing a participant's reservation for an offering.

Key design decisions:
- Partial unique index on (participant_id, offering_id) WHERE confirmed: a
  participant may rebook after cancelling, but never hold two live bookings
- Status fields never delete records; cancelled rows stay for history
- Only confirmed + completed bookings count towards offering occupancy
"""

from sqlalchemy import Column, Integer, ForeignKey, Index, CheckConstraint, text
from sqlalchemy.orm import relationship

from booking_engine.db.base import Base, TimestampMixin
from booking_engine.models.enums import BookingStatus, PaymentStatus, enum_column, sql_in

CONFIRMED_ONLY = text("booking_status = 'confirmed'")


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    participant_id = Column(Integer, nullable=False, index=True)
    offering_id = Column(Integer, ForeignKey("offerings.id"), nullable=False, index=True)
    booking_status = Column(enum_column(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED)
    payment_status = Column(enum_column(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)

    offering = relationship("Offering", back_populates="bookings", lazy="raise")

    __table_args__ = (
        # One confirmed booking per participant per offering
        Index(
            "uq_confirmed_booking_per_participant",
            "participant_id",
            "offering_id",
            unique=True,
            postgresql_where=CONFIRMED_ONLY,
            sqlite_where=CONFIRMED_ONLY,
        ),
        # Covers the paid-count query used by reconciliation
        Index("ix_bookings_offering_status_payment", "offering_id", "booking_status", "payment_status"),
        CheckConstraint(f"booking_status IN ({sql_in(BookingStatus)})", name="check_booking_status"),
        CheckConstraint(f"payment_status IN ({sql_in(PaymentStatus)})", name="check_payment_status"),
    )

    @property
    def counts_towards_occupancy(self) -> bool:
        return (
            self.booking_status == BookingStatus.CONFIRMED
            and self.payment_status == PaymentStatus.COMPLETED
        )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, participant={self.participant_id}, offering={self.offering_id}, "
            f"status={self.booking_status}, payment={self.payment_status})>"
        )
