from booking_engine.models.offering import Offering
from booking_engine.models.booking import Booking
from booking_engine.models.audit import AuditRecord

__all__ = ["Offering", "Booking", "AuditRecord"]
