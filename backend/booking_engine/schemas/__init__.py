from booking_engine.schemas.offering import (
    OfferingResponse, OfferingListResponse, AvailabilityResponse,
    ParticipantCountResponse, OccupancyStatsResponse,
)
from booking_engine.schemas.booking import (
    BookingCreate, BookingResponse, BookingCancelResponse, PaymentStatusUpdate,
    BookingStatusUpdate, OperationValidationRequest, OperationValidationResponse,
)
from booking_engine.schemas.audit import AuditRecordResponse, ReconciliationRowResponse, ReconciliationReport

__all__ = [
    "OfferingResponse", "OfferingListResponse", "AvailabilityResponse",
    "ParticipantCountResponse", "OccupancyStatsResponse",
    "BookingCreate", "BookingResponse", "BookingCancelResponse", "PaymentStatusUpdate",
    "BookingStatusUpdate", "OperationValidationRequest", "OperationValidationResponse",
    "AuditRecordResponse", "ReconciliationRowResponse", "ReconciliationReport",
]
