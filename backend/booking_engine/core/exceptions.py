"""
Domain errors raised by the booking engine.

Every error is recoverable by the caller: it carries a stable `code`, the HTTP
status it maps to, and a `context` dict describing the state that caused it
(current counts, attempted transition, ...). Routes never build HTTPExceptions
for these; `register_error_handlers` renders them.
"""

from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from booking_engine.core.logging import get_logger

logger = get_logger(__name__)


class BookingEngineError(Exception):
    """Base class for all booking engine errors."""

    code = "booking_engine_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Booking operation failed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "context": self.context}


class AlreadyBooked(BookingEngineError):
    code = "already_booked"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Participant already has a booking for this class"


class OfferingNotFound(BookingEngineError):
    code = "class_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Class not found"


class BookingNotFound(BookingEngineError):
    code = "booking_not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Booking not found"


class NotFoundOrAccessDenied(BookingNotFound):
    """Missing, owned by someone else, or already cancelled. Deliberately vague."""

    code = "booking_not_found_or_access_denied"
    default_message = "Booking not found or already cancelled"


class AccessDenied(BookingEngineError):
    code = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Booking belongs to another participant"


class ClassPast(BookingEngineError):
    code = "class_past"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cannot book past classes"


class ClassFull(BookingEngineError):
    code = "class_full"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Class is full"


class InvalidTransition(BookingEngineError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, from_status: str, to_status: str, booking_status: str):
        self.from_status = from_status
        self.to_status = to_status
        self.booking_status = booking_status
        super().__init__(
            f"Invalid payment status transition from {from_status} to {to_status} "
            f"for booking status {booking_status}",
            from_status=from_status,
            to_status=to_status,
            booking_status=booking_status,
        )


class SystemBusy(BookingEngineError):
    code = "system_busy"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "System busy, please retry"
    retry_after_seconds = 1


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingEngineError)
    async def booking_engine_error_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
        logger.info(
            "booking_engine_error",
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
            **exc.context,
        )
        headers = None
        if isinstance(exc, SystemBusy):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
