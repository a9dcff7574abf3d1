"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from booking_engine.api.routes import offerings, bookings, reconciliation

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(offerings.router)
api_router.include_router(bookings.router)
api_router.include_router(reconciliation.router)
