"""
Class Booking Engine - Main Application Entry Point

A booking ledger for capacity-limited classes and retreats:
- Seat counter that never drifts from the set of paid bookings
- Payment state machine gating every seat change
- Append-only audit trail of counter mutations
- Reconciliation that repairs drift on demand or on a schedule
"""

import asyncio
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_engine.core.config import get_settings
from booking_engine.core.logging import setup_logging, get_logger
from booking_engine.core.exceptions import register_error_handlers
from booking_engine.core.metrics import metrics_endpoint
from booking_engine.api.router import api_router
from booking_engine.api.middleware import RequestLoggingMiddleware
from booking_engine.db.session import SessionLocal
from booking_engine.services.cache_service import get_redis, close_redis, get_cache_stats, invalidate_offering_cache
from booking_engine.services.reconciliation_service import run_periodic_reconciliation

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    reconciler = None
    if settings.RECONCILE_INTERVAL_SECONDS > 0:
        reconciler = asyncio.create_task(
            run_periodic_reconciliation(
                SessionLocal,
                settings.RECONCILE_INTERVAL_SECONDS,
                on_fixed=invalidate_offering_cache,
            )
        )

    yield

    if reconciler is not None:
        reconciler.cancel()
        try:
            await reconciler
        except asyncio.CancelledError:
            logger.info("reconciliation_scheduler_stopped")

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booking ledger with a consistent per-class seat counter",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Monitoring"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
