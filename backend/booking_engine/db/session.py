"""
Async engine, session factory and transaction helpers.

Booking engine services own their transactions: every mutating operation runs
inside `atomic(db)`, which commits on success and rolls back on any error.
Routes only hand a fresh session to the service.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from booking_engine.core.config import get_settings
from booking_engine.core.exceptions import SystemBusy
from booking_engine.core.logging import get_logger
from booking_engine.core.metrics import record_lock_timeout

logger = get_logger(__name__)
settings = get_settings()

# Postgres SQLSTATEs raised when lock_timeout / NOWAIT gives up
LOCK_NOT_AVAILABLE = "55P03"
QUERY_CANCELED = "57014"

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=settings.DB_POOL_TIMEOUT,
    pool_recycle=settings.DB_POOL_RECYCLE,
    pool_pre_ping=True,
)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session


def is_postgres(db: AsyncSession) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def is_lock_timeout(exc: DBAPIError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return sqlstate in (LOCK_NOT_AVAILABLE, QUERY_CANCELED)


async def set_lock_timeout(db: AsyncSession) -> None:
    """Bound row-lock waits for the current transaction (Postgres only)."""
    if not is_postgres(db):
        return
    timeout_ms = int(settings.LOCK_TIMEOUT_SECONDS * 1000)
    await db.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one transaction.

    Commits when the block exits normally, rolls back otherwise. A Postgres
    lock timeout inside the block surfaces as SystemBusy.
    """
    try:
        await set_lock_timeout(db)
        yield db
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        if is_lock_timeout(exc):
            record_lock_timeout("database")
            logger.warning("row_lock_timeout", error=str(exc.orig))
            raise SystemBusy(layer="database") from exc
        raise
    except BaseException:
        await db.rollback()
        raise
