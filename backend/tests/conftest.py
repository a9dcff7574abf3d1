"""
Pytest fixtures for test database, client, and offerings.

Each test gets its own database (a throwaway SQLite file unless
TEST_DATABASE_URL points somewhere else), so services can commit freely.
"""

import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator, Awaitable, Callable

# Must be set before the app reads its settings
os.environ.setdefault("REDIS_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from booking_engine.main import app
from booking_engine.db.base import Base
from booking_engine.db.session import get_db
from booking_engine.models.offering import Offering
from booking_engine.models.booking import Booking
from booking_engine.models.enums import BookingStatus, PaymentStatus, OfferingKind
from booking_engine.services import offering_locks

PARTICIPANT_ID = 101
OTHER_PARTICIPANT_ID = 202


@pytest.fixture(autouse=True)
def _reset_offering_locks():
    """asyncio locks are bound to the loop that first waits on them."""
    offering_locks.clear()
    yield
    offering_locks.clear()


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'booking_engine.db'}"
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with a fresh session per request."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def participant_headers() -> dict:
    return {"X-Participant-ID": str(PARTICIPANT_ID)}


@pytest.fixture
def other_participant_headers() -> dict:
    return {"X-Participant-ID": str(OTHER_PARTICIPANT_ID)}


@pytest.fixture
def make_offering(db_session: AsyncSession) -> Callable[..., Awaitable[Offering]]:
    """Factory for offerings; defaults to a class with 3 seats starting in 30 days."""

    async def _make(
        capacity: int = 3,
        occupancy: int = 0,
        days_ahead: int = 30,
        title: str = "Morning Vinyasa",
        kind: OfferingKind = OfferingKind.CLASS,
        host_id: int = 1,
    ) -> Offering:
        offering = Offering(
            title=title,
            kind=kind,
            host_id=host_id,
            capacity=capacity,
            occupancy=occupancy,
            scheduled_start=datetime.now(timezone.utc) + timedelta(days=days_ahead),
        )
        db_session.add(offering)
        await db_session.commit()
        await db_session.refresh(offering)
        return offering

    return _make


@pytest.fixture
def insert_booking(db_session: AsyncSession) -> Callable[..., Awaitable[Booking]]:
    """Write a booking row directly, bypassing the ledger and the counter."""

    async def _insert(
        offering_id: int,
        participant_id: int,
        booking_status: BookingStatus = BookingStatus.CONFIRMED,
        payment_status: PaymentStatus = PaymentStatus.COMPLETED,
    ) -> Booking:
        booking = Booking(
            participant_id=participant_id,
            offering_id=offering_id,
            booking_status=booking_status,
            payment_status=payment_status,
        )
        db_session.add(booking)
        await db_session.commit()
        return booking

    return _insert


@pytest_asyncio.fixture
async def test_offering(make_offering) -> Offering:
    return await make_offering()


@pytest_asyncio.fixture
async def full_offering(make_offering) -> Offering:
    return await make_offering(capacity=2, occupancy=2, title="Sold Out Yin")


@pytest_asyncio.fixture
async def past_offering(make_offering) -> Offering:
    return await make_offering(days_ahead=-1, title="Yesterday's Flow")
