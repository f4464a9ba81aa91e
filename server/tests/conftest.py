"""Test configuration and fixtures."""

from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tripqueue.core.clock import FixedClock
from tripqueue.core.database import Base, get_db
from tripqueue.models import *  # noqa: F403 - Import all models
from tripqueue.schemas.booking import CreateBookingRequest
from tripqueue.schemas.trip import CreateTripRequest
from tripqueue.services.booking_service import BookingService
from tripqueue.services.notifications import NotificationDispatcher
from tripqueue.services.trip_service import TripService
from tripqueue.services.waitlist_service import WaitlistService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Every test runs at this instant unless it moves the clock
TEST_NOW = datetime(2030, 1, 10, 12, 0, 0)


class RecordingNotifier:
    """Notifier that keeps what it was asked to send."""

    def __init__(self):
        self.sent = []
        self.fail_kinds = set()

    async def notify(self, user_id, kind, payload):
        if kind in self.fail_kinds:
            raise RuntimeError(f"{kind.value} delivery is down")
        self.sent.append((user_id, kind, payload))

    def of_kind(self, kind):
        return [(user_id, payload) for user_id, sent_kind, payload in self.sent if sent_kind == kind]

    def clear(self):
        self.sent.clear()


def make_engine(url: str = TEST_DATABASE_URL):
    return create_async_engine(
        url,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


def make_session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = make_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return make_session_factory(test_engine)


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(TEST_NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier):
    return NotificationDispatcher(notifier)


@pytest.fixture
def trip_service(test_session, clock, dispatcher):
    return TripService(test_session, clock, dispatcher)


@pytest.fixture
def waitlist_service(test_session, clock, dispatcher):
    return WaitlistService(test_session, clock, dispatcher)


@pytest.fixture
def booking_service(test_session, clock, dispatcher):
    return BookingService(test_session, clock, dispatcher)


@pytest.fixture
def make_trip(trip_service, clock):
    """Factory for trips departing ``days_ahead`` days after the test clock."""

    async def _make_trip(
        total_rooms: int = 10,
        available_rooms: int = 0,
        days_ahead: int = 120,
        name: str = "Lofoten Islands Explorer",
    ):
        return await trip_service.create_trip(
            CreateTripRequest(
                name=name,
                start_date=clock.now().date() + timedelta(days=days_ahead),
                total_rooms=total_rooms,
                available_rooms=available_rooms,
            )
        )

    return _make_trip


@pytest.fixture
def give_user_bookings(make_trip, booking_service):
    """Fill a customer up with confirmed bookings on other upcoming trips."""

    async def _give(user_id: str, count: int):
        for i in range(count):
            other = await make_trip(total_rooms=2, available_rooms=2, name=f"Side trip {i}")
            await booking_service.create_booking(
                CreateBookingRequest(trip_id=str(other.id), user_id=user_id, number_of_rooms=1)
            )

    return _give


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, clock, dispatcher):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from tripqueue.core.dependencies import get_clock, get_notification_dispatcher
    from tripqueue.core.exceptions import (
        ProblemDetailsException,
        generic_exception_handler,
        problem_details_handler,
        validation_exception_handler,
    )
    from tripqueue.core.middleware import setup_middleware
    from tripqueue.routers import admin_waitlist, booking, health, metrics, trip, waitlist

    # Simplified app without lifespan, so no workers or schema setup run
    app = FastAPI(
        title="Trip Waiting List API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    setup_middleware(app, enable_logging=True)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(trip.router)
    app.include_router(waitlist.router)
    app.include_router(booking.router)
    app.include_router(admin_waitlist.router)
    app.include_router(metrics.router)

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    from httpx import ASGITransport
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_trip_data(clock):
    """Sample sold-out trip for API tests."""
    return {
        "name": "Northern Lights Adventure",
        "start_date": (clock.now().date() + timedelta(days=120)).isoformat(),
        "total_rooms": 12,
        "available_rooms": 0,
    }

