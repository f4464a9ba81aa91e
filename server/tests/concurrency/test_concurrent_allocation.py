"""Concurrency tests for booking cancellations and waiting list allocation."""

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from tripqueue.core.database import Base
from tripqueue.models.waitlist import WaitlistStatus
from tripqueue.schemas.booking import CancelBookingRequest, CreateBookingRequest
from tripqueue.schemas.trip import AdjustRoomsRequest, CreateTripRequest
from tripqueue.schemas.waitlist import JoinWaitlistRequest, LeaveWaitlistRequest
from tripqueue.services.booking_service import BookingService
from tripqueue.services.notifications import NotificationKind
from tripqueue.services.queue_store import QueueStore
from tripqueue.services.trip_service import TripService
from tripqueue.services.waitlist_service import WaitlistService

from conftest import make_session_factory


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Separate connections per session, like concurrent API requests."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tripqueue.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield make_session_factory(engine)

    await engine.dispose()


async def _sold_out_trip_with_bookings(session_factory, clock, dispatcher, bookers, waiters):
    async with session_factory() as db:
        trip = await TripService(db, clock, dispatcher).create_trip(
            CreateTripRequest(
                name="Concurrent Test Trip",
                start_date=clock.now().date() + timedelta(days=60),
                total_rooms=len(bookers),
            )
        )
        booking_service = BookingService(db, clock, dispatcher)
        bookings = [
            await booking_service.create_booking(
                CreateBookingRequest(trip_id=str(trip.id), user_id=user_id, number_of_rooms=1)
            )
            for user_id in bookers
        ]
        waitlist_service = WaitlistService(db, clock, dispatcher)
        for user_id in waiters:
            await waitlist_service.join_waitlist(
                JoinWaitlistRequest(trip_id=str(trip.id), user_id=user_id)
            )
    return trip, bookings


@pytest.mark.asyncio
async def test_concurrent_cancellations_grant_one_turn(file_session_factory, clock, dispatcher, notifier):
    """Two cancellations race to free rooms for a single waiting customer: exactly one turn is granted."""
    trip, bookings = await _sold_out_trip_with_bookings(
        file_session_factory, clock, dispatcher, bookers=("ana", "ben"), waiters=("wes",)
    )

    async def cancel(booking):
        async with file_session_factory() as db:
            return await BookingService(db, clock, dispatcher).cancel_booking(
                CancelBookingRequest(booking_id=str(booking.id))
            )

    results = await asyncio.gather(*(cancel(booking) for booking in bookings))

    grants = [r.turn_granted for r in results if r.turn_granted is not None]
    assert len(grants) == 1
    assert grants[0].entry.user_id == "wes"

    async with file_session_factory() as db:
        active = await QueueStore(db, clock).list_active(trip.id)
        refreshed = await TripService(db, clock, dispatcher).get_trip_by_id(trip.id)

    assert [(e.user_id, e.position, e.status) for e in active] == [("wes", 1, WaitlistStatus.NOTIFIED)]
    assert refreshed.available_rooms == 2
    assert [u for u, _ in notifier.of_kind(NotificationKind.TURN_GRANTED)] == ["wes"]


@pytest.mark.asyncio
async def test_concurrent_bookings_never_oversell(file_session_factory, clock, dispatcher):
    async with file_session_factory() as db:
        trip = await TripService(db, clock, dispatcher).create_trip(
            CreateTripRequest(
                name="Last Rooms",
                start_date=clock.now().date() + timedelta(days=30),
                total_rooms=3,
            )
        )

    async def book(i):
        async with file_session_factory() as db:
            try:
                return await BookingService(db, clock, dispatcher).create_booking(
                    CreateBookingRequest(trip_id=str(trip.id), user_id=f"customer_{i}", number_of_rooms=1)
                )
            except Exception:
                # Expected once the rooms are gone
                return None

    results = await asyncio.gather(*(book(i) for i in range(10)))

    assert len([r for r in results if r is not None]) == 3
    async with file_session_factory() as db:
        refreshed = await TripService(db, clock, dispatcher).get_trip_by_id(trip.id)
    assert refreshed.available_rooms == 0


@pytest.mark.asyncio
async def test_concurrent_joins_get_distinct_positions(file_session_factory, clock, dispatcher):
    async with file_session_factory() as db:
        trip = await TripService(db, clock, dispatcher).create_trip(
            CreateTripRequest(
                name="Popular Trip",
                start_date=clock.now().date() + timedelta(days=30),
                total_rooms=5,
                available_rooms=0,
            )
        )

    async def join(i):
        async with file_session_factory() as db:
            result = await WaitlistService(db, clock, dispatcher).join_waitlist(
                JoinWaitlistRequest(trip_id=str(trip.id), user_id=f"customer_{i}")
            )
            return result.entry.position

    positions = await asyncio.gather(*(join(i) for i in range(8)))

    assert sorted(positions) == list(range(1, 9))


@pytest.mark.asyncio
async def test_leave_racing_room_increase(file_session_factory, clock, dispatcher):
    """The turn ends up with someone still in the queue, whichever operation wins."""
    trip, _ = await _sold_out_trip_with_bookings(
        file_session_factory, clock, dispatcher, bookers=("ana",), waiters=("wes", "xia")
    )

    async def leave():
        async with file_session_factory() as db:
            await WaitlistService(db, clock, dispatcher).leave_waitlist(
                LeaveWaitlistRequest(trip_id=str(trip.id), user_id="wes")
            )

    async def add_room():
        async with file_session_factory() as db:
            await TripService(db, clock, dispatcher).adjust_rooms(
                AdjustRoomsRequest(trip_id=str(trip.id), delta=1, reason="Extra room", actor="ops")
            )

    await asyncio.gather(leave(), add_room())

    async with file_session_factory() as db:
        active = await QueueStore(db, clock).list_active(trip.id)

    assert [(e.user_id, e.position, e.status) for e in active] == [("xia", 1, WaitlistStatus.NOTIFIED)]
