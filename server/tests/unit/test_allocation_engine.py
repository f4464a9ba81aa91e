"""Unit tests for booking-turn allocation."""

from datetime import timedelta

import pytest

from tripqueue.models.waitlist import WaitlistStatus
from tripqueue.schemas.trip import AdjustRoomsRequest
from tripqueue.schemas.waitlist import JoinWaitlistRequest
from tripqueue.services.allocation_engine import (
    SKIP_BOOKING_LIMIT,
    SKIP_NOT_ENOUGH_ROOMS,
    AllocationEngine,
)
from tripqueue.services.notifications import NotificationKind
from tripqueue.services.queue_store import QueueStore
from tripqueue.services.unit_of_work import trip_transaction


def add_rooms(trip, delta=1):
    return AdjustRoomsRequest(
        trip_id=str(trip.id), delta=delta, reason="Hotel released rooms", actor="ops"
    )


async def join(waitlist_service, trip, user_id, rooms=1):
    result = await waitlist_service.join_waitlist(
        JoinWaitlistRequest(trip_id=str(trip.id), user_id=user_id, rooms_requested=rooms)
    )
    return result.entry


@pytest.mark.asyncio
async def test_room_increase_grants_turn_to_solo_waiter(
    test_session, clock, notifier, make_trip, trip_service, waitlist_service
):
    """Sold-out trip, one waiter, admin adds a room: the waiter gets the turn."""
    trip = await make_trip(total_rooms=10, available_rooms=0, days_ahead=120)
    entry = await join(waitlist_service, trip, "xena")
    assert entry.position == 1
    assert entry.status == WaitlistStatus.WAITING

    result = await trip_service.adjust_rooms(add_rooms(trip))

    grant = result.turn_granted
    assert grant is not None
    assert grant.entry.user_id == "xena"
    assert grant.booking_window_hours == 48
    assert grant.expires_at == clock.now() + timedelta(hours=48)

    holder = await QueueStore(test_session, clock).active_turn_holder(trip.id)
    assert holder.id == entry.id
    assert holder.status == WaitlistStatus.NOTIFIED
    assert holder.notified_at == clock.now()
    assert holder.notification_expires_at == clock.now() + timedelta(hours=48)

    # Granting a turn does not reserve the room
    refreshed = await trip_service.get_trip_by_id(trip.id)
    assert refreshed.available_rooms == 1

    granted = notifier.of_kind(NotificationKind.TURN_GRANTED)
    assert [user_id for user_id, _ in granted] == ["xena"]
    assert granted[0][1]["booking_window_text"] == "2 days"


@pytest.mark.asyncio
async def test_customer_at_booking_limit_is_skipped(
    test_session, clock, make_trip, trip_service, waitlist_service, give_user_bookings
):
    """The head of the queue holds three future bookings, so the next customer gets the turn."""
    await give_user_bookings("dana", 3)
    trip = await make_trip(total_rooms=10, available_rooms=0)
    dana = await join(waitlist_service, trip, "dana")
    eli = await join(waitlist_service, trip, "eli")

    result = await trip_service.adjust_rooms(add_rooms(trip))

    grant = result.turn_granted
    assert grant.entry.id == eli.id
    assert grant.skipped == [(dana.id, SKIP_BOOKING_LIMIT)]

    store = QueueStore(test_session, clock)
    active = await store.list_active(trip.id)
    assert [(e.user_id, e.position, e.status) for e in active] == [
        ("dana", 1, WaitlistStatus.WAITING),
        ("eli", 2, WaitlistStatus.NOTIFIED),
    ]
    assert (await store.get_entry(dana.id)).status == WaitlistStatus.WAITING


@pytest.mark.asyncio
async def test_customer_wanting_too_many_rooms_is_skipped(
    make_trip, trip_service, waitlist_service
):
    trip = await make_trip(total_rooms=10, available_rooms=0)
    ana = await join(waitlist_service, trip, "ana", rooms=3)
    await join(waitlist_service, trip, "ben", rooms=1)

    result = await trip_service.adjust_rooms(add_rooms(trip, 2))

    assert result.turn_granted.entry.user_id == "ben"
    assert result.turn_granted.skipped == [(ana.id, SKIP_NOT_ENOUGH_ROOMS)]


@pytest.mark.asyncio
async def test_no_second_turn_while_one_is_running(
    test_session, clock, make_trip, trip_service, waitlist_service
):
    """At most one customer per trip holds a booking turn."""
    trip = await make_trip(total_rooms=10, available_rooms=0)
    await join(waitlist_service, trip, "ana")
    await join(waitlist_service, trip, "ben")

    first = await trip_service.adjust_rooms(add_rooms(trip))
    second = await trip_service.adjust_rooms(add_rooms(trip))

    assert first.turn_granted.entry.user_id == "ana"
    assert second.turn_granted is None

    active = await QueueStore(test_session, clock).list_active(trip.id)
    notified = [e for e in active if e.status == WaitlistStatus.NOTIFIED]
    assert [e.user_id for e in notified] == ["ana"]


@pytest.mark.asyncio
async def test_no_allocation_without_free_rooms(
    test_session, clock, dispatcher, make_trip, waitlist_service
):
    trip = await make_trip(total_rooms=10, available_rooms=0)
    await join(waitlist_service, trip, "ana")

    async with trip_transaction(test_session, trip.id, dispatcher, clock=clock) as scope:
        grant = await AllocationEngine(test_session, clock).allocate_after_rooms_freed(
            scope.trip, scope.outbox
        )
        assert len(scope.outbox) == 0

    assert grant is None


@pytest.mark.asyncio
async def test_no_allocation_when_nobody_is_eligible(
    test_session, clock, dispatcher, make_trip, waitlist_service, trip_service
):
    trip = await make_trip(total_rooms=10, available_rooms=0)
    await join(waitlist_service, trip, "ana", rooms=4)

    result = await trip_service.adjust_rooms(add_rooms(trip, 1))

    assert result.turn_granted is None
    waiting = await QueueStore(test_session, clock).peek_ordered_waiting(trip.id)
    assert [e.user_id for e in waiting] == ["ana"]


@pytest.mark.asyncio
async def test_booking_window_shrinks_with_queue_and_departure(
    clock, make_trip, trip_service, waitlist_service
):
    """Two days out with three people queued leaves 48 / 4 = 12 hours."""
    trip = await make_trip(total_rooms=10, available_rooms=0, days_ahead=2)
    for user_id in ("ana", "ben", "cai"):
        await join(waitlist_service, trip, user_id)

    result = await trip_service.adjust_rooms(add_rooms(trip))

    assert result.turn_granted.booking_window_hours == 12
    assert result.turn_granted.people_in_queue == 3
    assert result.turn_granted.expires_at == clock.now() + timedelta(hours=12)


@pytest.mark.asyncio
async def test_waiting_customers_hear_their_position(
    notifier, make_trip, trip_service, waitlist_service
):
    trip = await make_trip(total_rooms=10, available_rooms=0)
    for user_id in ("ana", "ben", "cai"):
        await join(waitlist_service, trip, user_id)
    notifier.clear()

    await trip_service.adjust_rooms(add_rooms(trip))

    updates = notifier.of_kind(NotificationKind.POSITION_UPDATED)
    assert [(user_id, payload["position"]) for user_id, payload in updates] == [("ben", 2), ("cai", 3)]
    assert all(payload["people_in_queue"] == 3 for _, payload in updates)


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_grant(
    test_session, clock, notifier, make_trip, trip_service, waitlist_service
):
    """A notifier outage is logged; the turn stays granted."""
    trip = await make_trip(total_rooms=10, available_rooms=0)
    entry = await join(waitlist_service, trip, "ana")
    notifier.fail_kinds = {NotificationKind.TURN_GRANTED}

    result = await trip_service.adjust_rooms(add_rooms(trip))

    assert result.turn_granted.entry.id == entry.id
    assert notifier.of_kind(NotificationKind.TURN_GRANTED) == []
    holder = await QueueStore(test_session, clock).active_turn_holder(trip.id)
    assert holder.id == entry.id


@pytest.mark.asyncio
async def test_no_turn_granted_after_departure(
    test_session, clock, notifier, make_trip, trip_service, waitlist_service
):
    trip = await make_trip(total_rooms=10, available_rooms=0, days_ahead=1)
    await join(waitlist_service, trip, "ana")
    clock.advance(days=2)
    notifier.clear()

    result = await trip_service.adjust_rooms(add_rooms(trip))

    assert result.turn_granted is None
    assert result.trip.available_rooms == 1
    assert notifier.of_kind(NotificationKind.TURN_GRANTED) == []
    entry = await QueueStore(test_session, clock).get_entry_for_user(trip.id, "ana")
    assert entry.status == WaitlistStatus.WAITING
