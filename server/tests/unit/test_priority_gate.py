"""Unit tests for the booking priority gate."""

import pytest

from tripqueue.core.exceptions import PriorityBlockedError
from tripqueue.schemas.trip import AdjustRoomsRequest
from tripqueue.schemas.waitlist import JoinWaitlistRequest
from tripqueue.services.priority_gate import BLOCKED_REASON, PriorityGate
from tripqueue.services.queue_store import QueueStore


@pytest.fixture
def gate(test_session, clock):
    return PriorityGate(QueueStore(test_session, clock))


@pytest.fixture
def trip_with_turn(make_trip, trip_service, waitlist_service):
    """Trip where ``holly`` holds the booking turn and ``wade`` waits next in line."""

    async def _setup():
        trip = await make_trip(total_rooms=10, available_rooms=0)
        for user_id in ("holly", "wade"):
            await waitlist_service.join_waitlist(JoinWaitlistRequest(trip_id=str(trip.id), user_id=user_id))
        await trip_service.adjust_rooms(
            AdjustRoomsRequest(trip_id=str(trip.id), delta=1, reason="Cancellation at hotel", actor="ops")
        )
        return trip

    return _setup


@pytest.mark.asyncio
async def test_anyone_may_book_without_active_turn(gate, make_trip):
    trip = await make_trip(total_rooms=10, available_rooms=4)

    decision = await gate.check_priority(trip.id, "walk-in")

    assert decision.allowed is True
    assert decision.reason is None
    assert decision.user_holds_turn is False


@pytest.mark.asyncio
async def test_turn_holder_may_book(gate, clock, trip_with_turn):
    trip = await trip_with_turn()

    decision = await gate.check_priority(trip.id, "holly")

    assert decision.allowed is True
    assert decision.user_holds_turn is True
    assert decision.expires_at > clock.now()


@pytest.mark.asyncio
async def test_others_are_blocked_during_turn(gate, trip_with_turn):
    """Both other queue members and the public wait for the holder."""
    trip = await trip_with_turn()

    for user_id in ("wade", "walk-in"):
        decision = await gate.check_priority(trip.id, user_id)
        assert decision.allowed is False
        assert decision.reason == BLOCKED_REASON

    with pytest.raises(PriorityBlockedError) as exc_info:
        await gate.enforce(trip.id, "walk-in")

    assert exc_info.value.retryable is True
    assert exc_info.value.code == "priority_blocked"
    assert "turn_expires_at" in exc_info.value.problem_details


@pytest.mark.asyncio
async def test_lapsed_turn_stops_blocking_before_sweep(gate, clock, trip_with_turn):
    """Priority ends at expiry even if the sweeper has not run yet."""
    trip = await trip_with_turn()

    clock.advance(hours=49)

    decision = await gate.check_priority(trip.id, "walk-in")
    assert decision.allowed is True
