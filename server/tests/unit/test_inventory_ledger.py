"""Unit tests for the room inventory ledger."""

import pytest
from sqlalchemy import select

from tripqueue.core.exceptions import CapacityConflictError, InsufficientInventoryError
from tripqueue.models.inventory import InventoryAdjustment
from tripqueue.services.inventory_ledger import InventoryLedger


@pytest.mark.asyncio
async def test_reserve_rooms(test_session, make_trip):
    trip = await make_trip(total_rooms=5, available_rooms=3)
    ledger = InventoryLedger(test_session)

    await ledger.reserve_rooms(trip, 2)

    assert trip.available_rooms == 1
    assert trip.booked_rooms == 4


@pytest.mark.asyncio
async def test_reserve_rooms_insufficient(test_session, make_trip):
    """Test that a reservation larger than availability is refused untouched."""
    trip = await make_trip(total_rooms=5, available_rooms=1)
    ledger = InventoryLedger(test_session)

    with pytest.raises(InsufficientInventoryError) as exc_info:
        await ledger.reserve_rooms(trip, 2)

    assert exc_info.value.problem_details["detail"] == "Only 1 rooms are available"
    assert exc_info.value.available_rooms == 1
    assert trip.available_rooms == 1


@pytest.mark.asyncio
async def test_release_rooms(test_session, make_trip):
    trip = await make_trip(total_rooms=5, available_rooms=0)
    ledger = InventoryLedger(test_session)

    released = await ledger.release_rooms(trip, 2)

    assert released == 2
    assert trip.available_rooms == 2


@pytest.mark.asyncio
async def test_release_rooms_clamped_to_total(test_session, make_trip):
    """Test that releasing never pushes availability above the trip total."""
    trip = await make_trip(total_rooms=5, available_rooms=4)
    ledger = InventoryLedger(test_session)

    released = await ledger.release_rooms(trip, 3)

    assert released == 1
    assert trip.available_rooms == 5


@pytest.mark.asyncio
async def test_adjust_rooms_records_audit_trail(test_session, make_trip):
    trip = await make_trip(total_rooms=8, available_rooms=0)
    ledger = InventoryLedger(test_session)

    adjustment = await ledger.adjust_rooms(trip, 2, "Hotel released a block", "ops@example.com")
    await test_session.commit()

    assert trip.total_rooms == 10
    assert trip.available_rooms == 2
    assert adjustment.total_rooms_before == 8
    assert adjustment.total_rooms_after == 10
    assert adjustment.available_rooms_before == 0
    assert adjustment.available_rooms_after == 2

    stored = (await test_session.execute(select(InventoryAdjustment))).scalars().all()
    assert [(a.delta, a.actor) for a in stored] == [(2, "ops@example.com")]


@pytest.mark.asyncio
async def test_adjust_rooms_cannot_withdraw_booked_rooms(test_session, make_trip):
    """Test that a withdrawal may only take rooms that are not booked."""
    trip = await make_trip(total_rooms=8, available_rooms=2)
    ledger = InventoryLedger(test_session)

    with pytest.raises(CapacityConflictError) as exc_info:
        await ledger.adjust_rooms(trip, -3, "Hotel overbooked", "ops@example.com")

    assert exc_info.value.code == "capacity_conflict"
    assert trip.total_rooms == 8
    assert trip.available_rooms == 2

    await ledger.adjust_rooms(trip, -2, "Hotel overbooked", "ops@example.com")
    assert trip.total_rooms == 6
    assert trip.available_rooms == 0
