"""Room inventory operations for trips."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import CapacityConflictError, InsufficientInventoryError
from ..models.inventory import InventoryAdjustment
from ..models.trip import Trip

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    The only code path that changes ``Trip.available_rooms``.

    Callers must hold the trip's transaction scope (see ``trip_transaction``)
    and pass the trip instance loaded inside it. Granting a booking turn never
    touches inventory; rooms are reserved only when a booking is created.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def release_rooms(self, trip: Trip, rooms: int) -> int:
        """
        Return rooms to the trip, clamped to ``total_rooms``.

        Returns:
            Rooms actually released
        """
        if rooms <= 0:
            return 0

        before = trip.available_rooms
        trip.available_rooms = min(trip.total_rooms, before + rooms)
        released = trip.available_rooms - before

        if released < rooms:
            logger.warning(
                "Room release clamped to trip total",
                extra={
                    "trip_id": str(trip.id),
                    "requested": rooms,
                    "released": released,
                    "total_rooms": trip.total_rooms,
                }
            )

        await self.db.flush()
        logger.info(
            "Rooms released",
            extra={
                "trip_id": str(trip.id),
                "rooms": released,
                "available_rooms": trip.available_rooms,
            }
        )
        return released

    async def reserve_rooms(self, trip: Trip, rooms: int) -> None:
        """
        Take rooms out of availability for a booking.

        Raises:
            InsufficientInventoryError: If fewer than ``rooms`` are available
        """
        if rooms > trip.available_rooms:
            raise InsufficientInventoryError(trip.id, rooms, trip.available_rooms)

        trip.available_rooms -= rooms
        await self.db.flush()
        logger.info(
            "Rooms reserved",
            extra={
                "trip_id": str(trip.id),
                "rooms": rooms,
                "available_rooms": trip.available_rooms,
            }
        )

    async def adjust_rooms(self, trip: Trip, delta: int, reason: str, actor: str) -> InventoryAdjustment:
        """
        Administrative capacity change applied to total and available rooms.

        Args:
            trip: Trip loaded inside the trip transaction
            delta: Rooms to add (positive) or withdraw (negative)
            reason: Free-text justification for the audit trail
            actor: Who made the change

        Returns:
            The audit record

        Raises:
            CapacityConflictError: If the withdrawal exceeds the rooms not yet booked
        """
        if trip.available_rooms + delta < 0 or trip.total_rooms + delta < 0:
            raise CapacityConflictError(trip.id, delta, trip.available_rooms, trip.total_rooms)

        adjustment = InventoryAdjustment(
            trip_id=trip.id,
            delta=delta,
            reason=reason,
            actor=actor,
            total_rooms_before=trip.total_rooms,
            available_rooms_before=trip.available_rooms,
            total_rooms_after=trip.total_rooms + delta,
            available_rooms_after=trip.available_rooms + delta,
        )

        trip.total_rooms += delta
        trip.available_rooms += delta
        self.db.add(adjustment)
        await self.db.flush()

        logger.info(
            "Trip rooms adjusted",
            extra={
                "trip_id": str(trip.id),
                "delta": delta,
                "actor": actor,
                "total_rooms": trip.total_rooms,
                "available_rooms": trip.available_rooms,
            }
        )
        return adjustment
