"""Trip service for catalog and inventory operations."""

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.exceptions import TripNotFoundError, parse_resource_id
from ..core.retry import with_conflict_retry
from ..models.inventory import InventoryAdjustment
from ..models.trip import Trip
from ..schemas.trip import AdjustRoomsRequest, CreateTripRequest, ListTripsRequest
from .allocation_engine import AllocationEngine, TurnGrant
from .inventory_ledger import InventoryLedger
from .notifications import NotificationDispatcher
from .unit_of_work import trip_transaction

logger = logging.getLogger(__name__)


@dataclass
class RoomAdjustment:
    trip: Trip
    adjustment: InventoryAdjustment
    turn_granted: Optional[TurnGrant]


class TripService:
    """Service for trip-related operations."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.clock = clock
        self.dispatcher = dispatcher or NotificationDispatcher()

    async def create_trip(self, request: CreateTripRequest) -> Trip:
        """
        Create a new trip.

        Args:
            request: Trip creation request

        Returns:
            Created trip entity
        """
        available = request.total_rooms if request.available_rooms is None else request.available_rooms
        trip = Trip(
            name=request.name,
            start_date=request.start_date,
            total_rooms=request.total_rooms,
            available_rooms=available,
        )

        self.db.add(trip)
        await self.db.commit()

        logger.info(
            "Trip created successfully",
            extra={
                "trip_id": str(trip.id),
                "start_date": trip.start_date.isoformat(),
                "total_rooms": trip.total_rooms,
                "available_rooms": trip.available_rooms,
            }
        )
        return trip

    async def get_trip_by_id(self, trip_id: UUID) -> Optional[Trip]:
        """Get trip by ID, reloading it from the database."""
        return await self.db.get(Trip, trip_id, populate_existing=True)

    async def get_trip_by_id_or_raise(self, trip_id: UUID | str) -> Trip:
        """
        Get trip by ID or raise TripNotFoundError.

        Raises:
            TripNotFoundError: If the trip does not exist
        """
        trip_uuid = parse_resource_id(trip_id, "trip")
        trip = await self.get_trip_by_id(trip_uuid)
        if trip is None:
            raise TripNotFoundError(trip_uuid)
        return trip

    async def list_trips(self, request: ListTripsRequest) -> List[Trip]:
        """List trips by departure date."""
        stmt = select(Trip).order_by(Trip.start_date, Trip.name).limit(request.limit)
        if request.upcoming_only:
            stmt = stmt.where(Trip.start_date >= self.clock.now().date())
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def adjust_rooms(self, request: AdjustRoomsRequest) -> RoomAdjustment:
        """
        Add or withdraw rooms. Added rooms go to the waiting list first.

        Raises:
            TripNotFoundError: If the trip does not exist
            CapacityConflictError: If more rooms are withdrawn than are unbooked
        """
        trip_id = parse_resource_id(request.trip_id, "trip")
        return await with_conflict_retry(
            lambda: self._adjust_rooms(trip_id, request),
            trip_id=trip_id,
        )

    async def _adjust_rooms(self, trip_id: UUID, request: AdjustRoomsRequest) -> RoomAdjustment:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            adjustment = await InventoryLedger(self.db).adjust_rooms(
                scope.trip, request.delta, request.reason, request.actor
            )
            grant = None
            if request.delta > 0:
                grant = await AllocationEngine(self.db, self.clock).allocate_after_rooms_freed(
                    scope.trip, scope.outbox
                )

        return RoomAdjustment(trip=scope.trip, adjustment=adjustment, turn_granted=grant)
