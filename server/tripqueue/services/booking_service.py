"""Booking service for creating and cancelling room bookings."""

import logging
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.exceptions import (
    BookingLimitExceededError,
    BookingNotFoundError,
    ConflictError,
    TripDepartedError,
    parse_resource_id,
)
from ..core.observability import metrics_collector
from ..core.retry import with_conflict_retry
from ..models.booking import Booking, BookingStatus
from ..models.waitlist import WaitlistStatus
from ..schemas.booking import CancelBookingRequest, CreateBookingRequest
from .allocation_engine import AllocationEngine, TurnGrant
from .booking_limits import BookingLimits
from .inventory_ledger import InventoryLedger
from .notifications import NotificationDispatcher
from .priority_gate import PriorityGate
from .queue_store import QueueStore
from .unit_of_work import trip_transaction

logger = logging.getLogger(__name__)


@dataclass
class CancellationResult:
    booking: Booking
    turn_granted: Optional[TurnGrant] = None


class BookingService:
    """Service for booking-related operations."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        dispatcher: Optional[NotificationDispatcher] = None,
    ):
        self.db = db
        self.clock = clock
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.queue_store = QueueStore(db, clock)
        self.priority_gate = PriorityGate(self.queue_store)
        self.booking_limits = BookingLimits(db)
        self.ledger = InventoryLedger(db)

    async def create_booking(self, request: CreateBookingRequest) -> Booking:
        """
        Book rooms on a trip.

        The priority check, room reservation, booking insert and removal of
        the customer's queue entry all happen in one trip transaction.

        Raises:
            TripNotFoundError: If the trip does not exist
            TripDepartedError: If the trip has already started
            BookingLimitExceededError: If the customer is at the active-bookings cap
            PriorityBlockedError: If another customer holds the booking turn
            InsufficientInventoryError: If not enough rooms are available
        """
        trip_id = parse_resource_id(request.trip_id, "trip")
        return await with_conflict_retry(
            lambda: self._create_booking(trip_id, request),
            trip_id=trip_id,
        )

    async def _create_booking(self, trip_id: UUID, request: CreateBookingRequest) -> Booking:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            trip = scope.trip
            today = scope.started_at.date()
            if trip.start_date < today:
                raise TripDepartedError(trip_id)

            if await self.booking_limits.is_at_limit(request.user_id, today):
                raise BookingLimitExceededError(request.user_id, self.booking_limits.max_active_bookings)

            await self.priority_gate.enforce(trip_id, request.user_id)
            await self.ledger.reserve_rooms(trip, request.number_of_rooms)

            booking = Booking(
                trip_id=trip_id,
                user_id=request.user_id,
                number_of_rooms=request.number_of_rooms,
                status=BookingStatus.CONFIRMED,
            )
            self.db.add(booking)
            await self.db.flush()

            grant = None
            entry = await self.queue_store.get_active_entry(trip_id, request.user_id)
            if entry is not None:
                await self.queue_store.dequeue(entry, WaitlistStatus.BOOKED)
                engine = AllocationEngine(self.db, self.clock)
                # Rooms the customer left unbooked go to the next in line
                if trip.available_rooms > 0:
                    grant = await engine.allocate_after_rooms_freed(trip, scope.outbox)
                if grant is None:
                    await engine.queue_position_updates(trip, scope.outbox)

        metrics_collector.record_booking_confirmed()
        logger.info(
            "Booking confirmed",
            extra={
                "booking_id": str(booking.id),
                "trip_id": str(trip_id),
                "user_id": request.user_id,
                "number_of_rooms": request.number_of_rooms,
                "from_waiting_list": entry is not None,
                "turn_granted": grant is not None,
                "available_rooms": trip.available_rooms,
            }
        )
        return booking

    async def cancel_booking(self, request: CancelBookingRequest) -> CancellationResult:
        """
        Cancel a booking, release its rooms and offer them to the waiting list.

        Raises:
            BookingNotFoundError: If the booking does not exist or belongs to someone else
            ConflictError: If the booking is already cancelled
        """
        booking_id = parse_resource_id(request.booking_id, "booking")
        booking = await self.get_booking_or_raise(booking_id)
        if request.user_id is not None and booking.user_id != request.user_id:
            raise BookingNotFoundError(booking_id)

        return await with_conflict_retry(
            lambda: self._cancel_booking(booking.trip_id, booking_id, request.reason),
            trip_id=booking.trip_id,
        )

    async def _cancel_booking(self, trip_id: UUID, booking_id: UUID, reason: Optional[str]) -> CancellationResult:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            booking = await self.db.get(Booking, booking_id, populate_existing=True)
            if booking.status == BookingStatus.CANCELLED:
                raise ConflictError(
                    title="Booking Already Cancelled",
                    detail="This booking has already been cancelled",
                    code="booking_already_cancelled",
                    extensions={"booking_id": str(booking_id)},
                )

            booking.status = BookingStatus.CANCELLED
            booking.cancelled_at = scope.started_at
            booking.cancellation_reason = reason
            await self.db.flush()

            await self.ledger.release_rooms(scope.trip, booking.number_of_rooms)
            grant = await AllocationEngine(self.db, self.clock).allocate_after_rooms_freed(
                scope.trip, scope.outbox
            )

        metrics_collector.record_booking_cancelled()
        logger.info(
            "Booking cancelled",
            extra={
                "booking_id": str(booking_id),
                "trip_id": str(trip_id),
                "rooms_released": booking.number_of_rooms,
                "turn_granted": grant is not None,
            }
        )
        return CancellationResult(booking=booking, turn_granted=grant)

    async def get_booking_or_raise(self, booking_id: UUID | str) -> Booking:
        """
        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        booking_uuid = parse_resource_id(booking_id, "booking")
        booking = await self.db.get(Booking, booking_uuid, populate_existing=True)
        if booking is None:
            raise BookingNotFoundError(booking_uuid)
        return booking

    async def list_user_bookings(self, user_id: str) -> List[Booking]:
        stmt = (
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())
