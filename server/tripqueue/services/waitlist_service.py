"""Waiting list service for customer and admin queue operations."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.exceptions import (
    ConflictError,
    EntryNotFoundError,
    InvalidEntryStateError,
    TripDepartedError,
    WaitlistNotNeededError,
    parse_resource_id,
)
from ..core.retry import with_conflict_retry
from ..models.trip import Trip
from ..models.waitlist import WaitingListEntry, WaitlistStatus
from ..schemas.waitlist import (
    ExpireEntryRequest,
    JoinWaitlistRequest,
    LeaveWaitlistRequest,
    PriorityCheckRequest,
    TripQueueRequest,
    WaitlistStatusRequest,
)
from .allocation_engine import AllocationEngine, TurnGrant
from .booking_window import (
    calculate_booking_window_hours,
    days_until_trip,
    estimate_wait_text,
)
from .notifications import Notification, NotificationDispatcher, NotificationKind
from .priority_gate import PriorityDecision, PriorityGate
from .queue_store import QueueStore
from .trip_service import TripService
from .unit_of_work import trip_transaction

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    entry: WaitingListEntry
    people_in_queue: int
    resurrected: bool
    turn_granted: Optional[TurnGrant] = None


@dataclass
class LeaveResult:
    entry: WaitingListEntry
    turn_granted: Optional[TurnGrant] = None


@dataclass
class ExpireResult:
    entry: WaitingListEntry
    turn_granted: Optional[TurnGrant] = None


@dataclass
class QueueStatusView:
    """Everything a customer sees about their place in a trip's queue."""

    trip: Trip
    user_id: str
    entry: Optional[WaitingListEntry]
    people_in_queue: int
    days_until_trip: int
    booking_window_hours: int
    estimated_wait: Optional[str]
    can_join: bool
    can_leave: bool
    message: str
    now: datetime

    @property
    def in_queue(self) -> bool:
        return self.entry is not None

    @property
    def position(self) -> Optional[int]:
        return self.entry.position if self.entry is not None else None

    @property
    def is_notified(self) -> bool:
        return self.entry is not None and self.entry.status == WaitlistStatus.NOTIFIED

    @property
    def turn_expires_at(self) -> Optional[datetime]:
        return self.entry.notification_expires_at if self.is_notified else None


@dataclass
class TripQueueSummaryView:
    trip: Trip
    active_entries: int
    turn_holder: Optional[WaitingListEntry]


@dataclass
class TripQueueDetailsView:
    trip: Trip
    entries: List[WaitingListEntry]
    booking_window_hours: int


class WaitlistService:
    """Service for waiting list operations."""

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
        self.trip_service = TripService(db, clock, self.dispatcher)
        self.priority_gate = PriorityGate(self.queue_store)

    def _engine(self) -> AllocationEngine:
        return AllocationEngine(self.db, self.clock)

    def _window_hours(self, trip: Trip, people_in_queue: int, now: datetime) -> int:
        return calculate_booking_window_hours(
            days_until_trip(trip.start_date, now),
            people_in_queue,
            settings.min_booking_window_hours,
            settings.max_booking_window_hours,
        )

    # Customer operations

    async def join_waitlist(self, request: JoinWaitlistRequest) -> JoinResult:
        """
        Put the customer at the back of the trip's waiting list.

        Raises:
            TripNotFoundError: If the trip does not exist
            TripDepartedError: If the trip has already started
            WaitlistNotNeededError: If rooms are open and nobody is queued
            AlreadyQueuedError: If the customer is already queued
        """
        trip_id = parse_resource_id(request.trip_id, "trip")
        return await with_conflict_retry(
            lambda: self._join(trip_id, request),
            trip_id=trip_id,
        )

    async def _join(self, trip_id: UUID, request: JoinWaitlistRequest) -> JoinResult:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            trip = scope.trip
            if trip.start_date < scope.started_at.date():
                raise TripDepartedError(trip_id)

            people_in_queue = await self.queue_store.count_active(trip_id)
            if trip.available_rooms > 0 and people_in_queue == 0:
                raise WaitlistNotNeededError(trip_id, trip.available_rooms)

            entry, resurrected = await self.queue_store.enqueue(
                trip_id, request.user_id, request.rooms_requested
            )

            # Rooms may be free but unclaimable by those ahead
            grant = None
            if trip.available_rooms > 0:
                grant = await self._engine().allocate_after_rooms_freed(trip, scope.outbox)

            people_in_queue = await self.queue_store.count_active(trip_id)

        return JoinResult(
            entry=entry,
            people_in_queue=people_in_queue,
            resurrected=resurrected,
            turn_granted=grant,
        )

    async def leave_waitlist(self, request: LeaveWaitlistRequest) -> LeaveResult:
        """
        Remove the customer from the trip's waiting list.

        If they held the booking turn it passes to the next eligible customer.

        Raises:
            EntryNotFoundError: If the customer is not queued for the trip
        """
        trip_id = parse_resource_id(request.trip_id, "trip")
        return await with_conflict_retry(
            lambda: self._leave(trip_id, request.user_id),
            trip_id=trip_id,
        )

    async def _leave(self, trip_id: UUID, user_id: str) -> LeaveResult:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            entry = await self.queue_store.get_active_entry(trip_id, user_id)
            if entry is None:
                raise EntryNotFoundError(detail="You are not in the waiting list for this trip")

            held_turn = entry.status == WaitlistStatus.NOTIFIED
            await self.queue_store.dequeue(entry, WaitlistStatus.CANCELLED)

            engine = self._engine()
            await engine.queue_position_updates(scope.trip, scope.outbox)

            grant = None
            if held_turn and scope.trip.available_rooms > 0:
                grant = await engine.allocate_after_rooms_freed(scope.trip, scope.outbox)

        logger.info(
            "Customer left waiting list",
            extra={
                "trip_id": str(trip_id),
                "user_id": user_id,
                "entry_id": str(entry.id),
                "held_turn": held_turn,
                "turn_passed_on": grant is not None,
            }
        )
        return LeaveResult(entry=entry, turn_granted=grant)

    async def get_status(self, request: WaitlistStatusRequest) -> QueueStatusView:
        """The customer's queue status for a trip, including advisory wait text."""
        trip = await self.trip_service.get_trip_by_id_or_raise(request.trip_id)
        entry = await self.queue_store.get_active_entry(trip.id, request.user_id)
        return await self._build_status(trip, request.user_id, entry)

    async def list_my_waitlists(self, user_id: str) -> List[QueueStatusView]:
        """Status views for every queue the customer is in."""
        views = []
        for entry in await self.queue_store.list_user_active_entries(user_id):
            trip = await self.trip_service.get_trip_by_id_or_raise(entry.trip_id)
            views.append(await self._build_status(trip, user_id, entry))
        return views

    async def check_priority(self, request: PriorityCheckRequest) -> PriorityDecision:
        """Advisory check whether the customer may book the trip right now."""
        trip = await self.trip_service.get_trip_by_id_or_raise(request.trip_id)
        return await self.priority_gate.check_priority(trip.id, request.user_id)

    async def _build_status(
        self, trip: Trip, user_id: str, entry: Optional[WaitingListEntry]
    ) -> QueueStatusView:
        now = self.clock.now()
        days = days_until_trip(trip.start_date, now)
        people_in_queue = await self.queue_store.count_active(trip.id)
        departed = trip.start_date < now.date()

        if entry is not None:
            window = self._window_hours(trip, people_in_queue, now)
        else:
            # Window the customer would get if they joined now
            window = self._window_hours(trip, people_in_queue + 1, now)

        estimated_wait = None
        if entry is None:
            can_join = not departed and not (trip.available_rooms > 0 and people_in_queue == 0)
            if departed:
                message = "This trip has already started."
            elif not can_join:
                message = "Rooms are available for booking. No need to join the waiting list."
            else:
                message = "Join the waiting list to be notified when a room becomes available."
        elif entry.holds_turn_at(now):
            can_join = False
            message = (
                "It's your turn! Complete your booking before "
                f"{entry.notification_expires_at:%Y-%m-%d %H:%M} UTC."
            )
        elif entry.status == WaitlistStatus.NOTIFIED:
            can_join = False
            message = "Your booking turn has lapsed and will pass to the next person in line."
        else:
            can_join = False
            estimated_wait = estimate_wait_text(entry.position, days, window)
            message = f"You are number {entry.position} of {people_in_queue} in the waiting list."

        return QueueStatusView(
            trip=trip,
            user_id=user_id,
            entry=entry,
            people_in_queue=people_in_queue,
            days_until_trip=days,
            booking_window_hours=window,
            estimated_wait=estimated_wait,
            can_join=can_join,
            can_leave=entry is not None,
            message=message,
            now=now,
        )

    # Admin operations

    async def admin_overview(self) -> List[TripQueueSummaryView]:
        """Trips with a non-empty waiting list, largest queue first."""
        summaries = []
        for trip_id, active in await self.queue_store.active_counts_by_trip():
            trip = await self.trip_service.get_trip_by_id_or_raise(trip_id)
            holder = await self.queue_store.active_turn_holder(trip_id)
            summaries.append(TripQueueSummaryView(trip=trip, active_entries=active, turn_holder=holder))
        return summaries

    async def admin_queue_details(self, request: TripQueueRequest) -> TripQueueDetailsView:
        """A trip's active entries in queue order."""
        trip = await self.trip_service.get_trip_by_id_or_raise(request.trip_id)
        entries = await self.queue_store.list_active(trip.id)
        window = self._window_hours(trip, len(entries), self.clock.now())
        return TripQueueDetailsView(trip=trip, entries=entries, booking_window_hours=window)

    async def admin_notify_next(self, request: TripQueueRequest) -> TurnGrant:
        """
        Grant the booking turn by hand.

        Raises:
            ConflictError: If no rooms are free, a turn is already running,
                or no waiting customer can take the free rooms
            EntryNotFoundError: If nobody is waiting
        """
        trip_id = parse_resource_id(request.trip_id, "trip")
        return await with_conflict_retry(
            lambda: self._notify_next(trip_id),
            trip_id=trip_id,
        )

    async def _notify_next(self, trip_id: UUID) -> TurnGrant:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            trip = scope.trip
            if trip.available_rooms <= 0:
                raise ConflictError(
                    title="No Rooms Available",
                    detail="No rooms are available to offer to the waiting list",
                    code="no_rooms_available",
                    extensions={"trip_id": str(trip_id)},
                )

            holder = await self.queue_store.active_turn_holder(trip_id)
            if holder is not None:
                raise ConflictError(
                    title="Turn Already Active",
                    detail=(
                        f"{holder.user_id} already holds the booking turn until "
                        f"{holder.notification_expires_at:%Y-%m-%d %H:%M} UTC"
                    ),
                    code="turn_already_active",
                    extensions={"trip_id": str(trip_id), "entry_id": str(holder.id)},
                )

            if not await self.queue_store.peek_ordered_waiting(trip_id):
                raise EntryNotFoundError(detail="Nobody is waiting for this trip")

            grant = await self._engine().allocate_after_rooms_freed(trip, scope.outbox)
            if grant is None:
                raise ConflictError(
                    title="No Eligible Customer",
                    detail=(
                        f"No waiting customer can take the {trip.available_rooms} available rooms"
                    ),
                    code="no_eligible_entry",
                    extensions={"trip_id": str(trip_id), "available_rooms": trip.available_rooms},
                )

        logger.info(
            "Booking turn granted by admin",
            extra={"trip_id": str(trip_id), "entry_id": str(grant.entry.id)}
        )
        return grant

    async def admin_expire_entry(self, request: ExpireEntryRequest) -> ExpireResult:
        """
        Expire a notified entry's booking turn now and pass it on.

        Raises:
            EntryNotFoundError: If the entry does not exist
            InvalidEntryStateError: If the entry is not notified
        """
        entry_id = parse_resource_id(request.entry_id, "waiting list entry")
        entry = await self.queue_store.get_entry(entry_id)
        return await with_conflict_retry(
            lambda: self._expire_entry(entry.trip_id, entry_id),
            trip_id=entry.trip_id,
        )

    async def _expire_entry(self, trip_id: UUID, entry_id: UUID) -> ExpireResult:
        async with trip_transaction(self.db, trip_id, self.dispatcher, clock=self.clock) as scope:
            entry = await self.queue_store.get_entry(entry_id)
            if entry.status != WaitlistStatus.NOTIFIED:
                raise InvalidEntryStateError(
                    entry_id,
                    str(getattr(entry.status, "value", entry.status)),
                    detail="Only a notified entry's booking turn can be expired",
                )

            now = scope.started_at
            await self.queue_store.dequeue(entry, WaitlistStatus.EXPIRED)
            scope.outbox.add(Notification(
                user_id=entry.user_id,
                kind=NotificationKind.TURN_EXPIRED,
                entry_id=str(entry.id),
                payload={
                    "trip_id": str(trip_id),
                    "trip_name": scope.trip.name,
                    "entry_id": str(entry.id),
                    "expired_at": now.isoformat() + "Z",
                },
            ))

            engine = self._engine()
            await engine.queue_position_updates(scope.trip, scope.outbox)
            grant = None
            if scope.trip.available_rooms > 0:
                grant = await engine.allocate_after_rooms_freed(scope.trip, scope.outbox)

        logger.info(
            "Booking turn expired by admin",
            extra={
                "trip_id": str(trip_id),
                "entry_id": str(entry_id),
                "turn_passed_on": grant is not None,
            }
        )
        return ExpireResult(entry=entry, turn_granted=grant)
