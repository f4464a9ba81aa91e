"""Grants booking turns to waiting customers when rooms free up."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.observability import metrics_collector
from ..models.trip import Trip
from ..models.waitlist import WaitingListEntry, WaitlistStatus
from .booking_limits import BookingLimits
from .booking_window import (
    calculate_booking_window_hours,
    days_until_trip,
    format_booking_window,
)
from .notifications import Notification, NotificationKind, NotificationOutbox
from .queue_store import QueueStore

logger = logging.getLogger(__name__)

SKIP_NOT_ENOUGH_ROOMS = "not_enough_rooms"
SKIP_BOOKING_LIMIT = "booking_limit"


@dataclass
class TurnGrant:
    """Result of a successful allocation."""

    entry: WaitingListEntry
    booking_window_hours: int
    expires_at: datetime
    people_in_queue: int
    skipped: List[Tuple[UUID, str]] = field(default_factory=list)


class AllocationEngine:
    """
    Picks the next customer to hold a trip's booking turn.

    Called with the trip loaded inside its ``trip_transaction`` after any
    change that may have freed rooms: a cancelled booking, an admin room
    increase, the turn holder leaving, or a turn expiring. At most one turn is
    granted per call, and none while another turn is still running.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = system_clock,
        booking_limits: Optional[BookingLimits] = None,
        min_hours: Optional[int] = None,
        max_hours: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.queue_store = QueueStore(db, clock)
        self.booking_limits = booking_limits or BookingLimits(db)
        self.min_hours = min_hours or settings.min_booking_window_hours
        self.max_hours = max_hours or settings.max_booking_window_hours

    async def allocate_after_rooms_freed(self, trip: Trip, outbox: NotificationOutbox) -> Optional[TurnGrant]:
        """
        Grant a booking turn to the first eligible waiting customer.

        Customers who want more rooms than are available, or who already hold
        the maximum number of active bookings, are passed over but keep their
        place.

        Returns:
            The grant, or None if nothing was granted
        """
        if trip.available_rooms <= 0:
            logger.debug("No rooms available, skipping allocation", extra={"trip_id": str(trip.id)})
            return None

        now = self.clock.now()
        if trip.start_date < now.date():
            logger.debug(
                "Trip has departed, skipping allocation",
                extra={"trip_id": str(trip.id), "start_date": trip.start_date.isoformat()}
            )
            return None

        holder = await self.queue_store.active_turn_holder(trip.id, now)
        if holder is not None:
            logger.debug(
                "Booking turn already held, skipping allocation",
                extra={"trip_id": str(trip.id), "holder_entry_id": str(holder.id)}
            )
            return None

        skipped: List[Tuple[UUID, str]] = []
        winner: Optional[WaitingListEntry] = None
        for candidate in await self.queue_store.peek_ordered_waiting(trip.id):
            if candidate.rooms_requested > trip.available_rooms:
                skipped.append((candidate.id, SKIP_NOT_ENOUGH_ROOMS))
                continue
            if await self.booking_limits.is_at_limit(candidate.user_id, now.date()):
                skipped.append((candidate.id, SKIP_BOOKING_LIMIT))
                continue
            winner = candidate
            break

        for _, reason in skipped:
            metrics_collector.record_allocation_skip(reason)

        if winner is None:
            logger.info(
                "No eligible waiting customer for freed rooms",
                extra={
                    "trip_id": str(trip.id),
                    "available_rooms": trip.available_rooms,
                    "skipped": len(skipped),
                }
            )
            return None

        days = days_until_trip(trip.start_date, now)
        people_in_queue = await self.queue_store.count_active(trip.id)
        hours = calculate_booking_window_hours(days, people_in_queue, self.min_hours, self.max_hours)
        expires_at = now + timedelta(hours=hours)

        winner.status = WaitlistStatus.NOTIFIED
        winner.notified_at = now
        winner.notification_expires_at = expires_at
        await self.db.flush()

        metrics_collector.record_turn_granted(hours)
        logger.info(
            "Booking turn granted",
            extra={
                "trip_id": str(trip.id),
                "entry_id": str(winner.id),
                "user_id": winner.user_id,
                "position": winner.position,
                "booking_window_hours": hours,
                "expires_at": expires_at.isoformat(),
                "people_in_queue": people_in_queue,
                "skipped": len(skipped),
            }
        )

        outbox.add(Notification(
            user_id=winner.user_id,
            kind=NotificationKind.TURN_GRANTED,
            entry_id=str(winner.id),
            payload={
                "trip_id": str(trip.id),
                "trip_name": trip.name,
                "entry_id": str(winner.id),
                "rooms_requested": winner.rooms_requested,
                "available_rooms": trip.available_rooms,
                "booking_window_hours": hours,
                "booking_window_text": format_booking_window(hours),
                "expires_at": expires_at.isoformat() + "Z",
            },
        ))
        await self.queue_position_updates(trip, outbox, people_in_queue=people_in_queue)

        return TurnGrant(
            entry=winner,
            booking_window_hours=hours,
            expires_at=expires_at,
            people_in_queue=people_in_queue,
            skipped=skipped,
        )

    async def queue_position_updates(
        self,
        trip: Trip,
        outbox: NotificationOutbox,
        people_in_queue: Optional[int] = None,
    ) -> int:
        """Tell every waiting customer of the trip where they now stand."""
        waiting = await self.queue_store.peek_ordered_waiting(trip.id)
        if people_in_queue is None:
            people_in_queue = await self.queue_store.count_active(trip.id)

        for entry in waiting:
            outbox.add(Notification(
                user_id=entry.user_id,
                kind=NotificationKind.POSITION_UPDATED,
                entry_id=str(entry.id),
                payload={
                    "trip_id": str(trip.id),
                    "trip_name": trip.name,
                    "entry_id": str(entry.id),
                    "position": entry.position,
                    "people_in_queue": people_in_queue,
                },
            ))

        metrics_collector.set_active_entries(str(trip.id), people_in_queue)
        return len(waiting)
