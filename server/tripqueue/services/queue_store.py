"""Persistence and ordering of waiting list entries."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.exceptions import AlreadyQueuedError, EntryNotFoundError, InvalidEntryStateError
from ..core.observability import metrics_collector
from ..models.waitlist import ACTIVE_STATUSES, TERMINAL_STATUSES, WaitingListEntry, WaitlistStatus

logger = logging.getLogger(__name__)

_ACTIVE_VALUES = [status.value for status in ACTIVE_STATUSES]

# Reload rows other sessions may have changed since this session last saw them
_FRESH = {"populate_existing": True}


class QueueStore:
    """
    Waiting list queue for trips.

    Positions of a trip's active (waiting or notified) entries always form
    ``1..N``. Every mutating call flushes, so queries later in the same
    transaction see the new state. Mutations must run inside the trip's
    transaction scope.
    """

    def __init__(self, db: AsyncSession, clock: Clock = system_clock):
        self.db = db
        self.clock = clock

    async def enqueue(self, trip_id: UUID, user_id: str, rooms_requested: int) -> Tuple[WaitingListEntry, bool]:
        """
        Put a customer at the tail of the trip's queue.

        A previous entry that already left the queue (booked, expired or
        cancelled) is reused and moved to the tail.

        Returns:
            (entry, resurrected)

        Raises:
            AlreadyQueuedError: If the customer already has an active entry
        """
        existing = await self.get_entry_for_user(trip_id, user_id)
        if existing is not None and existing.is_active:
            raise AlreadyQueuedError(trip_id, user_id, existing.position)

        now = self.clock.now()
        tail = await self._max_active_position(trip_id) + 1

        if existing is not None:
            existing.position = tail
            existing.status = WaitlistStatus.WAITING
            existing.rooms_requested = rooms_requested
            existing.joined_at = now
            existing.notified_at = None
            existing.notification_expires_at = None
            entry = existing
        else:
            entry = WaitingListEntry(
                trip_id=trip_id,
                user_id=user_id,
                position=tail,
                rooms_requested=rooms_requested,
                joined_at=now,
                status=WaitlistStatus.WAITING,
            )
            self.db.add(entry)

        await self.db.flush()
        metrics_collector.record_join(resurrected=existing is not None)

        logger.info(
            "Customer joined waiting list",
            extra={
                "trip_id": str(trip_id),
                "user_id": user_id,
                "entry_id": str(entry.id),
                "position": entry.position,
                "rooms_requested": rooms_requested,
                "resurrected": existing is not None,
            }
        )
        return entry, existing is not None

    async def dequeue(self, entry: WaitingListEntry, result_status: WaitlistStatus) -> List[WaitingListEntry]:
        """
        Take an active entry out of the queue and close the gap it leaves.

        Args:
            entry: Active entry to remove
            result_status: BOOKED, EXPIRED or CANCELLED

        Returns:
            Active entries whose position moved up by one

        Raises:
            InvalidEntryStateError: If the entry is not active or the status is not terminal
        """
        if result_status not in TERMINAL_STATUSES:
            raise ValueError(f"{result_status} is not a terminal waiting list status")
        if not entry.is_active:
            raise InvalidEntryStateError(entry.id, str(getattr(entry.status, "value", entry.status)))

        removed_position = entry.position
        entry.status = result_status

        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.trip_id == entry.trip_id,
                WaitingListEntry.status.in_(_ACTIVE_VALUES),
                WaitingListEntry.position > removed_position,
                WaitingListEntry.id != entry.id,
            )
            .order_by(WaitingListEntry.position)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        compacted = list(result.scalars())
        for trailing in compacted:
            trailing.position -= 1

        await self.db.flush()
        metrics_collector.record_exit(result_status.value)

        logger.info(
            "Entry left waiting list",
            extra={
                "trip_id": str(entry.trip_id),
                "entry_id": str(entry.id),
                "user_id": entry.user_id,
                "status": result_status.value,
                "position": removed_position,
                "compacted": len(compacted),
            }
        )
        return compacted

    async def peek_ordered_waiting(self, trip_id: UUID) -> List[WaitingListEntry]:
        """Waiting entries (not notified) in queue order."""
        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.trip_id == trip_id,
                WaitingListEntry.status == WaitlistStatus.WAITING.value,
            )
            .order_by(WaitingListEntry.position)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return list(result.scalars())

    async def active_turn_holder(self, trip_id: UUID, now: Optional[datetime] = None) -> Optional[WaitingListEntry]:
        """The notified entry whose booking turn has not yet expired, if any."""
        now = now or self.clock.now()
        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.trip_id == trip_id,
                WaitingListEntry.status == WaitlistStatus.NOTIFIED.value,
                WaitingListEntry.notification_expires_at > now,
            )
            .order_by(WaitingListEntry.notified_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return result.scalar_one_or_none()

    async def list_active(self, trip_id: UUID) -> List[WaitingListEntry]:
        """Waiting and notified entries in queue order."""
        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.trip_id == trip_id,
                WaitingListEntry.status.in_(_ACTIVE_VALUES),
            )
            .order_by(WaitingListEntry.position)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return list(result.scalars())

    async def count_active(self, trip_id: UUID) -> int:
        """People in the queue: waiting plus notified entries."""
        stmt = select(func.count(WaitingListEntry.id)).where(
            WaitingListEntry.trip_id == trip_id,
            WaitingListEntry.status.in_(_ACTIVE_VALUES),
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return result.scalar() or 0

    async def get_entry(self, entry_id: UUID) -> WaitingListEntry:
        """
        Raises:
            EntryNotFoundError: If no such entry exists
        """
        entry = await self.db.get(WaitingListEntry, entry_id, populate_existing=True)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def get_entry_for_user(self, trip_id: UUID, user_id: str) -> Optional[WaitingListEntry]:
        """The customer's entry for a trip in any status."""
        stmt = select(WaitingListEntry).where(
            WaitingListEntry.trip_id == trip_id,
            WaitingListEntry.user_id == user_id,
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return result.scalar_one_or_none()

    async def get_active_entry(self, trip_id: UUID, user_id: str) -> Optional[WaitingListEntry]:
        entry = await self.get_entry_for_user(trip_id, user_id)
        if entry is not None and entry.is_active:
            return entry
        return None

    async def list_user_active_entries(self, user_id: str) -> List[WaitingListEntry]:
        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.user_id == user_id,
                WaitingListEntry.status.in_(_ACTIVE_VALUES),
            )
            .order_by(WaitingListEntry.joined_at)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return list(result.scalars())

    async def find_trips_with_expired_turns(self, now: datetime) -> List[UUID]:
        """Trips that have a notified entry whose turn lapsed before ``now``."""
        stmt = (
            select(WaitingListEntry.trip_id)
            .where(
                WaitingListEntry.status == WaitlistStatus.NOTIFIED.value,
                WaitingListEntry.notification_expires_at < now,
            )
            .distinct()
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return list(result.scalars())

    async def find_expired_turns(self, trip_id: UUID, now: datetime) -> List[WaitingListEntry]:
        """Notified entries of one trip whose turn lapsed before ``now``, front of the queue first."""
        stmt = (
            select(WaitingListEntry)
            .where(
                WaitingListEntry.trip_id == trip_id,
                WaitingListEntry.status == WaitlistStatus.NOTIFIED.value,
                WaitingListEntry.notification_expires_at < now,
            )
            .order_by(WaitingListEntry.position)
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return list(result.scalars())

    async def active_counts_by_trip(self) -> List[Tuple[UUID, int]]:
        """(trip_id, active entries) for every trip with a non-empty queue, largest first."""
        count = func.count(WaitingListEntry.id).label("active_count")
        stmt = (
            select(WaitingListEntry.trip_id, count)
            .where(WaitingListEntry.status.in_(_ACTIVE_VALUES))
            .group_by(WaitingListEntry.trip_id)
            .order_by(count.desc())
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return [(row.trip_id, row.active_count) for row in result]

    async def _max_active_position(self, trip_id: UUID) -> int:
        stmt = select(func.max(WaitingListEntry.position)).where(
            WaitingListEntry.trip_id == trip_id,
            WaitingListEntry.status.in_(_ACTIVE_VALUES),
        )
        result = await self.db.execute(stmt, execution_options=_FRESH)
        return result.scalar() or 0
