"""Expires booking turns that lapsed unused and passes them on."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, system_clock
from ..core.locking import TripLockRegistry
from ..core.observability import metrics_collector
from ..core.retry import with_conflict_retry
from ..models.waitlist import WaitlistStatus
from .allocation_engine import AllocationEngine, TurnGrant
from .notifications import Notification, NotificationDispatcher, NotificationKind
from .queue_store import QueueStore
from .unit_of_work import trip_transaction

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep pass."""

    expired: int = 0
    granted: int = 0
    failed_trips: List[UUID] = field(default_factory=list)

    @property
    def trips_failed(self) -> int:
        return len(self.failed_trips)


class ExpirySweeper:
    """
    Finds notified entries whose booking turn has lapsed, marks them expired,
    compacts the queue and grants the next turn if rooms are still free.

    Each trip is handled in its own session and trip transaction, so a failure
    on one trip is logged and does not stop the others. Running a sweep twice
    without time passing changes nothing the second time, because only
    entries still in NOTIFIED status are picked up.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = system_clock,
        locks: Optional[TripLockRegistry] = None,
    ):
        self.session_factory = session_factory
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.clock = clock
        self.locks = locks

    async def sweep(self) -> SweepResult:
        """Run one pass over all trips with lapsed turns."""
        now = self.clock.now()
        result = SweepResult()

        async with self.session_factory() as db:
            trip_ids = await QueueStore(db, self.clock).find_trips_with_expired_turns(now)

        for trip_id in trip_ids:
            try:
                expired, grant = await with_conflict_retry(
                    partial(self.sweep_trip, trip_id, now),
                    trip_id=trip_id,
                )
            except Exception as e:
                result.failed_trips.append(trip_id)
                logger.error(
                    "Failed to expire booking turns for trip",
                    exc_info=True,
                    extra={"trip_id": str(trip_id), "error": str(e)}
                )
                continue

            result.expired += expired
            if grant is not None:
                result.granted += 1

        metrics_collector.record_sweep(result.trips_failed)
        if trip_ids:
            logger.info(
                "Expiry sweep completed",
                extra={
                    "trips": len(trip_ids),
                    "expired": result.expired,
                    "granted": result.granted,
                    "failed_trips": result.trips_failed,
                    "timestamp": now.isoformat(),
                }
            )
        return result

    async def sweep_trip(self, trip_id: UUID, now: datetime) -> Tuple[int, Optional[TurnGrant]]:
        """Expire one trip's lapsed turns and cascade to the next customer."""
        async with self.session_factory() as db:
            async with trip_transaction(
                db, trip_id, self.dispatcher, clock=self.clock, locks=self.locks
            ) as scope:
                store = QueueStore(db, self.clock)
                engine = AllocationEngine(db, self.clock)

                # Re-read under the trip lock; a user action may have got here first
                lapsed = await store.find_expired_turns(trip_id, now)
                for entry in lapsed:
                    await store.dequeue(entry, WaitlistStatus.EXPIRED)
                    scope.outbox.add(Notification(
                        user_id=entry.user_id,
                        kind=NotificationKind.TURN_EXPIRED,
                        entry_id=str(entry.id),
                        payload={
                            "trip_id": str(trip_id),
                            "trip_name": scope.trip.name,
                            "entry_id": str(entry.id),
                            "expired_at": entry.notification_expires_at.isoformat() + "Z",
                        },
                    ))

                grant = None
                if lapsed:
                    metrics_collector.record_turn_expired(len(lapsed))
                    await engine.queue_position_updates(scope.trip, scope.outbox)
                    if scope.trip.available_rooms > 0:
                        grant = await engine.allocate_after_rooms_freed(scope.trip, scope.outbox)

                return len(lapsed), grant
