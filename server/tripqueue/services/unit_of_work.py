"""Per-trip transaction scope shared by every queue and inventory mutation."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, system_clock
from ..core.exceptions import TripNotFoundError
from ..core.locking import TripLockRegistry, acquire_trip_advisory_lock, trip_locks
from ..models.trip import Trip
from .notifications import NotificationDispatcher, NotificationOutbox

logger = logging.getLogger(__name__)


@dataclass
class TripScope:
    """What a caller gets inside ``trip_transaction``."""

    session: AsyncSession
    trip: Trip
    outbox: NotificationOutbox
    started_at: datetime


@asynccontextmanager
async def trip_transaction(
    session: AsyncSession,
    trip_id: UUID,
    dispatcher: NotificationDispatcher,
    *,
    clock: Clock = system_clock,
    locks: Optional[TripLockRegistry] = None,
) -> AsyncIterator[TripScope]:
    """
    Serialize a read-modify-write of one trip's rooms and waiting list.

    Holds the trip's in-process lock and, on PostgreSQL, a transaction-scoped
    advisory lock. The trip row is re-read inside the lock. The block commits
    on success and rolls back on any error. Notifications added to the scope's
    outbox are delivered only after a successful commit.

    Raises:
        TripNotFoundError: If the trip does not exist
    """
    locks = locks or trip_locks
    outbox = NotificationOutbox()

    async with locks.hold(trip_id):
        try:
            await acquire_trip_advisory_lock(session, trip_id)
            trip = await session.get(Trip, trip_id, populate_existing=True)
            if trip is None:
                raise TripNotFoundError(trip_id)

            yield TripScope(session=session, trip=trip, outbox=outbox, started_at=clock.now())

            await session.commit()
        except Exception:
            await session.rollback()
            raise

    pending = outbox.drain()
    if pending:
        logger.debug(
            "Dispatching notifications after commit",
            extra={"trip_id": str(trip_id), "count": len(pending)}
        )
        await dispatcher.dispatch(pending)
