"""Per-trip serialization primitives."""

import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class TripLockRegistry:
    """
    Hands out one ``asyncio.Lock`` per trip.

    Every operation that mutates a trip's inventory or waiting list holds the
    trip's lock for the whole transaction, so at most one writer per trip runs
    inside this process. Locks are dropped once nobody references them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, trip_id: Hashable) -> asyncio.Lock:
        lock = self._locks.get(str(trip_id))
        if lock is None:
            lock = asyncio.Lock()
            self._locks[str(trip_id)] = lock
        return lock

    @asynccontextmanager
    async def hold(self, trip_id: Hashable) -> AsyncIterator[None]:
        lock = self.lock_for(trip_id)
        if lock.locked():
            logger.debug("Waiting for trip lock", extra={"trip_id": str(trip_id)})
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)


def is_postgresql(session: AsyncSession) -> bool:
    bind = session.bind
    return bind is not None and bind.dialect.name == "postgresql"


async def acquire_trip_advisory_lock(session: AsyncSession, trip_id: Hashable) -> None:
    """
    Take a transaction-scoped advisory lock on the trip.

    Serializes writers across processes on PostgreSQL; the lock is released at
    commit or rollback. Skipped for SQLite (used in tests).
    """
    if not is_postgresql(session):
        return
    await session.execute(
        text("SELECT pg_advisory_xact_lock(hashtext(:trip_id))"),
        {"trip_id": str(trip_id)},
    )
    logger.debug("Acquired advisory lock for trip", extra={"trip_id": str(trip_id)})


# Global lock registry for the API process and its workers
trip_locks = TripLockRegistry()
