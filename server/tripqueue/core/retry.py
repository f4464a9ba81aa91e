"""Bounded retry for per-trip transactions that lose a serialization race."""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError

from .config import settings
from .exceptions import ConcurrencyConflictError
from .observability import metrics_collector

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_serialization_failure(exc: DBAPIError) -> bool:
    """Return True if the database rejected the transaction because of a concurrent writer."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return True
    return "database is locked" in str(orig or exc).lower()


async def with_conflict_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    trip_id: Any,
    attempts: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
) -> T:
    """
    Run ``operation`` and retry it on serialization failures.

    ``operation`` must open its own per-trip transaction so that every attempt
    starts from freshly read state. Backoff is exponential with jitter. When
    the attempts are exhausted a retryable ``ConcurrencyConflictError`` is
    raised; any other error propagates untouched.
    """
    attempts = attempts or settings.conflict_retry_attempts
    if backoff_seconds is None:
        backoff_seconds = settings.conflict_retry_backoff_seconds

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except DBAPIError as exc:
            if not is_serialization_failure(exc):
                raise
            if attempt == attempts:
                logger.error(
                    "Giving up on trip transaction after repeated conflicts",
                    extra={"trip_id": str(trip_id), "attempts": attempts},
                )
                raise ConcurrencyConflictError(trip_id, attempts) from exc

            delay = backoff_seconds * (2 ** (attempt - 1)) + random.uniform(0, backoff_seconds)
            logger.warning(
                "Trip transaction conflicted, retrying",
                extra={
                    "trip_id": str(trip_id),
                    "attempt": attempt,
                    "delay_seconds": round(delay, 4),
                },
            )
            metrics_collector.record_conflict_retry()
            await asyncio.sleep(delay)

    raise ConcurrencyConflictError(trip_id, attempts)
