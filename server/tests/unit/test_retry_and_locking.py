"""Unit tests for per-trip locking and conflict retries."""

import asyncio

import pytest
from sqlalchemy.exc import DBAPIError

from tripqueue.core.exceptions import ConcurrencyConflictError
from tripqueue.core.locking import TripLockRegistry, is_postgresql
from tripqueue.core.retry import is_serialization_failure, with_conflict_retry


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None):
        super().__init__(message)
        self.sqlstate = sqlstate


def db_error(message, sqlstate=None):
    return DBAPIError("UPDATE trips", {}, FakeDriverError(message, sqlstate))


def test_serialization_failures_are_recognised():
    assert is_serialization_failure(db_error("could not serialize access", "40001"))
    assert is_serialization_failure(db_error("deadlock detected", "40P01"))
    assert is_serialization_failure(db_error("database is locked"))
    assert not is_serialization_failure(db_error("syntax error", "42601"))


@pytest.mark.asyncio
async def test_retry_until_success():
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) < 3:
            raise db_error("could not serialize access", "40001")
        return "done"

    result = await with_conflict_retry(operation, trip_id="trip-1", attempts=3, backoff_seconds=0)

    assert result == "done"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_retry_gives_up_with_retryable_conflict():
    async def operation():
        raise db_error("could not serialize access", "40001")

    with pytest.raises(ConcurrencyConflictError) as exc_info:
        await with_conflict_retry(operation, trip_id="trip-1", attempts=2, backoff_seconds=0)

    assert exc_info.value.status_code == 409
    assert exc_info.value.retryable is True
    assert exc_info.value.problem_details["attempts"] == 2


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    calls = []

    async def operation():
        calls.append(1)
        raise db_error("syntax error", "42601")

    with pytest.raises(DBAPIError):
        await with_conflict_retry(operation, trip_id="trip-1", attempts=3, backoff_seconds=0)

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_trip_lock_serializes_same_trip():
    """Two holders of one trip's lock never overlap."""
    locks = TripLockRegistry()
    events = []

    async def critical_section(name):
        async with locks.hold("trip-1"):
            events.append(f"{name}:in")
            await asyncio.sleep(0.01)
            events.append(f"{name}:out")

    await asyncio.gather(critical_section("a"), critical_section("b"))

    assert events in (
        ["a:in", "a:out", "b:in", "b:out"],
        ["b:in", "b:out", "a:in", "a:out"],
    )


@pytest.mark.asyncio
async def test_trip_locks_are_independent_per_trip():
    locks = TripLockRegistry()

    async with locks.hold("trip-1"):
        assert not locks.lock_for("trip-2").locked()
        assert locks.lock_for("trip-1").locked()


def test_unused_locks_are_released():
    locks = TripLockRegistry()
    lock = locks.lock_for("trip-1")
    assert len(locks) == 1

    del lock

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_advisory_lock_skipped_on_sqlite(test_session):
    assert is_postgresql(test_session) is False
