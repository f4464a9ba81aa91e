"""Booking-window calculation and queue wait estimates.

The booking window is how long a notified customer has to complete a booking
before the turn passes to the next person in line. It is a best-effort
scheduling heuristic: more people waiting or less time before departure gives
each person a shorter window, so the queue can plausibly move through everyone
before the trip starts. It is never a guarantee that a turn will come up.

All functions here are pure.
"""

import math
from datetime import date, datetime
from typing import Optional

MIN_HOURS = 2
MAX_HOURS = 48


def days_until_trip(start_date: date, now: datetime) -> int:
    """Whole calendar days from ``now`` until departure, never negative."""
    return max(0, (start_date - now.date()).days)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_booking_window_hours(
    days_until_trip: int,
    people_in_queue: int,
    min_hours: int = MIN_HOURS,
    max_hours: int = MAX_HOURS,
) -> int:
    """
    Hours a notified customer has to book.

    Args:
        days_until_trip: Whole days before departure (negative values count as 0)
        people_in_queue: Active (waiting or notified) entries for the trip,
            including the one being notified
        min_hours: Lower clamp
        max_hours: Upper clamp

    Returns:
        ``clamp(round(days * 24 / (people + 1)), min_hours, max_hours)``
    """
    days = max(0, days_until_trip)
    people = max(0, people_in_queue)
    if days == 0:
        return min_hours

    raw_hours = _round_half_up(days * 24 / (people + 1))
    return max(min_hours, min(raw_hours, max_hours))


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_booking_window(hours: int) -> str:
    """
    Human-readable duration.

    >>> format_booking_window(5)
    '5 hours'
    >>> format_booking_window(24)
    '1 day'
    >>> format_booking_window(51)
    '2 days and 3 hours'
    """
    if hours < 24:
        return _plural(hours, "hour")

    days, remaining_hours = divmod(hours, 24)
    if remaining_hours == 0:
        return _plural(days, "day")
    return f"{_plural(days, 'day')} and {_plural(remaining_hours, 'hour')}"


def estimate_wait_text(
    position: int,
    days_until_trip: int,
    booking_window_hours: int,
) -> Optional[str]:
    """
    Advisory wait estimate for a queue position.

    Position 1 only depends on when a room frees up, which cannot be
    predicted. Further back, the worst case is that everyone ahead uses their
    full booking window: ``(position - 1) * booking_window_hours``.

    Returns None for positions below 1 (not in the queue).
    """
    if position < 1:
        return None

    if position == 1:
        return (
            "You're next in line! You'll be notified as soon as a room becomes "
            "available. We can't predict when that will happen."
        )

    worst_case_hours = (position - 1) * booking_window_hours
    text = (
        f"Up to {format_booking_window(worst_case_hours)} if everyone ahead of you "
        f"uses their full booking window. The actual wait is usually shorter, since "
        f"people ahead of you may book quickly, leave the list, or be skipped."
    )
    if worst_case_hours >= days_until_trip * 24:
        text += " There may not be enough time before departure for your turn to come up."
    return text
