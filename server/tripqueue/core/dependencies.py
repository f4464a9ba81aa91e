"""FastAPI dependencies for database sessions, time and services."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..services.booking_service import BookingService
from ..services.notifications import NotificationDispatcher
from ..services.trip_service import TripService
from ..services.waitlist_service import WaitlistService
from .clock import Clock, system_clock
from .database import get_db

# Process-wide dispatcher; swap the notifier here to wire in email or push delivery
notification_dispatcher = NotificationDispatcher()


def get_clock() -> Clock:
    """Time source for request handlers."""
    return system_clock


def get_notification_dispatcher() -> NotificationDispatcher:
    """Notification dispatcher for request handlers."""
    return notification_dispatcher


def get_trip_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> TripService:
    return TripService(db, clock, dispatcher)


def get_waitlist_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> WaitlistService:
    return WaitlistService(db, clock, dispatcher)


def get_booking_service(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> BookingService:
    return BookingService(db, clock, dispatcher)


DatabaseSession = Depends(get_db)
TripServiceDep = Depends(get_trip_service)
WaitlistServiceDep = Depends(get_waitlist_service)
BookingServiceDep = Depends(get_booking_service)
