"""Cross-trip cap on a customer's confirmed bookings."""

from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..models.booking import Booking, BookingStatus
from ..models.trip import Trip


class BookingLimits:
    """Counts confirmed bookings on trips that have not started yet."""

    def __init__(self, db: AsyncSession, max_active_bookings: int | None = None):
        self.db = db
        self.max_active_bookings = max_active_bookings or settings.max_active_bookings_per_user

    async def count_active_bookings(self, user_id: str, today: date) -> int:
        stmt = (
            select(func.count(Booking.id))
            .join(Trip, Trip.id == Booking.trip_id)
            .where(
                Booking.user_id == user_id,
                Booking.status == BookingStatus.CONFIRMED.value,
                Trip.start_date > today,
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def is_at_limit(self, user_id: str, today: date) -> bool:
        return await self.count_active_bookings(user_id, today) >= self.max_active_bookings
