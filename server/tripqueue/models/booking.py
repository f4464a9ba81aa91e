"""Booking model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from ..core.clock import utcnow
from ..core.database import Base


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    """Booking entity representing rooms reserved on a trip."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Foreign key to trip
    trip_id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Booking details
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    number_of_rooms: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.CONFIRMED,
        index=True
    )

    # Cancellation
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "number_of_rooms >= 1 AND number_of_rooms <= 10",
            name="ck_booking_number_of_rooms_range"
        ),
        CheckConstraint("status IN ('CONFIRMED', 'CANCELLED')", name="ck_booking_status_valid"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, trip_id={self.trip_id}, user_id='{self.user_id}', "
            f"number_of_rooms={self.number_of_rooms}, status={self.status})>"
        )
