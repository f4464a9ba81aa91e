"""Waiting list model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from ..core.clock import utcnow
from ..core.database import Base


class WaitlistStatus(str, Enum):
    """Waiting list entry status enumeration."""
    WAITING = "WAITING"
    NOTIFIED = "NOTIFIED"
    BOOKED = "BOOKED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


# Entries that occupy a queue position
ACTIVE_STATUSES = (WaitlistStatus.WAITING, WaitlistStatus.NOTIFIED)

# Entries that have left the queue and may be resurrected by re-joining
TERMINAL_STATUSES = (WaitlistStatus.BOOKED, WaitlistStatus.EXPIRED, WaitlistStatus.CANCELLED)


class WaitingListEntry(Base):
    """One customer's place in a trip's waiting list."""

    __tablename__ = "waiting_list_entries"

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

    # Queue details
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    rooms_requested: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    joined_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    status: Mapped[WaitlistStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WaitlistStatus.WAITING,
        index=True
    )

    # Booking turn
    notified_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    notification_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("position >= 1", name="ck_waitlist_position_positive"),
        CheckConstraint(
            "rooms_requested >= 1 AND rooms_requested <= 10",
            name="ck_waitlist_rooms_requested_range"
        ),
        CheckConstraint("length(user_id) > 0", name="ck_waitlist_user_id_not_empty"),
        # One row per customer per trip; re-joining resurrects it
        UniqueConstraint("trip_id", "user_id", name="uq_waitlist_trip_user"),
        Index("ix_waitlist_trip_status_position", "trip_id", "status", "position"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def holds_turn_at(self, now: datetime) -> bool:
        """True if this entry holds an unexpired booking turn at ``now``."""
        return (
            self.status == WaitlistStatus.NOTIFIED
            and self.notification_expires_at is not None
            and self.notification_expires_at > now
        )

    def __repr__(self) -> str:
        return (
            f"<WaitingListEntry(id={self.id}, trip_id={self.trip_id}, "
            f"user_id='{self.user_id}', position={self.position}, status={self.status})>"
        )
