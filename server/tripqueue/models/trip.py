"""Trip model definition."""

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from ..core.clock import utcnow
from ..core.database import Base


class Trip(Base):
    """A travel package with a fixed number of rooms."""

    __tablename__ = "trips"

    # Primary key
    id: Mapped[UUID] = mapped_column(
        PgUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )

    # Trip details
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Room inventory; available_rooms only moves through the inventory ledger
    total_rooms: Mapped[int] = mapped_column(Integer, nullable=False)
    available_rooms: Mapped[int] = mapped_column(Integer, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint("total_rooms >= 0", name="ck_trip_total_rooms_non_negative"),
        CheckConstraint("available_rooms >= 0", name="ck_trip_available_rooms_non_negative"),
        CheckConstraint("available_rooms <= total_rooms", name="ck_trip_available_rooms_lte_total"),
    )

    @property
    def booked_rooms(self) -> int:
        return self.total_rooms - self.available_rooms

    def __repr__(self) -> str:
        return (
            f"<Trip(id={self.id}, name='{self.name}', start_date={self.start_date}, "
            f"available_rooms={self.available_rooms}/{self.total_rooms})>"
        )
