"""Inventory adjustment model definition."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from ..core.clock import utcnow
from ..core.database import Base


class InventoryAdjustment(Base):
    """Audit record of an administrative change to a trip's rooms."""

    __tablename__ = "inventory_adjustments"

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

    # Adjustment details
    delta: Mapped[int] = mapped_column(Integer, nullable=False)  # Can be positive or negative
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    actor: Mapped[str] = mapped_column(String(255), nullable=False)

    # Previous and new values for audit trail
    total_rooms_before: Mapped[int] = mapped_column(Integer, nullable=False)
    total_rooms_after: Mapped[int] = mapped_column(Integer, nullable=False)
    available_rooms_before: Mapped[int] = mapped_column(Integer, nullable=False)
    available_rooms_after: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)

    def __repr__(self) -> str:
        return (
            f"<InventoryAdjustment(id={self.id}, trip_id={self.trip_id}, "
            f"delta={self.delta}, actor='{self.actor}')>"
        )
