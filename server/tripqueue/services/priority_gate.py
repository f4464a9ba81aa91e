"""Booking priority check for trips with an active waiting-list turn."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from ..core.exceptions import PriorityBlockedError
from .queue_store import QueueStore

logger = logging.getLogger(__name__)

BLOCKED_REASON = (
    "Someone from the waiting list currently has priority to book. "
    "Please try again later."
)


@dataclass(frozen=True)
class PriorityDecision:
    allowed: bool
    reason: Optional[str] = None
    holder_entry_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None

    @property
    def user_holds_turn(self) -> bool:
        return self.allowed and self.holder_entry_id is not None


class PriorityGate:
    """
    Decides whether a customer may book a trip right now.

    A booking is allowed when nobody holds the trip's booking turn, or when
    the caller is the turn holder. ``check_priority`` is advisory (for
    rendering); ``enforce`` must be called inside the trip transaction that
    reserves rooms.
    """

    def __init__(self, queue_store: QueueStore):
        self.queue_store = queue_store

    async def check_priority(self, trip_id: UUID, user_id: str) -> PriorityDecision:
        holder = await self.queue_store.active_turn_holder(trip_id)
        if holder is None:
            return PriorityDecision(allowed=True)

        if holder.user_id == user_id:
            return PriorityDecision(
                allowed=True,
                holder_entry_id=holder.id,
                expires_at=holder.notification_expires_at,
            )

        return PriorityDecision(
            allowed=False,
            reason=BLOCKED_REASON,
            holder_entry_id=holder.id,
            expires_at=holder.notification_expires_at,
        )

    async def enforce(self, trip_id: UUID, user_id: str) -> PriorityDecision:
        """
        Raises:
            PriorityBlockedError: If another customer holds the booking turn
        """
        decision = await self.check_priority(trip_id, user_id)
        if not decision.allowed:
            logger.info(
                "Booking blocked by waiting list priority",
                extra={
                    "trip_id": str(trip_id),
                    "user_id": user_id,
                    "holder_entry_id": str(decision.holder_entry_id),
                }
            )
            raise PriorityBlockedError(trip_id, decision.expires_at)
        return decision
