"""Background worker that expires lapsed booking turns."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.clock import Clock, system_clock
from ..core.config import settings
from ..core.database import async_session_factory
from ..services.expiry_sweeper import ExpirySweeper
from ..services.notifications import NotificationDispatcher
from .base import BaseWorker

logger = logging.getLogger(__name__)


class TurnExpiryWorker(BaseWorker):
    """
    Background worker that runs the expiry sweeper.

    Each pass marks lapsed booking turns expired, compacts the affected
    queues and grants the next turn where rooms are still free.
    """

    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Clock = system_clock,
    ):
        """
        Initialize the turn expiry worker.

        Args:
            interval_seconds: How often to sweep (default: SWEEP_INTERVAL_SECONDS)
            session_factory: Session factory for per-trip sessions
            dispatcher: Notification dispatcher for expiry and turn notices
            clock: Time source
        """
        super().__init__(
            name="TurnExpiry",
            interval_seconds=interval_seconds or settings.sweep_interval_seconds,
        )
        self.sweeper = ExpirySweeper(
            session_factory or async_session_factory,
            dispatcher=dispatcher,
            clock=clock,
        )

    async def process(self) -> None:
        """Run one sweep."""
        result = await self.sweeper.sweep()

        if result.expired or result.trips_failed:
            logger.info(
                f"Expired {result.expired} booking turns",
                extra={
                    "expired_count": result.expired,
                    "turns_granted": result.granted,
                    "failed_trips": result.trips_failed,
                    "worker": self.name,
                }
            )
