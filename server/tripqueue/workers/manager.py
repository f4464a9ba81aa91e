"""Worker manager for coordinating background tasks."""

import asyncio
import logging
from typing import Dict, Optional

from ..core.config import settings
from .base import BaseWorker
from .turn_expiry_worker import TurnExpiryWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """
    Manages background workers for the application.

    Coordinates starting, stopping, and monitoring of all background workers.
    """

    def __init__(self, workers: Optional[Dict[str, BaseWorker]] = None):
        """
        Initialize the worker manager.

        Args:
            workers: Workers to manage; defaults to the configured set
        """
        self.workers: Dict[str, BaseWorker] = workers if workers is not None else self._default_workers()
        logger.info(f"Initialized {len(self.workers)} workers")

    @staticmethod
    def _default_workers() -> Dict[str, BaseWorker]:
        workers: Dict[str, BaseWorker] = {}
        if settings.sweeper_enabled:
            workers["turn_expiry"] = TurnExpiryWorker(interval_seconds=settings.sweep_interval_seconds)
        return workers

    async def start_all(self) -> None:
        """Start all workers."""
        logger.info("Starting all workers")

        for name, worker in self.workers.items():
            try:
                await worker.start()
                logger.info(f"Started worker: {name}")
            except Exception as e:
                logger.error(f"Failed to start worker {name}: {e!s}", exc_info=True)

        logger.info(f"Started {len(self.workers)} workers")

    async def stop_all(self) -> None:
        """Stop all running workers gracefully."""
        logger.info("Stopping all workers")

        running = {name: worker for name, worker in self.workers.items() if worker.is_running}
        results = await asyncio.gather(
            *(worker.stop() for worker in running.values()),
            return_exceptions=True,
        )

        for name, result in zip(running.keys(), results):
            if isinstance(result, Exception):
                logger.error(f"Error stopping worker {name}: {result!s}")
            else:
                logger.info(f"Stopped worker: {name}")

        logger.info("All workers stopped")

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> Dict[str, bool]:
        """
        Get the status of all workers.

        Returns:
            Dictionary mapping worker names to their running status
        """
        return {name: worker.is_running for name, worker in self.workers.items()}


# Global worker manager instance
worker_manager = WorkerManager()
