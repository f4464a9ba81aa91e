"""Background workers for the trip waiting-list service."""

from .turn_expiry_worker import TurnExpiryWorker

__all__ = ["TurnExpiryWorker"]
