"""Service layer package."""

from .allocation_engine import AllocationEngine, TurnGrant
from .booking_service import BookingService
from .expiry_sweeper import ExpirySweeper, SweepResult
from .inventory_ledger import InventoryLedger
from .notifications import (
    LoggingNotifier,
    Notification,
    NotificationDispatcher,
    NotificationKind,
    Notifier,
)
from .priority_gate import PriorityDecision, PriorityGate
from .queue_store import QueueStore
from .trip_service import TripService
from .waitlist_service import WaitlistService

__all__ = [
    "AllocationEngine",
    "BookingService",
    "ExpirySweeper",
    "InventoryLedger",
    "LoggingNotifier",
    "Notification",
    "NotificationDispatcher",
    "NotificationKind",
    "Notifier",
    "PriorityDecision",
    "PriorityGate",
    "QueueStore",
    "SweepResult",
    "TripService",
    "TurnGrant",
    "WaitlistService",
]
