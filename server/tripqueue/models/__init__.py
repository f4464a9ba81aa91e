"""Models module exporting all database models."""

from .booking import Booking, BookingStatus
from .inventory import InventoryAdjustment
from .trip import Trip
from .waitlist import ACTIVE_STATUSES, TERMINAL_STATUSES, WaitingListEntry, WaitlistStatus

__all__ = [
    # Core entity
    "Trip",

    # Booking entities
    "Booking",
    "BookingStatus",

    # Waiting list entities
    "WaitingListEntry",
    "WaitlistStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",

    # Inventory entity
    "InventoryAdjustment",
]
