"""FastAPI routers package."""

from .admin_waitlist import router as admin_waitlist_router
from .booking import router as booking_router
from .health import router as health_router
from .metrics import router as metrics_router
from .trip import router as trip_router
from .waitlist import router as waitlist_router

__all__ = [
    "admin_waitlist_router",
    "booking_router",
    "health_router",
    "metrics_router",
    "trip_router",
    "waitlist_router",
]
