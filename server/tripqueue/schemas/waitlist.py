"""Waiting list Pydantic schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from ..models.waitlist import WaitlistStatus
from .trip import Trip, TurnGranted


class JoinWaitlistRequest(BaseModel):
    """Request schema for joining a trip's waiting list."""

    trip_id: str = Field(..., description="Trip to queue for")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")
    rooms_requested: int = Field(1, ge=1, le=10, description="Rooms the customer wants")


class LeaveWaitlistRequest(BaseModel):
    """Request schema for leaving a waiting list."""

    trip_id: str = Field(..., description="Trip whose queue to leave")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")


class WaitlistStatusRequest(BaseModel):
    """Request schema for a customer's queue status on a trip."""

    trip_id: str = Field(..., description="Trip ID")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")


class MyWaitlistsRequest(BaseModel):
    """Request schema for listing a customer's active queue entries."""

    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")


class PriorityCheckRequest(BaseModel):
    """Request schema for checking whether a customer may book now."""

    trip_id: str = Field(..., description="Trip ID")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")


class WaitlistEntry(BaseModel):
    """Waiting list entry response schema."""

    id: str = Field(..., description="Unique entry ID")
    trip_id: str = Field(..., description="Trip ID")
    user_id: str = Field(..., description="Customer ID")
    position: int = Field(..., description="1-based queue position")
    rooms_requested: int = Field(..., description="Rooms the customer wants")
    status: WaitlistStatus = Field(..., description="Entry status")
    joined_at: datetime = Field(..., description="When the customer joined (ISO 8601)")
    notified_at: datetime | None = Field(None, description="When the booking turn was granted")
    notification_expires_at: datetime | None = Field(None, description="When the booking turn lapses")

    class Config:
        from_attributes = True


class QueueStatus(BaseModel):
    """A customer's view of a trip's waiting list."""

    trip_id: str
    trip_name: str
    start_date: date
    user_id: str
    in_queue: bool = Field(..., description="Customer has an active entry")
    entry: WaitlistEntry | None = None
    position: int | None = None
    people_in_queue: int = Field(..., description="Waiting plus notified entries")
    available_rooms: int
    days_until_trip: int
    booking_window_hours: int = Field(..., description="Current booking window for the next turn")
    booking_window_text: str
    estimated_wait: str | None = Field(None, description="Advisory wait estimate")
    is_notified: bool = False
    turn_expires_at: datetime | None = None
    can_join: bool
    can_leave: bool
    message: str


class MyWaitlistsResponse(BaseModel):
    """Response schema for a customer's active queue entries."""

    items: list[QueueStatus] = Field(default_factory=list)


class PriorityCheckResponse(BaseModel):
    """Response schema for a priority check."""

    trip_id: str
    user_id: str
    allowed: bool
    reason: str | None = None
    user_holds_turn: bool = False
    turn_expires_at: datetime | None = None


class LeaveWaitlistResponse(BaseModel):
    """Response schema for leaving a waiting list."""

    entry: WaitlistEntry
    turn_granted: TurnGranted | None = Field(None, description="Turn passed on because the leaver held it")


class JoinWaitlistResponse(BaseModel):
    """Response schema for joining a waiting list."""

    entry: WaitlistEntry
    people_in_queue: int
    message: str


# Admin schemas

class TripQueueRequest(BaseModel):
    """Request schema addressing one trip's queue."""

    trip_id: str = Field(..., description="Trip ID")


class ExpireEntryRequest(BaseModel):
    """Request schema for expiring a booking turn by hand."""

    entry_id: str = Field(..., description="Notified entry to expire")


class TripQueueSummary(BaseModel):
    """One trip in the admin overview."""

    trip_id: str
    trip_name: str
    start_date: date
    total_rooms: int
    available_rooms: int
    active_entries: int
    turn_holder_user_id: str | None = None
    turn_expires_at: datetime | None = None


class AdminOverviewResponse(BaseModel):
    """Trips with non-empty waiting lists, largest first."""

    items: list[TripQueueSummary] = Field(default_factory=list)


class TripQueueDetails(BaseModel):
    """A trip and its active waiting list."""

    trip: Trip
    entries: list[WaitlistEntry] = Field(default_factory=list)
    booking_window_hours: int


class NotifyNextResponse(BaseModel):
    """Response schema for a manual allocation."""

    turn_granted: TurnGranted


class ExpireEntryResponse(BaseModel):
    """Response schema for a manual expiry."""

    entry: WaitlistEntry
    turn_granted: TurnGranted | None = None
