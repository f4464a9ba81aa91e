"""Trip-related Pydantic schemas."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator


class CreateTripRequest(BaseModel):
    """Request schema for creating a trip."""

    name: str = Field(..., min_length=1, max_length=255, description="Trip name")
    start_date: date = Field(..., description="Departure date")
    total_rooms: int = Field(..., ge=0, description="Rooms in the package")
    available_rooms: int | None = Field(
        None, ge=0, description="Rooms open for booking (defaults to total_rooms)"
    )

    @model_validator(mode="after")
    def validate_available_rooms(self) -> "CreateTripRequest":
        if self.available_rooms is not None and self.available_rooms > self.total_rooms:
            raise ValueError("available_rooms cannot exceed total_rooms")
        return self


class GetTripRequest(BaseModel):
    """Request schema for fetching a trip."""

    trip_id: str = Field(..., description="Trip ID")


class ListTripsRequest(BaseModel):
    """Request schema for listing trips."""

    upcoming_only: bool = Field(True, description="Only trips that have not started")
    limit: int = Field(50, ge=1, le=200, description="Maximum number of trips")


class AdjustRoomsRequest(BaseModel):
    """Request schema for an administrative room adjustment."""

    trip_id: str = Field(..., description="Trip to adjust")
    delta: int = Field(..., description="Rooms to add (positive) or withdraw (negative)")
    reason: str = Field(..., min_length=1, max_length=1000, description="Reason for the change")
    actor: str = Field(..., min_length=1, max_length=255, description="Who is making the change")

    @field_validator("delta")
    @classmethod
    def validate_delta(cls, v: int) -> int:
        if v == 0:
            raise ValueError("delta must be non-zero")
        return v


class Trip(BaseModel):
    """Trip response schema."""

    id: str = Field(..., description="Unique trip ID")
    name: str = Field(..., description="Trip name")
    start_date: date = Field(..., description="Departure date")
    total_rooms: int = Field(..., description="Rooms in the package")
    available_rooms: int = Field(..., description="Rooms open for booking")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")
    updated_at: datetime = Field(..., description="Last update time (ISO 8601)")

    class Config:
        from_attributes = True


class ListTripsResponse(BaseModel):
    """Response schema for listing trips."""

    items: list[Trip] = Field(default_factory=list, description="Trips by departure date")


class InventoryAdjustment(BaseModel):
    """Inventory adjustment audit record."""

    id: str = Field(..., description="Adjustment ID")
    trip_id: str = Field(..., description="Adjusted trip")
    delta: int = Field(..., description="Rooms added or withdrawn")
    reason: str = Field(..., description="Reason for the change")
    actor: str = Field(..., description="Who made the change")
    total_rooms_before: int
    total_rooms_after: int
    available_rooms_before: int
    available_rooms_after: int
    created_at: datetime = Field(..., description="Adjustment time (ISO 8601)")

    class Config:
        from_attributes = True


class TurnGranted(BaseModel):
    """A booking turn handed to a waiting customer."""

    entry_id: str = Field(..., description="Waiting list entry that received the turn")
    user_id: str = Field(..., description="Customer holding the turn")
    position: int = Field(..., description="Queue position of the turn holder")
    booking_window_hours: int = Field(..., description="Hours the customer has to book")
    expires_at: datetime = Field(..., description="When the turn lapses (ISO 8601)")


class AdjustRoomsResponse(BaseModel):
    """Response schema for a room adjustment."""

    trip: Trip
    adjustment: InventoryAdjustment
    turn_granted: TurnGranted | None = Field(None, description="Turn granted because rooms freed up")
