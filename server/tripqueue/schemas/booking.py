"""Booking-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus
from .trip import TurnGranted


class CreateBookingRequest(BaseModel):
    """Request schema for booking rooms on a trip."""

    trip_id: str = Field(..., description="Trip to book")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")
    number_of_rooms: int = Field(..., ge=1, le=10, description="Rooms to book")


class CancelBookingRequest(BaseModel):
    """Request schema for cancelling a booking."""

    booking_id: str = Field(..., description="Booking to cancel")
    user_id: str | None = Field(None, max_length=128, description="Customer cancelling; omitted for admin cancellations")
    reason: str | None = Field(None, max_length=1000, description="Cancellation reason")


class GetBookingRequest(BaseModel):
    """Request schema for fetching a booking."""

    booking_id: str = Field(..., description="Booking ID")


class ListBookingsRequest(BaseModel):
    """Request schema for a customer's bookings."""

    user_id: str = Field(..., min_length=1, max_length=128, description="Customer ID")


class Booking(BaseModel):
    """Booking response schema."""

    id: str = Field(..., description="Unique booking ID")
    trip_id: str = Field(..., description="Booked trip")
    user_id: str = Field(..., description="Customer ID")
    number_of_rooms: int = Field(..., description="Rooms booked")
    status: BookingStatus = Field(..., description="Booking status")
    created_at: datetime = Field(..., description="Booking time (ISO 8601)")
    cancelled_at: datetime | None = Field(None, description="Cancellation time (ISO 8601)")
    cancellation_reason: str | None = None

    class Config:
        from_attributes = True


class ListBookingsResponse(BaseModel):
    """Response schema for a customer's bookings."""

    items: list[Booking] = Field(default_factory=list)


class CancelBookingResponse(BaseModel):
    """Response schema for a cancellation."""

    booking: Booking
    turn_granted: TurnGranted | None = Field(None, description="Turn granted to a waiting customer")
