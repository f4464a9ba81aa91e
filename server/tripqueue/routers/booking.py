"""Booking router for booking operations."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from ..core.dependencies import BookingServiceDep
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.booking import (
    Booking,
    CancelBookingRequest,
    CancelBookingResponse,
    CreateBookingRequest,
    GetBookingRequest,
    ListBookingsRequest,
    ListBookingsResponse,
)
from ..services.booking_service import BookingService
from .converters import booking_to_schema, turn_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"], responses=PROBLEM_RESPONSES)


@router.post("/create", response_model=Booking)
async def create_booking(
    request: CreateBookingRequest,
    booking_service: BookingService = BookingServiceDep,
) -> JSONResponse:
    """
    Book rooms on a trip.

    Fails with 409 while another customer holds the waiting-list booking turn.
    """
    try:
        booking = await booking_service.create_booking(request)
        response_data = booking_to_schema(booking)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking creation",
            extra={
                "trip_id": request.trip_id,
                "user_id": request.user_id,
                "number_of_rooms": request.number_of_rooms,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/cancel", response_model=CancelBookingResponse)
async def cancel_booking(
    request: CancelBookingRequest,
    booking_service: BookingService = BookingServiceDep,
) -> JSONResponse:
    """
    Cancel a booking.

    The released rooms are offered to the trip's waiting list first.
    """
    try:
        result = await booking_service.cancel_booking(request)
        response_data = CancelBookingResponse(
            booking=booking_to_schema(result.booking),
            turn_granted=turn_to_schema(result.turn_granted),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking cancellation",
            extra={
                "booking_id": request.booking_id,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    booking_service: BookingService = BookingServiceDep,
) -> JSONResponse:
    """Get a booking by ID."""
    booking = await booking_service.get_booking_or_raise(request.booking_id)
    return JSONResponse(
        status_code=200,
        content=booking_to_schema(booking).model_dump(mode="json")
    )


@router.post("/list", response_model=ListBookingsResponse)
async def list_bookings(
    request: ListBookingsRequest,
    booking_service: BookingService = BookingServiceDep,
) -> JSONResponse:
    """List a customer's bookings, newest first."""
    bookings = await booking_service.list_user_bookings(request.user_id)
    response_data = ListBookingsResponse(items=[booking_to_schema(b) for b in bookings])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
