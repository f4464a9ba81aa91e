"""Trip router for catalog and inventory operations."""

import logging
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import TripServiceDep
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.trip import (
    AdjustRoomsRequest,
    AdjustRoomsResponse,
    CreateTripRequest,
    GetTripRequest,
    ListTripsRequest,
    ListTripsResponse,
    Trip,
)
from ..services.trip_service import TripService
from .converters import adjustment_to_schema, trip_to_schema, turn_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/trip", tags=["trip"], responses=PROBLEM_RESPONSES)


@router.post("/create", response_model=Trip)
async def create_trip(
    request: CreateTripRequest,
    trip_service: TripService = TripServiceDep,
) -> JSONResponse:
    """Create a new trip with its room inventory."""
    trip = await trip_service.create_trip(request)
    return JSONResponse(
        status_code=200,
        content=trip_to_schema(trip).model_dump(mode="json")
    )


@router.post("/get", response_model=Trip)
async def get_trip(
    request: GetTripRequest,
    trip_service: TripService = TripServiceDep,
) -> JSONResponse:
    """Get a trip by ID."""
    trip = await trip_service.get_trip_by_id_or_raise(request.trip_id)
    return JSONResponse(
        status_code=200,
        content=trip_to_schema(trip).model_dump(mode="json")
    )


@router.post("/list", response_model=ListTripsResponse)
async def list_trips(
    request: ListTripsRequest,
    trip_service: TripService = TripServiceDep,
) -> JSONResponse:
    """List trips by departure date."""
    trips = await trip_service.list_trips(request)
    response_data = ListTripsResponse(items=[trip_to_schema(trip) for trip in trips])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/adjust-rooms", response_model=AdjustRoomsResponse)
async def adjust_rooms(
    request: AdjustRoomsRequest,
    trip_service: TripService = TripServiceDep,
) -> JSONResponse:
    """
    Add or withdraw rooms on a trip (admin operation).

    Added rooms are offered to the waiting list before the public.
    """
    result = await trip_service.adjust_rooms(request)

    logger.info(
        "Trip rooms adjusted",
        extra={
            "trip_id": request.trip_id,
            "delta": request.delta,
            "actor": request.actor,
            "turn_granted": result.turn_granted is not None,
        }
    )

    response_data = AdjustRoomsResponse(
        trip=trip_to_schema(result.trip),
        adjustment=adjustment_to_schema(result.adjustment),
        turn_granted=turn_to_schema(result.turn_granted),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
