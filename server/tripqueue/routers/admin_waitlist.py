"""Admin router for inspecting and driving waiting lists."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import WaitlistServiceDep
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.waitlist import (
    AdminOverviewResponse,
    ExpireEntryRequest,
    ExpireEntryResponse,
    NotifyNextResponse,
    TripQueueDetails,
    TripQueueRequest,
    TripQueueSummary,
)
from ..services.waitlist_service import WaitlistService
from .converters import entry_to_schema, trip_to_schema, turn_to_schema

router = APIRouter(prefix="/v1/admin/waitlist", tags=["admin"], responses=PROBLEM_RESPONSES)


@router.post("/overview", response_model=AdminOverviewResponse)
async def waitlist_overview(
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Trips with customers waiting, largest queue first."""
    summaries = await waitlist_service.admin_overview()
    items = [
        TripQueueSummary(
            trip_id=str(summary.trip.id),
            trip_name=summary.trip.name,
            start_date=summary.trip.start_date,
            total_rooms=summary.trip.total_rooms,
            available_rooms=summary.trip.available_rooms,
            active_entries=summary.active_entries,
            turn_holder_user_id=summary.turn_holder.user_id if summary.turn_holder else None,
            turn_expires_at=(
                summary.turn_holder.notification_expires_at if summary.turn_holder else None
            ),
        )
        for summary in summaries
    ]
    response_data = AdminOverviewResponse(items=items)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/details", response_model=TripQueueDetails)
async def waitlist_details(
    request: TripQueueRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """A trip's waiting list in queue order."""
    details = await waitlist_service.admin_queue_details(request)
    response_data = TripQueueDetails(
        trip=trip_to_schema(details.trip),
        entries=[entry_to_schema(entry) for entry in details.entries],
        booking_window_hours=details.booking_window_hours,
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/notify-next", response_model=NotifyNextResponse)
async def notify_next(
    request: TripQueueRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Grant the booking turn to the next eligible customer."""
    grant = await waitlist_service.admin_notify_next(request)
    response_data = NotifyNextResponse(turn_granted=turn_to_schema(grant))
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/expire", response_model=ExpireEntryResponse)
async def expire_entry(
    request: ExpireEntryRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """End a customer's booking turn early and pass it on."""
    result = await waitlist_service.admin_expire_entry(request)
    response_data = ExpireEntryResponse(
        entry=entry_to_schema(result.entry),
        turn_granted=turn_to_schema(result.turn_granted),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
