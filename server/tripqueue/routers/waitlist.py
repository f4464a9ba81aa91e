"""Waiting list router for customer queue operations."""

import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse

from ..core.dependencies import WaitlistServiceDep
from ..core.exceptions import ProblemDetailsException
from ..schemas.common import PROBLEM_RESPONSES
from ..schemas.waitlist import (
    JoinWaitlistRequest,
    JoinWaitlistResponse,
    LeaveWaitlistRequest,
    LeaveWaitlistResponse,
    MyWaitlistsRequest,
    MyWaitlistsResponse,
    PriorityCheckRequest,
    PriorityCheckResponse,
    QueueStatus,
    WaitlistStatusRequest,
)
from ..services.waitlist_service import WaitlistService
from .converters import entry_to_schema, status_to_schema, turn_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/waitlist", tags=["waitlist"], responses=PROBLEM_RESPONSES)


@router.post("/join", response_model=JoinWaitlistResponse)
async def join_waitlist(
    request: JoinWaitlistRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """
    Join a sold-out trip's waiting list.

    Customers are served first come, first served.
    """
    try:
        result = await waitlist_service.join_waitlist(request)

        message = f"You are number {result.entry.position} in the waiting list."
        if result.turn_granted is not None and result.turn_granted.entry.id == result.entry.id:
            message = "A room is available. It's your turn to book!"

        response_data = JoinWaitlistResponse(
            entry=entry_to_schema(result.entry),
            people_in_queue=result.people_in_queue,
            message=message,
        )

        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error joining waiting list",
            extra={
                "trip_id": request.trip_id,
                "user_id": request.user_id,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/leave", response_model=LeaveWaitlistResponse)
async def leave_waitlist(
    request: LeaveWaitlistRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Leave a trip's waiting list."""
    try:
        result = await waitlist_service.leave_waitlist(request)
        response_data = LeaveWaitlistResponse(
            entry=entry_to_schema(result.entry),
            turn_granted=turn_to_schema(result.turn_granted),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error leaving waiting list",
            extra={
                "trip_id": request.trip_id,
                "user_id": request.user_id,
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/status", response_model=QueueStatus)
async def get_waitlist_status(
    request: WaitlistStatusRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Queue position, booking window and wait estimate for one trip."""
    view = await waitlist_service.get_status(request)
    return JSONResponse(
        status_code=200,
        content=status_to_schema(view).model_dump(mode="json")
    )


@router.post("/mine", response_model=MyWaitlistsResponse)
async def list_my_waitlists(
    request: MyWaitlistsRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Every waiting list the customer is in."""
    views = await waitlist_service.list_my_waitlists(request.user_id)
    response_data = MyWaitlistsResponse(items=[status_to_schema(view) for view in views])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/priority", response_model=PriorityCheckResponse)
async def check_priority(
    request: PriorityCheckRequest,
    waitlist_service: WaitlistService = WaitlistServiceDep,
) -> JSONResponse:
    """Whether the customer may book the trip right now."""
    decision = await waitlist_service.check_priority(request)
    response_data = PriorityCheckResponse(
        trip_id=request.trip_id,
        user_id=request.user_id,
        allowed=decision.allowed,
        reason=decision.reason,
        user_holds_turn=decision.user_holds_turn,
        turn_expires_at=decision.expires_at,
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
