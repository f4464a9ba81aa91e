"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

from typing import Any, Dict, Optional
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
import uuid
from datetime import datetime, timezone

from ..schemas.common import Problem, Violation


logger = logging.getLogger(__name__)


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": self.status_code,
        }

        if self.detail:
            self.problem_details["detail"] = self.detail

        if self.instance:
            self.problem_details["instance"] = self.instance

        self.problem_details.update(self.extensions)

        super().__init__(
            status_code=status_code,
            detail=self.problem_details,
            headers=headers
        )

    @property
    def code(self) -> Optional[str]:
        return self.problem_details.get("code")

    @property
    def retryable(self) -> bool:
        return bool(self.problem_details.get("retryable", False))


class NotFoundError(ProblemDetailsException):
    """Exception for resource not found errors."""

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
        instance: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {
            "resource_type": resource_type,
            "retryable": False,
        }
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(
            status_code=404,
            title="Resource Not Found",
            detail=detail,
            type_uri="https://example.com/problems/resource-not-found",
            instance=instance,
            extensions=extensions,
        )


class ConflictError(ProblemDetailsException):
    """Exception for resource conflict errors."""

    def __init__(
        self,
        detail: str = "The request conflicts with the current state of the resource",
        title: str = "Resource Conflict",
        code: str = "conflict",
        retryable: bool = False,
        type_uri: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        merged = {"code": code, "retryable": retryable}
        if extensions:
            merged.update(extensions)

        super().__init__(
            status_code=409,
            title=title,
            detail=detail,
            type_uri=type_uri or f"https://example.com/problems/{code.replace('_', '-')}",
            instance=instance,
            extensions=merged,
        )


# Business logic exceptions

class TripNotFoundError(NotFoundError):
    """The referenced trip does not exist."""

    def __init__(self, trip_id: Any):
        super().__init__(resource_type="trip", resource_id=str(trip_id))
        self.problem_details["code"] = "trip_not_found"


class EntryNotFoundError(NotFoundError):
    """The referenced waiting-list entry does not exist or is not active."""

    def __init__(self, entry_id: Any = None, detail: Optional[str] = None):
        super().__init__(
            resource_type="waiting list entry",
            resource_id=str(entry_id) if entry_id is not None else None,
            detail=detail,
        )
        self.problem_details["code"] = "entry_not_found"


class BookingNotFoundError(NotFoundError):
    """The referenced booking does not exist."""

    def __init__(self, booking_id: Any):
        super().__init__(resource_type="booking", resource_id=str(booking_id))
        self.problem_details["code"] = "booking_not_found"


class AlreadyQueuedError(ConflictError):
    """The user already holds an active entry on this trip's waiting list."""

    def __init__(self, trip_id: Any, user_id: str, position: int):
        super().__init__(
            title="Already Queued",
            detail=f"You are already in the waiting list for this trip at position {position}",
            code="already_queued",
            extensions={
                "trip_id": str(trip_id),
                "user_id": user_id,
                "position": position,
            },
        )
        self.position = position


class WaitlistNotNeededError(ConflictError):
    """Rooms are open to the public, so there is nothing to queue for."""

    def __init__(self, trip_id: Any, available_rooms: int):
        super().__init__(
            title="Waiting List Not Needed",
            detail="Rooms are available for booking. No need to join the waiting list.",
            code="waitlist_not_needed",
            extensions={"trip_id": str(trip_id), "available_rooms": available_rooms},
        )


class InsufficientInventoryError(ConflictError):
    """Fewer rooms are available than requested."""

    def __init__(self, trip_id: Any, requested_rooms: int, available_rooms: int):
        super().__init__(
            title="Insufficient Rooms",
            detail=f"Only {available_rooms} rooms are available",
            code="insufficient_inventory",
            extensions={
                "trip_id": str(trip_id),
                "requested_rooms": requested_rooms,
                "available_rooms": available_rooms,
            },
        )
        self.available_rooms = available_rooms


class PriorityBlockedError(ConflictError):
    """Another customer holds the booking turn for this trip."""

    def __init__(self, trip_id: Any, expires_at: Optional[datetime] = None):
        extensions: Dict[str, Any] = {"trip_id": str(trip_id)}
        if expires_at is not None:
            extensions["turn_expires_at"] = expires_at.isoformat() + "Z"
        super().__init__(
            title="Booking Priority Held",
            detail=(
                "Someone from the waiting list currently has priority to book. "
                "Please try again later."
            ),
            code="priority_blocked",
            retryable=True,
            extensions=extensions,
        )
        self.expires_at = expires_at


class BookingLimitExceededError(ConflictError):
    """The user already holds the maximum number of active bookings."""

    def __init__(self, user_id: str, limit: int):
        super().__init__(
            title="Booking Limit Reached",
            detail=f"You can have at most {limit} active bookings for upcoming trips",
            code="booking_limit_exceeded",
            extensions={"user_id": user_id, "limit": limit},
        )


class CapacityConflictError(ConflictError):
    """An inventory adjustment would push availability out of range."""

    def __init__(self, trip_id: Any, delta: int, available_rooms: int, total_rooms: int):
        super().__init__(
            title="Capacity Conflict",
            detail=(
                f"Cannot adjust rooms by {delta}: {available_rooms} of "
                f"{total_rooms} rooms are currently available"
            ),
            code="capacity_conflict",
            extensions={
                "trip_id": str(trip_id),
                "delta": delta,
                "available_rooms": available_rooms,
                "total_rooms": total_rooms,
            },
        )


class InvalidEntryStateError(ConflictError):
    """The waiting-list entry is not in a state that allows the operation."""

    def __init__(self, entry_id: Any, status: str, detail: Optional[str] = None):
        super().__init__(
            title="Invalid Entry State",
            detail=detail or f"Waiting list entry is {status}",
            code="invalid_entry_state",
            extensions={"entry_id": str(entry_id), "entry_status": status},
        )


class TripDepartedError(ConflictError):
    """The trip has already started."""

    def __init__(self, trip_id: Any):
        super().__init__(
            title="Trip Departed",
            detail="This trip has already started",
            code="trip_departed",
            extensions={"trip_id": str(trip_id)},
        )


class ConcurrencyConflictError(ConflictError):
    """A per-trip transaction kept losing to concurrent writers."""

    def __init__(self, trip_id: Any, attempts: int):
        super().__init__(
            title="Concurrent Modification",
            detail="The trip was modified concurrently. Please retry the request.",
            code="concurrency_conflict",
            retryable=True,
            extensions={"trip_id": str(trip_id), "attempts": attempts},
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as Problem Details with violations."""
    problem = Problem(
        type="https://example.com/problems/validation-error",
        title="Validation Error",
        status=422,
        detail="The request data failed validation",
        instance=request.url.path,
        code="validation_error",
        violations=[
            Violation(
                path=".".join(str(part) for part in error.get("loc", ()) if part != "body"),
                message=error.get("msg", "Invalid value"),
            )
            for error in exc.errors()
        ],
    )
    return JSONResponse(
        status_code=422,
        content=problem.model_dump(mode="json", exclude_none=True),
        media_type="application/problem+json",
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path},
    )

    problem_details = {
        "type": "https://example.com/problems/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z",
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )


def parse_resource_id(value: Any, resource_type: str) -> uuid.UUID:
    """
    Parse an ID from a request.

    Raises:
        NotFoundError: If the value is not a UUID, since no such resource can exist
    """
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(resource_type=resource_type, resource_id=str(value))
