"""Problem Details schemas shared by every endpoint."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Violation(BaseModel):
    """One invalid request field."""

    path: str = Field(..., description="Dotted path to the invalid field, e.g. rooms_requested")
    message: str = Field(..., description="Why the value was rejected")


class Problem(BaseModel):
    """
    RFC 9457 Problem Details body.

    Waiting list conflicts add extension members next to the standard ones,
    such as the caller's ``position`` for a duplicate join or
    ``turn_expires_at`` while another customer holds the booking turn.
    """

    model_config = ConfigDict(extra="allow")

    type: str = Field("about:blank", description="Problem type URI")
    title: str = Field(..., description="Short human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: Optional[str] = Field(None, description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="Request path that failed")
    code: Optional[str] = Field(None, description="Machine-readable error code, e.g. priority_blocked")
    retryable: bool = Field(False, description="Whether repeating the request later may succeed")
    violations: Optional[List[Violation]] = Field(None, description="Invalid request fields")
    turn_expires_at: Optional[datetime] = Field(None, description="When the blocking booking turn lapses")


# OpenAPI documentation for the error responses every RPC endpoint can return
PROBLEM_RESPONSES: Dict[int | str, Dict[str, Any]] = {
    404: {"model": Problem, "description": "Trip, booking or waiting list entry not found"},
    409: {"model": Problem, "description": "Business rule conflict"},
    422: {"model": Problem, "description": "Request validation failed"},
}
