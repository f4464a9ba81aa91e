"""Health check router."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import utcnow
from ..core.dependencies import DatabaseSession
from ..schemas.health import HealthResponse, HealthStatus
from ..workers.manager import worker_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """
    Health check endpoint.

    Returns service status, database connectivity and background worker state.
    The service reports degraded rather than failing when the database is down.
    """
    database = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        database = "unavailable"
        logger.warning("Health check database probe failed", extra={"error": str(e)})

    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if database == "ok" else HealthStatus.DEGRADED,
        timestamp=utcnow(),
        version="1.0.0",
        database=database,
        workers=worker_manager.get_worker_status(),
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
