"""
DevDoc Backend — Health Check Route
=====================================

What:  GET /api/health for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports the result alongside
       the server time and application version.
Who:   Docker health checks, uptime monitors, the SPA's connection check.

Status levels:
    OK        database reachable
    DEGRADED  database unreachable (still HTTP 200 so the probe body is readable)
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Returns OK with the current server time when the service can reach its database.",
)
async def health_check() -> HealthResponse:
    db_status = "connected"
    overall = "OK"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "DEGRADED"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        database=db_status,
    )
