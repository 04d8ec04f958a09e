"""
Photo Enhancement Backend — Health Check Route
===============================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs `SELECT 1` against the database and checks that the enhancement
       endpoint is configured. The enhancement endpoint itself is not called.

Status levels:
    - healthy:   database reachable and dispatch configured (HTTP 200)
    - degraded:  database reachable but ENHANCE_BASE_URL missing (HTTP 200)
    - unhealthy: database unreachable (HTTP 200, status field says so)
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from app import __version__
from app.config import settings
from app.schemas.photo import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    """Probe the database and report dispatch configuration."""
    db_status = "connected"
    overall = "healthy"

    try:
        from app.database import engine
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if settings.enhance_base_url:
        enhancement_status = "configured"
    else:
        enhancement_status = "not_configured"
        if overall == "healthy":
            overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        enhancement_service=enhancement_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
