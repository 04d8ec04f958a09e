"""
Photo Enhancement Backend — Cron Route Handlers
================================================

What:  HTTP entry points for the scheduler and for operators.
How:   Authenticate the bearer secret, delegate to QueueService, return JSON.
Who:   The external scheduler (about once per minute) and on-call operators.

Route Inventory:
    GET  /api/cron/process-photos   Run one queue batch
    POST /api/cron/process-photos   Same as GET (manual triggering)
    GET  /api/cron/stuck-photos     Read-only report of long-waiting photos
    POST /api/cron/stuck-photos     Re-dispatch long-waiting PENDING photos

Dependency order:
    require_cron_secret is a route-level dependency, which FastAPI resolves
    before the parameter dependencies. A 401 is therefore returned before a
    database session or HTTP client is created.
"""

import logging
from typing import AsyncGenerator, Optional

import httpx
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.exceptions import QueueProcessingError
from app.schemas.photo import (
    CronErrorResponse,
    ErrorResponse,
    QueueRunResponse,
    StuckPhotosResponse,
    StuckRecoveryResponse,
)
from app.security.cron_auth import require_cron_secret
from app.services.enhancement_client import EnhancementClient
from app.services.queue_service import queue_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/cron",
    tags=["Cron"],
    dependencies=[Depends(require_cron_secret)],
)


async def get_enhancement_client() -> AsyncGenerator[EnhancementClient, None]:
    """
    Opens one EnhancementClient for the duration of a request.

    A base URL httpx cannot parse fails the request with the cron failure
    body ({error, details}) instead of the generic 500.
    """
    client = EnhancementClient.from_settings()
    try:
        await client.__aenter__()
    except httpx.InvalidURL as e:
        logger.error("Cannot open enhancement client: %s", str(e))
        raise QueueProcessingError(
            details=f"ENHANCE_BASE_URL is not a valid URL: {e}",
            context={"error_type": type(e).__name__},
        ) from e
    try:
        yield client
    finally:
        await client.__aexit__(None, None, None)


@router.api_route(
    "/process-photos",
    methods=["GET", "POST"],
    response_model=QueueRunResponse,
    response_model_exclude_none=True,
    responses={
        200: {"description": "Batch summary", "model": QueueRunResponse},
        401: {"description": "Missing or invalid cron secret", "model": ErrorResponse},
        500: {"description": "Batch failed", "model": CronErrorResponse},
    },
    summary="Process queued photos",
    description=(
        "Dispatches up to 5 of the oldest PENDING photos to the enhancement "
        "endpoint, one at a time. Photos whose dispatch fails are marked FAILED."
    ),
)
async def process_photos(
    db: AsyncSession = Depends(get_db_session),
    client: EnhancementClient = Depends(get_enhancement_client),
) -> QueueRunResponse:
    """
    Run one queue batch.

    Returns:
        {"message", "processed", "errors", "total"} after a batch, or
        {"message": "No photos in queue to process", "processed": 0}.

    Error responses (global exception handlers):
        HTTP 401: AuthorizationError from require_cron_secret
        HTTP 500: QueueProcessingError → {"error", "details"}
    """
    result = await queue_service.process_queue(db, client)
    return result.to_response()


@router.get(
    "/stuck-photos",
    response_model=StuckPhotosResponse,
    responses={
        401: {"description": "Missing or invalid cron secret", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Report photos waiting too long",
    description=(
        "Lists PENDING photos older than the threshold and PROCESSING photos "
        "claimed longer ago than the threshold. Nothing is modified."
    ),
)
async def stuck_photos(
    older_than_minutes: Optional[int] = Query(
        default=None, ge=1, le=1440,
        description="Threshold in minutes (defaults to STUCK_AFTER_MINUTES)",
    ),
    limit: int = Query(default=10, ge=1, le=100, description="Maximum photos listed"),
    db: AsyncSession = Depends(get_db_session),
) -> StuckPhotosResponse:
    return await queue_service.find_stuck_photos(
        db,
        older_than_minutes=older_than_minutes,
        limit=limit,
    )


@router.post(
    "/stuck-photos",
    response_model=StuckRecoveryResponse,
    responses={
        401: {"description": "Missing or invalid cron secret", "model": ErrorResponse},
        500: {"description": "Recovery could not run", "model": CronErrorResponse},
    },
    summary="Re-dispatch photos waiting too long",
    description=(
        "Sends up to 50 PENDING photos older than the threshold to the "
        "enhancement endpoint again, oldest first. Failures are listed in "
        "the response; no status is changed here."
    ),
)
async def recover_stuck_photos(
    older_than_minutes: Optional[int] = Query(
        default=None, ge=1, le=1440,
        description="Threshold in minutes (defaults to STUCK_AFTER_MINUTES)",
    ),
    limit: int = Query(default=50, ge=1, le=50, description="Maximum photos re-dispatched"),
    db: AsyncSession = Depends(get_db_session),
    client: EnhancementClient = Depends(get_enhancement_client),
) -> StuckRecoveryResponse:
    return await queue_service.recover_stuck_photos(
        db,
        client,
        older_than_minutes=older_than_minutes,
        limit=limit,
    )
