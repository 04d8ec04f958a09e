"""
Photo Enhancement Backend — Pydantic Response Schemas
======================================================

What:  Pydantic models describing the JSON returned by the cron, stuck-report
       and health endpoints.
How:   FastAPI serializes route return values through these models and builds
       the OpenAPI docs from them.
Who:   Route handlers in app.routes; the scheduler and operators read the output.

Queue run payloads:
    work done   {"message": "...", "processed": 3, "errors": 2, "total": 5}
    no work     {"message": "No photos in queue to process", "processed": 0}
    fatal       {"error": "Cron job failed", "details": "..."}      (HTTP 500)

    The no-work shape has no `errors`/`total` keys, so QueueRunResponse is
    serialized with exclude_none.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Queue Run
# ══════════════════════════════════════════════════════════════════════════

class QueueRunResponse(BaseModel):
    """Summary of one cron invocation."""

    message: str = Field(description="Human-readable run outcome")
    processed: int = Field(description="Photos whose dispatch succeeded")
    errors: Optional[int] = Field(
        default=None,
        description="Photos whose dispatch failed and were marked FAILED",
    )
    total: Optional[int] = Field(
        default=None,
        description="Photos dispatched in this run (processed + errors)",
    )


class CronErrorResponse(BaseModel):
    """Body returned when a queue run fails as a whole."""

    error: str = Field(description="Short failure description")
    details: str = Field(description="Underlying error message")


# ══════════════════════════════════════════════════════════════════════════
# Stuck Report
# ══════════════════════════════════════════════════════════════════════════

class StuckPhotoItem(BaseModel):
    """
    What:  One photo that has been waiting longer than the threshold.
    How:   `waiting_since` is created_at for PENDING photos and updated_at
           (the claim time) for PROCESSING photos.
    """

    id: str = Field(description="Photo identifier")
    user_id: str = Field(description="Owning user identifier")
    title: Optional[str] = Field(default=None, description="Photo title")
    status: str = Field(description="PENDING or PROCESSING")
    created_at: datetime = Field(description="When the photo was queued (UTC)")
    waiting_since: datetime = Field(description="Start of the current wait (UTC)")
    stuck_seconds: float = Field(description="Seconds spent waiting so far")


class StuckPhotosResponse(BaseModel):
    """Read-only report of photos waiting longer than the threshold."""

    stuck_count: int = Field(description="Total stuck photos, not just the listed ones")
    cutoff_time: datetime = Field(description="Photos waiting since before this are stuck")
    photos: List[StuckPhotoItem] = Field(description="Oldest stuck photos first")


class RecoveryErrorItem(BaseModel):
    """One stuck photo whose re-dispatch failed."""

    photo_id: str
    user_id: str
    error: str = Field(description="Response body, or the failure description")
    http_status: Optional[int] = Field(
        default=None, description="Status code; absent for transport failures"
    )


class StuckRecoveryResponse(BaseModel):
    """
    Outcome of a stuck recovery call.

    Example:
        {
            "message": "Processed 3 stuck photos: 2 succeeded, 1 failed",
            "total_found": 3, "processed": 3, "succeeded": 2, "failed": 1,
            "cutoff_time": "2025-01-15T11:55:00Z",
            "errors": [{"photo_id": "p2", "user_id": "u1",
                        "error": "Photo not found", "http_status": 404}]
        }
    """

    message: str
    total_found: int = Field(description="Stuck PENDING photos selected for recovery")
    processed: int = Field(default=0, description="Photos re-dispatched so far")
    succeeded: int = Field(default=0)
    failed: int = Field(default=0)
    cutoff_time: datetime = Field(description="Photos queued before this were selected")
    errors: List[RecoveryErrorItem] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Errors & Health
# ══════════════════════════════════════════════════════════════════════════

class ErrorResponse(BaseModel):
    """
    What:  Standard error body used by the global exception handlers.

    Example:
        {
            "error": "unauthorized",
            "message": "Unauthorized",
            "request_id": "1f0c2a9e"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""

    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    enhancement_service: str = Field(
        description="Dispatch target configuration: configured, not_configured"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
