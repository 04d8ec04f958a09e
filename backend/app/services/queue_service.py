"""
Photo Enhancement Backend — Queue Service (Poll, Dispatch, Fail)
=================================================================

What:  Processes one batch of queued photos per cron invocation.
How:   Poll the oldest PENDING photos, optionally claim each one, call the
       enhancement endpoint for each in turn, and mark failures FAILED.
Who:   Called by the cron route handlers; uses EnhancementClient for dispatch.
When:  Once per trigger (about every minute), never concurrently within a run.

Run Flow:
    ┌──────────┐    ┌───────────┐    ┌────────────────┐    ┌──────────────┐
    │  Poll    │───▶│  Claim    │───▶│  Dispatch      │───▶│  Mark FAILED │
    │ (≤5, ASC)│    │ (optional)│    │ (one POST each)│    │ (on error)   │
    └──────────┘    └───────────┘    └────────────────┘    └──────────────┘

    Every item finishes (including its FAILED write and commit) before the
    next item is dispatched. There are no retries and no backoff.

Error Recovery:
    DispatchError for one item   → errors += 1, photo FAILED, batch continues
    Poll read fails              → QueueProcessingError, nothing dispatched
    FAILED write fails           → QueueProcessingError, batch aborted
    Anything else escaping       → QueueProcessingError, batch aborted

Overlapping runs:
    With QUEUE_CLAIM_ITEMS=false (default) two overlapping runs can both
    dispatch the same PENDING photo. With the claim enabled, each photo is
    moved PENDING → PROCESSING by a conditional UPDATE that only one run can
    win; losers skip the photo.

Stuck recovery:
    An operator-triggered pass that re-dispatches up to 50 PENDING photos
    older than STUCK_AFTER_MINUTES. It reports per-photo failures but writes
    no status.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import (
    DatabaseError,
    DispatchError,
    PhotoEnhanceError,
    QueueProcessingError,
)
from app.models.photo import Photo, PhotoStatus
from app.schemas.photo import (
    QueueRunResponse,
    RecoveryErrorItem,
    StuckPhotoItem,
    StuckPhotosResponse,
    StuckRecoveryResponse,
)
from app.services.enhancement_client import EnhancementClient

logger = logging.getLogger(__name__)

# Upper bound on items per invocation, regardless of configuration
MAX_BATCH_SIZE = 5

NO_WORK_MESSAGE = "No photos in queue to process"
COMPLETED_MESSAGE = "Photo processing completed"

# Upper bound on photos re-dispatched by one stuck recovery call
RECOVERY_LIMIT = 50
RECOVERY_FAILED_MESSAGE = "Failed to process stuck photos"


@dataclass
class QueueRunResult:
    """
    Counters for one queue run.

    Invariant: processed + errors == total. `skipped` counts photos another
    run claimed first; they are not part of `total`.
    """

    processed: int = 0
    errors: int = 0
    total: int = 0
    skipped: int = 0

    def to_response(self) -> QueueRunResponse:
        if self.total == 0:
            return QueueRunResponse(message=NO_WORK_MESSAGE, processed=0)
        return QueueRunResponse(
            message=COMPLETED_MESSAGE,
            processed=self.processed,
            errors=self.errors,
            total=self.total,
        )


class QueueService:
    """
    Business logic for the photo processing queue.

    Responsibilities:
        - fetch_pending_batch(): oldest PENDING photos, bounded
        - claim(): atomic PENDING → PROCESSING
        - mark_failed(): terminal FAILED write
        - process_queue(): the full poll → dispatch → fail run
        - find_stuck_photos(): read-only stuck report
        - recover_stuck_photos(): re-dispatch stuck PENDING photos on demand

    Stateless apart from its configuration; one shared instance serves all
    requests.
    """

    def __init__(
        self,
        batch_size: Optional[int] = None,
        claim_items: Optional[bool] = None,
    ) -> None:
        size = settings.queue_batch_size if batch_size is None else batch_size
        self.batch_size = max(1, min(size, MAX_BATCH_SIZE))
        self.claim_items = settings.queue_claim_items if claim_items is None else claim_items

    # ── Poller ────────────────────────────────────────────────────────────

    async def fetch_pending_batch(
        self, db: AsyncSession, limit: Optional[int] = None
    ) -> List[Photo]:
        """
        Read up to `limit` PENDING photos, oldest first.

        Query plan:
            SELECT * FROM photos WHERE status = 'PENDING'
            ORDER BY created_at ASC LIMIT :limit
            → idx_photos_status_created_at

        Returns an empty list when the queue is empty. Read failures propagate.
        """
        limit = self.batch_size if limit is None else max(1, min(limit, MAX_BATCH_SIZE))
        result = await db.execute(
            select(Photo)
            .where(Photo.status == PhotoStatus.PENDING.value)
            .order_by(Photo.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ── State Updates ─────────────────────────────────────────────────────

    async def claim(self, db: AsyncSession, photo_id: str) -> bool:
        """
        Atomically move one photo from PENDING to PROCESSING.

        How:   A single conditional UPDATE; the row only changes if it is still
               PENDING, so of several concurrent runs exactly one sees
               rowcount == 1. Committed immediately so other runs observe it.

        Returns:
            True if this run now owns the photo, False if it was taken.
        """
        result = await db.execute(
            update(Photo)
            .where(
                Photo.id == photo_id,
                Photo.status == PhotoStatus.PENDING.value,
            )
            .values(
                status=PhotoStatus.PROCESSING.value,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await db.commit()
        return result.rowcount == 1

    async def mark_failed(self, db: AsyncSession, photo_id: str) -> None:
        """Write FAILED for one photo and commit before the next dispatch."""
        await db.execute(
            update(Photo)
            .where(Photo.id == photo_id)
            .values(
                status=PhotoStatus.FAILED.value,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await db.commit()

    # ── Dispatcher ────────────────────────────────────────────────────────

    async def _dispatch(
        self, db: AsyncSession, client: EnhancementClient, photo: Photo
    ) -> bool:
        """
        Dispatch one photo. Returns True on success, False on a recovered failure.

        Only DispatchError is recovered here; other exceptions (including a
        failing FAILED write) propagate and abort the batch.
        """
        photo_id, user_id = photo.id, photo.user_id
        logger.info("Processing photo %s for user %s", photo_id, user_id)
        try:
            await client.request_enhancement(photo_id, user_id)
        except DispatchError as e:
            logger.error("Failed to process photo %s: %s", photo_id, e.message)
            await self.mark_failed(db, photo_id)
            return False

        logger.info("Photo %s dispatched successfully", photo_id)
        return True

    async def _claim_batch(self, db: AsyncSession, photos: Sequence[Photo]) -> List[Photo]:
        claimed = []
        for photo in photos:
            if await self.claim(db, photo.id):
                claimed.append(photo)
            else:
                logger.info("Photo %s was claimed by another run, skipping", photo.id)
        return claimed

    async def process_queue(
        self, db: AsyncSession, client: EnhancementClient
    ) -> QueueRunResult:
        """
        Run one batch: poll, (claim), dispatch each photo in order, summarise.

        Args:
            db:     Session used for the poll and every state write
            client: An open EnhancementClient

        Returns:
            QueueRunResult with processed + errors == total.

        Raises:
            QueueProcessingError: The batch could not run or was aborted.
        """
        if not client.base_url:
            raise QueueProcessingError(
                details="Enhancement endpoint is not configured (ENHANCE_BASE_URL)"
            )

        logger.info("Checking for queued photos...")
        try:
            photos = await self.fetch_pending_batch(db)
            logger.info("Found %d photos in queue", len(photos))

            result = QueueRunResult()
            if self.claim_items and photos:
                claimed = await self._claim_batch(db, photos)
                result.skipped = len(photos) - len(claimed)
                photos = claimed

            result.total = len(photos)
            for photo in photos:
                if await self._dispatch(db, client, photo):
                    result.processed += 1
                else:
                    result.errors += 1

        except PhotoEnhanceError:
            raise
        except Exception as e:
            logger.error("Queue run failed: %s", str(e), exc_info=True)
            raise QueueProcessingError(
                details=str(e),
                context={"error_type": type(e).__name__},
            ) from e

        if result.total:
            logger.info(
                "Queue run completed: %d processed, %d errors, %d skipped",
                result.processed,
                result.errors,
                result.skipped,
            )
        return result

    # ── Stuck Report ──────────────────────────────────────────────────────

    async def find_stuck_photos(
        self,
        db: AsyncSession,
        older_than_minutes: Optional[int] = None,
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> StuckPhotosResponse:
        """
        List photos that have waited longer than the threshold.

        A PENDING photo is stuck when created_at is before the cutoff; a
        PROCESSING photo when updated_at (its claim time) is. Nothing is
        modified.

        Raises:
            DatabaseError: Either query failed.
        """
        minutes = settings.stuck_after_minutes if older_than_minutes is None else older_than_minutes
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=minutes)

        stuck_filter = or_(
            and_(
                Photo.status == PhotoStatus.PENDING.value,
                Photo.created_at < cutoff,
            ),
            and_(
                Photo.status == PhotoStatus.PROCESSING.value,
                Photo.updated_at < cutoff,
            ),
        )

        try:
            count_result = await db.execute(
                select(func.count(Photo.id)).where(stuck_filter)
            )
            stuck_count = count_result.scalar() or 0

            list_result = await db.execute(
                select(Photo)
                .where(stuck_filter)
                .order_by(Photo.created_at.asc())
                .limit(limit)
            )
            photos = list(list_result.scalars().all())
        except Exception as e:
            logger.error("Database error building stuck report: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not check for stuck photos. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e

        items = []
        for photo in photos:
            if photo.status == PhotoStatus.PROCESSING.value:
                waiting_since = photo.updated_at
            else:
                waiting_since = photo.created_at
            items.append(
                StuckPhotoItem(
                    id=photo.id,
                    user_id=photo.user_id,
                    title=photo.title,
                    status=photo.status,
                    created_at=photo.created_at,
                    waiting_since=waiting_since,
                    stuck_seconds=round(
                        (now - _as_utc(waiting_since)).total_seconds(), 1
                    ),
                )
            )

        if stuck_count:
            logger.warning(
                "%d photos waiting longer than %d minutes", stuck_count, minutes
            )

        return StuckPhotosResponse(
            stuck_count=stuck_count,
            cutoff_time=cutoff,
            photos=items,
        )

    # ── Stuck Recovery ────────────────────────────────────────────────────

    async def recover_stuck_photos(
        self,
        db: AsyncSession,
        client: EnhancementClient,
        older_than_minutes: Optional[int] = None,
        limit: int = RECOVERY_LIMIT,
        now: Optional[datetime] = None,
    ) -> StuckRecoveryResponse:
        """
        Re-dispatch PENDING photos that have waited longer than the threshold.

        How:   Same request as the cron dispatcher, oldest first, one at a
               time. Failures are collected in the response; no status is
               written, so a photo that fails here stays PENDING for the
               next cron run.

        Raises:
            QueueProcessingError: Endpoint not configured or the read failed.
        """
        if not client.base_url:
            raise QueueProcessingError(
                details="Enhancement endpoint is not configured (ENHANCE_BASE_URL)",
                message=RECOVERY_FAILED_MESSAGE,
            )

        minutes = settings.stuck_after_minutes if older_than_minutes is None else older_than_minutes
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=minutes)
        limit = max(1, min(limit, RECOVERY_LIMIT))

        try:
            result = await db.execute(
                select(Photo)
                .where(
                    Photo.status == PhotoStatus.PENDING.value,
                    Photo.created_at < cutoff,
                )
                .order_by(Photo.created_at.asc())
                .limit(limit)
            )
            photos = list(result.scalars().all())
        except Exception as e:
            logger.error("Could not read stuck photos: %s", str(e), exc_info=True)
            raise QueueProcessingError(
                details=str(e),
                message=RECOVERY_FAILED_MESSAGE,
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Found %d stuck photos to recover (cutoff %s)", len(photos), cutoff.isoformat())

        summary = StuckRecoveryResponse(
            message="",
            total_found=len(photos),
            cutoff_time=cutoff,
        )
        for photo in photos:
            summary.processed += 1
            try:
                await client.request_enhancement(photo.id, photo.user_id)
            except DispatchError as e:
                summary.failed += 1
                summary.errors.append(
                    RecoveryErrorItem(
                        photo_id=photo.id,
                        user_id=photo.user_id,
                        error=e.body or e.message,
                        http_status=e.status_code,
                    )
                )
                logger.warning("Failed to recover stuck photo %s: %s", photo.id, e.message)
                continue
            summary.succeeded += 1
            logger.info("Stuck photo %s re-dispatched", photo.id)

        summary.message = (
            f"Processed {summary.processed} stuck photos: "
            f"{summary.succeeded} succeeded, {summary.failed} failed"
        )
        logger.info(summary.message)
        return summary


def _as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Singleton Instance ────────────────────────────────────────────────────
queue_service = QueueService()
