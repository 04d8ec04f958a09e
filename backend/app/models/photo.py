"""
Photo Enhancement Backend — Photo SQLAlchemy Model
===================================================

What:  ORM model for the `photos` table, the unit of queued enhancement work.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   QueueService (poll, claim, fail, stuck report); the upstream upload flow
       and the enhancement endpoint write the same table.

Status lifecycle:
    PENDING ──(dispatch error)──────────────────────────▶ FAILED
    PENDING ──(enhancement endpoint finishes)───────────▶ COMPLETED
    PENDING ──(claim, QUEUE_CLAIM_ITEMS=true)──▶ PROCESSING ──▶ COMPLETED | FAILED

Index on (status, created_at):
    Serves the poll query `WHERE status = 'PENDING' ORDER BY created_at LIMIT 5`
    and the stuck report.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PhotoStatus(str, enum.Enum):
    """Lifecycle states of a photo."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Photo(Base):
    """
    A queued photo-enhancement work item.

    Query Patterns:
        - Poll: status = PENDING ORDER BY created_at ASC LIMIT n
        - Claim: UPDATE ... WHERE id = :id AND status = PENDING
        - Fail: UPDATE ... WHERE id = :id
        - Stuck report: status IN (PENDING, PROCESSING) and older than a cutoff
    """

    __tablename__ = "photos"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Photo identifier",
    )

    # Plain string: users live in the auth subsystem's table.
    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Owning user identifier",
    )

    title: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        default=None,
    )

    original_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="URL of the uploaded image",
    )

    enhanced_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        default=None,
        comment="URL of the enhanced image, set by the enhancement endpoint",
    )

    # Stored as the enum's string value
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PhotoStatus.PENDING.value,
        server_default=text("'PENDING'"),
        comment="PENDING, PROCESSING, COMPLETED or FAILED",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="When the photo was queued (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Last status change (UTC)",
    )

    __table_args__ = (
        Index("idx_photos_status_created_at", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Photo(id={self.id}, user_id={self.user_id}, status='{self.status}', "
            f"created_at='{self.created_at}')>"
        )
