"""Create photos table

Revision ID: 001
Revises: None
Create Date: 2025-01-15 00:00:00.000000+00:00

What:  Creates the `photos` table that backs the enhancement queue.
How:   One row per uploaded photo; status drives the queue
       (PENDING → PROCESSING → COMPLETED | FAILED).

Rollback: downgrade() drops the table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the photos table and the indexes used by the poller."""
    op.create_table(
        "photos",
        sa.Column("id", sa.String(64), nullable=False, comment="Photo identifier"),
        sa.Column(
            "user_id",
            sa.String(64),
            nullable=False,
            comment="Owning user identifier",
        ),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column(
            "original_url",
            sa.Text(),
            nullable=False,
            server_default=sa.text("''"),
            comment="URL of the uploaded image",
        ),
        sa.Column(
            "enhanced_url",
            sa.Text(),
            nullable=True,
            comment="URL of the enhanced image, set by the enhancement endpoint",
        ),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'PENDING'"),
            comment="PENDING, PROCESSING, COMPLETED or FAILED",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="When the photo was queued (UTC)",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
            comment="Last status change (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("ix_photos_user_id", "photos", ["user_id"])
    # Serves: WHERE status = 'PENDING' ORDER BY created_at ASC LIMIT 5
    op.create_index(
        "idx_photos_status_created_at",
        "photos",
        ["status", "created_at"],
    )


def downgrade() -> None:
    """Drop the photos table. All queued photo data is lost."""
    op.drop_index("idx_photos_status_created_at", table_name="photos")
    op.drop_index("ix_photos_user_id", table_name="photos")
    op.drop_table("photos")
