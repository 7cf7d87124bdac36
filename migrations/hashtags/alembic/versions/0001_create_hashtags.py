"""Create hashtags table.

Revision ID: 0001_create_hashtags
Revises:
Create Date: 2026-10-19 09:00:00.000000

Changes:
  1. hashtag_category enum type
  2. hashtags table: usage windows, trending score/velocity, moderation flags
  3. Unique name, non-negative windows check, ranking and category indexes
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_hashtags"
down_revision = None
branch_labels = None
depends_on = None

_CATEGORIES = (
    "general",
    "technology",
    "music",
    "gaming",
    "art",
    "travel",
    "food",
    "health",
    "sports",
    "news",
    "entertainment",
    "education",
)


def upgrade() -> None:
    op.create_table(
        "hashtags",
        sa.Column("hashtag_id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column(
            "category",
            sa.Enum(*_CATEGORIES, name="hashtag_category"),
            nullable=False,
            server_default="general",
        ),
        sa.Column("total_usage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_hour", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_24_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_7_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "usage_updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("trending_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("velocity", sa.Float(), nullable=False, server_default="0"),
        sa.Column("scored_last_24_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rolled_over_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "first_used_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("peak_usage_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("peak_usage_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", name="uq_hashtags_name"),
        sa.CheckConstraint(
            "last_hour >= 0 AND last_24_hours >= 0 AND last_7_days >= 0",
            name="ck_hashtags_windows_non_negative",
        ),
    )
    op.create_index(
        "ix_hashtags_trending",
        "hashtags",
        ["trending_score", "total_usage"],
        unique=False,
    )
    op.create_index("ix_hashtags_category", "hashtags", ["category"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_hashtags_category", table_name="hashtags")
    op.drop_index("ix_hashtags_trending", table_name="hashtags")
    op.drop_table("hashtags")
    sa.Enum(name="hashtag_category").drop(op.get_bind(), checkfirst=True)
