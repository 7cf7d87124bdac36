"""Add fractional decay carry per usage window.

Revision ID: 0002_add_decay_carry
Revises: 0001_create_hashtags
Create Date: 2026-10-19 15:00:00.000000

Changes:
  - hashtags.hour_decay_carry   FLOAT NOT NULL DEFAULT 0
  - hashtags.day_decay_carry    FLOAT NOT NULL DEFAULT 0
  - hashtags.week_decay_carry   FLOAT NOT NULL DEFAULT 0
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_decay_carry"
down_revision = "0001_create_hashtags"
branch_labels = None
depends_on = None

_COLUMNS = ("hour_decay_carry", "day_decay_carry", "week_decay_carry")


def upgrade() -> None:
    for name in _COLUMNS:
        op.add_column(
            "hashtags",
            sa.Column(name, sa.Float(), nullable=False, server_default="0"),
        )


def downgrade() -> None:
    for name in reversed(_COLUMNS):
        op.drop_column("hashtags", name)
