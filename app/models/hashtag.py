import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from shared.database.postgres import Base

from .enums import HashtagCategory, hashtag_category_enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Hashtag(Base):
    """Usage counters and derived ranking for one normalized tag name.

    Window counters (last_hour / last_24_hours / last_7_days) are only ever
    changed by atomic SQL arithmetic: ingestion adds, the rollover pass
    subtracts its planned decay. trending_score, velocity and
    scored_last_24_hours are written by the rollover pass only.
    """

    __tablename__ = "hashtags"

    hashtag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Normalized: trimmed, no leading '#', lowercase
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    category: Mapped[HashtagCategory] = mapped_column(
        hashtag_category_enum, nullable=False, default=HashtagCategory.GENERAL
    )

    total_usage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_24_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_7_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    usage_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    trending_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    velocity: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # last_24_hours as of the previous rollover pass; velocity baseline
    scored_last_24_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Fraction of a use each window still owes to decay; rollover pass only
    hour_decay_carry: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    day_decay_carry: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    week_decay_carry: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # NULL until the first rollover pass touches the row
    rolled_over_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    is_banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    first_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    peak_usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    peak_usage_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        UniqueConstraint("name", name="uq_hashtags_name"),
        CheckConstraint(
            "last_hour >= 0 AND last_24_hours >= 0 AND last_7_days >= 0",
            name="ck_hashtags_windows_non_negative",
        ),
        Index("ix_hashtags_trending", "trending_score", "total_usage"),
        Index("ix_hashtags_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Hashtag #{self.name} score={self.trending_score}>"
