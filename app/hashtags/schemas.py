"""Hashtag endpoint schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import HashtagCategory


class TrendingHashtagItem(BaseModel):
    """Single ranked hashtag."""

    name: str = Field(description="Lowercase hashtag (without '#' prefix).")
    total_usage: int = Field(description="All-time number of uses.")
    last_24_hours: int = Field(description="Uses in the trailing 24 h window.")
    category: HashtagCategory
    trending_score: float = Field(description="Recency-weighted ranking score.")
    velocity: float = Field(description="Change of the 24 h window, uses per hour.")
    is_featured: bool = Field(default=False, description="Pinned by moderators.")


class TrendingHashtagsResponse(BaseModel):
    """Response for the trending hashtags endpoint."""

    items: list[TrendingHashtagItem]
    limit: int = Field(description="Effective page size after clamping.")
    offset: int = Field(description="Requested offset.")
    category: HashtagCategory | None = Field(default=None, description="Category filter, if any.")


class HashtagSuggestResponse(BaseModel):
    """Response for hashtag autocomplete."""

    suggestions: list[TrendingHashtagItem]


class HashtagDetail(BaseModel):
    """Full hashtag record, counters included."""

    model_config = ConfigDict(from_attributes=True)

    hashtag_id: UUID
    name: str
    category: HashtagCategory
    total_usage: int
    last_hour: int
    last_24_hours: int
    last_7_days: int
    usage_updated_at: datetime
    trending_score: float
    velocity: float
    rolled_over_at: datetime | None = None
    is_banned: bool
    is_featured: bool
    first_used_at: datetime
    peak_usage_count: int
    peak_usage_at: datetime | None = None


class HashtagFlagsUpdate(BaseModel):
    """Moderator update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    is_banned: bool | None = None
    is_featured: bool | None = None
    category: HashtagCategory | None = None

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "HashtagFlagsUpdate":
        if self.is_banned is None and self.is_featured is None and self.category is None:
            raise ValueError("Provide at least one of is_banned, is_featured, category.")
        return self


class HashtagUsageResponse(BaseModel):
    """Outcome of an ingestion call."""

    recorded: list[str] = Field(default_factory=list, description="Normalized tags counted.")
    skipped: list[str] = Field(default_factory=list, description="Invalid tags, ignored.")
    failed: list[str] = Field(
        default_factory=list,
        description="Tags not counted because storage failed twice. Best-effort; the post is unaffected.",
    )
    queued: bool = Field(default=False, description="True when handed to the worker instead.")
    job_id: str | None = None
