from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class HashtagsUsed(BaseModel):
    """Event: a post was created or edited and references these hashtags.

    Published by the post pipeline once per created/edited post. ``tags`` holds
    explicitly attached tags; ``caption`` is scanned for inline ``#tags``.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: str = "post.hashtags_used"
    post_id: UUID | None = None
    tags: list[str] = Field(default_factory=list, max_length=10)
    caption: str | None = Field(default=None, max_length=5000)
    weight: int = Field(default=1, ge=1, le=100)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
