"""Hashtag moderation — ban, feature, recategorize. Moderator or admin only."""

from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_redis
from app.hashtags import controller
from app.hashtags.schemas import HashtagDetail, HashtagFlagsUpdate
from shared.auth.dependencies import require_moderator
from shared.models.user import CurrentUser

router = APIRouter(prefix="/hashtags/admin", tags=["Hashtags Admin"])


@router.patch(
    "/{name}",
    response_model=HashtagDetail,
    summary="Update hashtag moderation flags",
    description=(
        "Banned tags keep counting but disappear from trending, autocomplete and detail reads. "
        "Cached trending lists are dropped immediately."
    ),
)
async def update_hashtag_flags(
    name: str,
    body: HashtagFlagsUpdate,
    db: AsyncSession = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
    _moderator: CurrentUser = Depends(require_moderator),
) -> HashtagDetail:
    return await controller.update_flags(name, body, db, redis)
