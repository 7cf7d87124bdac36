"""Hashtag discovery endpoints — trending, autocomplete, single tag."""

from fastapi import APIRouter, Depends, Query, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.database import get_db
from app.dependencies import get_redis, get_settings
from app.hashtags import controller
from app.hashtags.schemas import (
    HashtagDetail,
    HashtagSuggestResponse,
    TrendingHashtagsResponse,
)
from app.hashtags.service import DEFAULT_TRENDING_LIMIT
from app.models.enums import HashtagCategory
from app.rate_limit import SEARCH_READ_LIMIT, TRENDING_READ_LIMIT, limiter

router = APIRouter(prefix="/hashtags", tags=["Hashtags"])


@router.get(
    "/trending",
    response_model=TrendingHashtagsResponse,
    summary="Trending hashtags",
    description=(
        "Non-banned hashtags ranked by trending score, then all-time usage, then name. "
        "Featured tags are pinned first unless pin_featured=false. "
        "limit is clamped to 1..50. Cached for a short TTL; scores refresh on each rollover tick."
    ),
)
@limiter.limit(TRENDING_READ_LIMIT)
async def trending_hashtags(
    request: Request,
    limit: int = Query(DEFAULT_TRENDING_LIMIT),
    offset: int = Query(0, ge=0),
    category: HashtagCategory | None = Query(None),
    pin_featured: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    redis: Redis | None = Depends(get_redis),
    settings: Settings = Depends(get_settings),
) -> TrendingHashtagsResponse:
    return await controller.get_trending(
        db, redis, settings, limit, offset, category, pin_featured
    )


@router.get(
    "/search",
    response_model=HashtagSuggestResponse,
    summary="Hashtag autocomplete",
    description="Prefix search for the editor hashtag suggestion dropdown. A leading '#' is ignored.",
)
@limiter.limit(SEARCH_READ_LIMIT)
async def suggest_hashtags(
    request: Request,
    q: str = Query(..., min_length=1, max_length=51),
    limit: int = Query(10, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
) -> HashtagSuggestResponse:
    return await controller.suggest(q, db, limit)


@router.get(
    "/{name}",
    response_model=HashtagDetail,
    summary="Hashtag details",
    description="Counters, score and flags of one hashtag. Banned or unknown tags return 404.",
)
async def hashtag_detail(
    name: str,
    db: AsyncSession = Depends(get_db),
) -> HashtagDetail:
    return await controller.get_hashtag(name, db)
