"""Hashtag controller — orchestration layer between routers and services.

Maps HTTP requests to service calls, translates domain exceptions to
HTTPException, and composes Pydantic response models.
"""

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app import task_queue
from app.config import Settings
from app.exceptions import NotFoundError, ServiceUnavailableError
from app.hashtags import service
from app.hashtags.exceptions import HashtagNotFoundError, IngestQueueUnavailableError
from app.hashtags.schemas import (
    HashtagDetail,
    HashtagFlagsUpdate,
    HashtagSuggestResponse,
    HashtagUsageResponse,
    TrendingHashtagItem,
    TrendingHashtagsResponse,
)
from app.models.enums import HashtagCategory
from app.trending.ingest import on_hashtag_used, tags_for_event
from shared.events.schemas import HashtagsUsed


async def get_trending(
    db: AsyncSession,
    redis: Redis | None,
    settings: Settings,
    limit: int,
    offset: int,
    category: HashtagCategory | None,
    pin_featured: bool | None,
) -> TrendingHashtagsResponse:
    pin = settings.trending_pin_featured if pin_featured is None else pin_featured
    items = await service.get_trending_hashtags(
        db,
        redis,
        limit=limit,
        category=category,
        offset=offset,
        pin_featured=pin,
        cache_ttl_s=settings.trending_cache_ttl_seconds,
    )
    return TrendingHashtagsResponse(
        items=[TrendingHashtagItem(**i) for i in items],
        limit=service.clamp_limit(limit),
        offset=offset,
        category=category,
    )


async def suggest(q: str, db: AsyncSession, limit: int) -> HashtagSuggestResponse:
    items = await service.search_hashtags(q, db, limit=limit)
    return HashtagSuggestResponse(suggestions=[TrendingHashtagItem(**i) for i in items])


async def get_hashtag(name: str, db: AsyncSession) -> HashtagDetail:
    try:
        hashtag = await service.get_hashtag(name, db)
    except HashtagNotFoundError:
        raise NotFoundError(f"Hashtag #{name}")
    return HashtagDetail.model_validate(hashtag)


async def update_flags(
    name: str,
    payload: HashtagFlagsUpdate,
    db: AsyncSession,
    redis: Redis | None,
) -> HashtagDetail:
    try:
        hashtag = await service.update_hashtag_flags(
            name,
            db,
            redis=redis,
            is_banned=payload.is_banned,
            is_featured=payload.is_featured,
            category=payload.category,
        )
    except HashtagNotFoundError:
        raise NotFoundError(f"Hashtag #{name}")
    return HashtagDetail.model_validate(hashtag)


async def _enqueue_usage(event: HashtagsUsed) -> str:
    job_id = await task_queue.enqueue("ingest_hashtags", event.model_dump(mode="json"))
    if job_id is None:
        raise IngestQueueUnavailableError()
    return job_id


async def record_usage(
    event: HashtagsUsed,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> HashtagUsageResponse:
    """Count a post's hashtags in-request, or queue them for the worker."""
    if settings.ingest_mode == "queue":
        try:
            job_id = await _enqueue_usage(event)
        except IngestQueueUnavailableError:
            raise ServiceUnavailableError("Hashtag queue unavailable; retry later.")
        return HashtagUsageResponse(queued=True, job_id=job_id)

    result = await on_hashtag_used(
        tags_for_event(event.tags, event.caption),
        session_factory,
        weight=event.weight,
        retry_backoff=settings.ingest_retry_backoff_seconds,
    )
    return HashtagUsageResponse(
        recorded=result.recorded,
        skipped=result.skipped,
        failed=result.failed,
    )
