"""Hashtag business logic — trending ranking, autocomplete, moderation flags.

Trending order (total, deterministic — safe for offset pagination):
  1. is_featured DESC        only when pin_featured (editorial pinning)
  2. trending_score DESC
  3. total_usage DESC
  4. name ASC

Banned hashtags never appear in trending or autocomplete results.
Reads tolerate staleness: scores change only on rollover ticks and the
ranked list is cached for a short TTL.
"""

from __future__ import annotations

import logging

from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.hashtags import cache as hashtag_cache
from app.hashtags.exceptions import HashtagNotFoundError
from app.models.enums import HashtagCategory
from app.models.hashtag import Hashtag
from app.trending.exceptions import InvalidTagError
from app.trending.usage import normalize_tag

logger = logging.getLogger(__name__)

MAX_TRENDING_LIMIT = 50
DEFAULT_TRENDING_LIMIT = 10


def clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_TRENDING_LIMIT))


def to_summary(hashtag: Hashtag) -> dict:
    category = hashtag.category
    return {
        "name": hashtag.name,
        "total_usage": hashtag.total_usage,
        "last_24_hours": hashtag.last_24_hours,
        "category": category.value if isinstance(category, HashtagCategory) else category,
        "trending_score": hashtag.trending_score,
        "velocity": hashtag.velocity,
        "is_featured": hashtag.is_featured,
    }


async def _query_trending(
    db: AsyncSession,
    category: HashtagCategory | None,
    pin_featured: bool,
    limit: int,
    offset: int,
) -> list[Hashtag]:
    stmt = select(Hashtag).where(Hashtag.is_banned.is_(False))
    if category is not None:
        stmt = stmt.where(Hashtag.category == category)
    ordering = [
        Hashtag.trending_score.desc(),
        Hashtag.total_usage.desc(),
        Hashtag.name.asc(),
    ]
    if pin_featured:
        ordering.insert(0, Hashtag.is_featured.desc())
    stmt = (
        stmt.order_by(*ordering)
        .offset(offset)
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    return list((await db.execute(stmt)).scalars().all())


async def get_trending_hashtags(
    db: AsyncSession,
    redis: Redis | None = None,
    limit: int = DEFAULT_TRENDING_LIMIT,
    category: HashtagCategory | None = None,
    offset: int = 0,
    pin_featured: bool = True,
    cache_ttl_s: int = hashtag_cache.DEFAULT_TRENDING_TTL_S,
) -> list[dict]:
    """Ranked hashtag summaries. Never raises for storage errors.

    The first MAX_TRENDING_LIMIT ranks of each (category, pinning) list are
    cached; pages beyond that go straight to the database. On a database
    error the last good cached copy is served, or an empty list.
    """
    limit = clamp_limit(limit)
    offset = max(0, int(offset))
    window_end = offset + limit
    cacheable = window_end <= MAX_TRENDING_LIMIT

    if cacheable:
        cached = await hashtag_cache.get_trending(redis, category, pin_featured)
        if cached is not None:
            return cached[offset:window_end]

    try:
        if cacheable:
            rows = await _query_trending(db, category, pin_featured, MAX_TRENDING_LIMIT, 0)
        else:
            rows = await _query_trending(db, category, pin_featured, limit, offset)
    except SQLAlchemyError as exc:
        logger.warning("Trending query failed, serving stale list: %s", exc)
        await db.rollback()
        stale = await hashtag_cache.get_trending(redis, category, pin_featured, stale=True)
        return (stale or [])[offset:window_end]

    items = [to_summary(h) for h in rows]
    if not cacheable:
        return items
    await hashtag_cache.set_trending(redis, category, pin_featured, items, ttl_s=cache_ttl_s)
    return items[offset:window_end]


async def search_hashtags(
    q: str,
    db: AsyncSession,
    limit: int = 10,
) -> list[dict]:
    """Prefix search for hashtag autocomplete, most used first."""
    prefix = q.strip().lstrip("#").strip().lower()
    if not prefix:
        return []
    stmt = (
        select(Hashtag)
        .where(
            Hashtag.is_banned.is_(False),
            Hashtag.name.startswith(prefix, autoescape=True),
        )
        .order_by(Hashtag.total_usage.desc(), Hashtag.name.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return [to_summary(h) for h in rows]


async def get_hashtag(
    name: str,
    db: AsyncSession,
    include_banned: bool = False,
) -> Hashtag:
    """Look up a hashtag by (un-normalized) name. Raises HashtagNotFoundError."""
    try:
        normalized = normalize_tag(name)
    except InvalidTagError:
        raise HashtagNotFoundError(name)
    stmt = (
        select(Hashtag)
        .where(Hashtag.name == normalized)
        .execution_options(populate_existing=True)
    )
    hashtag = (await db.execute(stmt)).scalar_one_or_none()
    if hashtag is None or (hashtag.is_banned and not include_banned):
        raise HashtagNotFoundError(normalized)
    return hashtag


async def update_hashtag_flags(
    name: str,
    db: AsyncSession,
    redis: Redis | None = None,
    is_banned: bool | None = None,
    is_featured: bool | None = None,
    category: HashtagCategory | None = None,
) -> Hashtag:
    """Moderation: ban/unban, feature/unfeature, recategorize.

    Counters and scores are left alone. Commits, then drops the cached
    trending lists (stale copies included): a read that refills the cache
    after the drop sees the committed flags.
    """
    hashtag = await get_hashtag(name, db, include_banned=True)
    if is_banned is not None:
        hashtag.is_banned = is_banned
    if is_featured is not None:
        hashtag.is_featured = is_featured
    if category is not None:
        hashtag.category = category
    await db.commit()
    await db.refresh(hashtag)
    await hashtag_cache.invalidate_trending(redis, include_stale=True)
    logger.info(
        "Hashtag #%s flags updated: banned=%s featured=%s category=%s",
        hashtag.name,
        hashtag.is_banned,
        hashtag.is_featured,
        hashtag.category,
    )
    return hashtag
