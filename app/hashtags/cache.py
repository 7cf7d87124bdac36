"""Redis cache helpers for the trending read path.

Key schema
----------
hashtag:trending:{category|all}:{pinned|ranked}          JSON list  TTL trending_cache_ttl  top 50 items
hashtag:trending:{category|all}:{pinned|ranked}:stale    JSON list  TTL 1 h                last good copy

The stale copy is what readers get while the database is unreachable.
Cache failures are logged and treated as misses; they never fail a request.
"""

from __future__ import annotations

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.models.enums import HashtagCategory

logger = logging.getLogger(__name__)

_TRENDING_PREFIX = "hashtag:trending"
_STALE_SUFFIX = ":stale"
_STALE_TTL_S: int = 3600
DEFAULT_TRENDING_TTL_S: int = 60


def trending_key(category: HashtagCategory | None, pin_featured: bool) -> str:
    scope = category.value if category is not None else "all"
    mode = "pinned" if pin_featured else "ranked"
    return f"{_TRENDING_PREFIX}:{scope}:{mode}"


async def get_trending(
    redis: Redis | None,
    category: HashtagCategory | None,
    pin_featured: bool,
    stale: bool = False,
) -> list[dict] | None:
    """Return the cached ranked list, or None on miss / no Redis / Redis error."""
    if redis is None:
        return None
    key = trending_key(category, pin_featured) + (_STALE_SUFFIX if stale else "")
    try:
        val = await redis.get(key)
    except RedisError as exc:
        logger.warning("Trending cache read failed (%s): %s", key, exc)
        return None
    return json.loads(val) if val is not None else None


async def set_trending(
    redis: Redis | None,
    category: HashtagCategory | None,
    pin_featured: bool,
    items: list[dict],
    ttl_s: int = DEFAULT_TRENDING_TTL_S,
) -> None:
    if redis is None:
        return
    key = trending_key(category, pin_featured)
    payload = json.dumps(items)
    try:
        pipeline = redis.pipeline()
        pipeline.setex(key, ttl_s, payload)
        pipeline.setex(key + _STALE_SUFFIX, _STALE_TTL_S, payload)
        await pipeline.execute()
    except RedisError as exc:
        logger.warning("Trending cache write failed (%s): %s", key, exc)


async def invalidate_trending(redis: Redis | None, include_stale: bool = False) -> int:
    """Drop cached trending lists.

    Stale copies survive plain invalidation (they back reads during outages)
    unless ``include_stale`` is set, which moderation does so a banned tag
    cannot resurface from the stale copy.
    """
    if redis is None:
        return 0
    try:
        keys = [
            key
            async for key in redis.scan_iter(match=f"{_TRENDING_PREFIX}:*")
            if include_stale or not _as_str(key).endswith(_STALE_SUFFIX)
        ]
        if not keys:
            return 0
        return await redis.delete(*keys)
    except RedisError as exc:
        logger.warning("Trending cache invalidation failed: %s", exc)
        return 0


def _as_str(key: str | bytes) -> str:
    # ARQ's pool does not decode responses
    return key.decode() if isinstance(key, bytes) else key
