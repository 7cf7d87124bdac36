"""
ARQ task queue — API-side job enqueuing.

With ``ingest_mode = "queue"`` the internal usage endpoint pushes hashtag
events into Redis and returns immediately; the worker (app.worker) records
them. The pool only exists in queue mode.
"""
from __future__ import annotations

import logging
from typing import Any

from arq import ArqRedis, create_pool
from arq.connections import RedisSettings
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

QUEUE_NAME = "hashtags:tasks"

_pool: ArqRedis | None = None


def redis_settings_from_url(url: str) -> RedisSettings:
    """ARQ connection settings for a redis:// or rediss:// URL."""
    return RedisSettings.from_dsn(url)


async def init_pool(redis_url: str) -> None:
    global _pool
    _pool = await create_pool(redis_settings_from_url(redis_url), default_queue_name=QUEUE_NAME)
    logger.info("ARQ pool ready (queue=%s)", QUEUE_NAME)


async def close_pool() -> None:
    global _pool
    if _pool is None:
        return
    await _pool.aclose()
    _pool = None
    logger.info("ARQ pool closed")


async def enqueue(function_name: str, *args: Any, **kwargs: Any) -> str | None:
    """Push one job onto the hashtag queue.

    Returns the job id, or None when there is no pool, Redis refused the
    write, or a job with the same ``_job_id`` is already queued.
    """
    if _pool is None:
        logger.error("Cannot enqueue %s: ARQ pool not initialized", function_name)
        return None
    try:
        job = await _pool.enqueue_job(function_name, *args, **kwargs)
    except (RedisError, OSError):
        logger.exception("Enqueue of %s failed", function_name)
        return None
    if job is None:
        logger.info("Skipped %s: duplicate job id", function_name)
        return None
    logger.debug("Enqueued %s as job %s", function_name, job.job_id)
    return job.job_id
