"""
ARQ worker — trending rollover and queued hashtag ingestion.

Runs as a SEPARATE process from the FastAPI API server.

Start:  arq app.worker.WorkerSettings

Jobs:
  rollover_tick    cron, every ``rollover_interval_minutes`` (and once at startup):
                   decays usage windows and rescores every active hashtag
  ingest_hashtags  queued by the API when ``ingest_mode = "queue"``

Only one rollover tick runs at a time (``unique=True``). A tick that dies on a
database outage is simply retried by the next scheduled tick; every record is
its own transaction, so stopping the worker mid-tick leaves no half-updated row.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from arq import cron

from app.config import Settings
from app.task_queue import QUEUE_NAME, redis_settings_from_url

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger("hashtags.worker")


# ── Startup / shutdown hooks ────────────────────────────────────────────────


async def startup(ctx: dict[str, Any]) -> None:
    """Called once when the worker process starts."""
    from app.database import init_db

    settings = Settings()
    ctx["settings"] = settings
    ctx["session_factory"] = init_db(settings.database_url)
    logger.info("Worker started — DB pool initialized")


async def shutdown(ctx: dict[str, Any]) -> None:
    """Called once when the worker process stops."""
    from app.database import dispose_db

    await dispose_db()
    logger.info("Worker shut down")


# ── Rollover ────────────────────────────────────────────────────────────────


async def rollover_tick(ctx: dict[str, Any]) -> dict[str, int]:
    from app.hashtags.cache import invalidate_trending
    from app.trending.rollover import run_rollover_pass

    settings: Settings = ctx["settings"]
    stats = await run_rollover_pass(
        ctx["session_factory"],
        now=datetime.now(timezone.utc),
        batch_size=settings.rollover_batch_size,
        weights=settings.score_weights,
    )
    if stats.updated:
        # Scores moved; let the next read rebuild the ranked list
        await invalidate_trending(ctx.get("redis"))
    return {
        "scanned": stats.scanned,
        "updated": stats.updated,
        "skipped": stats.skipped,
        "failed": stats.failed,
    }


# ── Queued ingestion ────────────────────────────────────────────────────────


async def ingest_hashtags(ctx: dict[str, Any], event: dict[str, Any]) -> dict[str, list[str]]:
    """Record the hashtags of one post. ``event`` is a serialized HashtagsUsed."""
    from app.trending.ingest import on_hashtag_used, tags_for_event
    from shared.events.schemas import HashtagsUsed

    settings: Settings = ctx["settings"]
    parsed = HashtagsUsed.model_validate(event)
    result = await on_hashtag_used(
        tags_for_event(parsed.tags, parsed.caption),
        ctx["session_factory"],
        weight=parsed.weight,
        retry_backoff=settings.ingest_retry_backoff_seconds,
    )
    return {"recorded": result.recorded, "skipped": result.skipped, "failed": result.failed}


# ── ARQ worker configuration ──────────────────────────────────────────────


def _rollover_minutes(interval: int) -> set[int]:
    interval = min(max(interval, 1), 60)
    return set(range(0, 60, interval))


_settings = Settings()


class WorkerSettings:
    """ARQ reads this class to configure the worker process."""
    functions = [ingest_hashtags]
    cron_jobs = [
        cron(
            rollover_tick,
            minute=_rollover_minutes(_settings.rollover_interval_minutes),
            run_at_startup=True,
            unique=True,
            timeout=600,
        )
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings_from_url(_settings.redis_url)
    max_jobs = 20
    max_tries = 3
    job_timeout = 600
    keep_result = 3600
    queue_name = QUEUE_NAME
