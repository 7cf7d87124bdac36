from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from app.models import Hashtag
from app.task_queue import redis_settings_from_url
from app.worker import WorkerSettings, _rollover_minutes, ingest_hashtags, rollover_tick


def test_rollover_minutes() -> None:
    assert _rollover_minutes(5) == set(range(0, 60, 5))
    assert _rollover_minutes(0) == set(range(60))
    assert _rollover_minutes(90) == {0}


def test_redis_settings_from_url() -> None:
    settings = redis_settings_from_url("redis://:secret@cache.internal:6380/2")
    assert (settings.host, settings.port, settings.database) == ("cache.internal", 6380, 2)
    assert settings.password == "secret"


def test_worker_registers_jobs() -> None:
    assert ingest_hashtags in WorkerSettings.functions
    assert WorkerSettings.cron_jobs[0].coroutine is rollover_tick


@pytest.mark.asyncio
async def test_ingest_job_records_event(session_factory, test_settings) -> None:
    ctx = {"settings": test_settings, "session_factory": session_factory}
    result = await ingest_hashtags(ctx, {"tags": ["Gaming"], "caption": "gg #gaming #art", "weight": 2})

    assert result["recorded"] == ["gaming", "art"]
    async with session_factory() as session:
        tag = (await session.execute(select(Hashtag).where(Hashtag.name == "gaming"))).scalar_one()
    assert tag.total_usage == 2


@pytest.mark.asyncio
async def test_rollover_tick_reports_stats(session_factory, test_settings) -> None:
    # The tick uses the wall clock
    idle_since = datetime.now(timezone.utc) - timedelta(days=9)
    async with session_factory() as session:
        session.add(
            Hashtag(
                name="art",
                last_hour=4,
                last_24_hours=4,
                last_7_days=4,
                total_usage=4,
                usage_updated_at=idle_since,
            )
        )
        await session.commit()

    ctx = {"settings": test_settings, "session_factory": session_factory}
    stats = await rollover_tick(ctx)

    assert stats == {"scanned": 1, "updated": 1, "skipped": 0, "failed": 0}
    async with session_factory() as session:
        tag = (await session.execute(select(Hashtag).where(Hashtag.name == "art"))).scalar_one()
    assert tag.last_7_days == 0
