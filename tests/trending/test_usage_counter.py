import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import func, select

from app.models import Hashtag, HashtagCategory
from app.trending.exceptions import InvalidTagError, InvalidWeightError
from app.trending.usage import dedupe_tags, normalize_tag, record_usage, record_usages


async def _get(session_factory, name: str) -> Hashtag:
    async with session_factory() as session:
        return (await session.execute(select(Hashtag).where(Hashtag.name == name))).scalar_one()


@pytest.mark.parametrize("raw", ["ai", "  AI  ", "#ai", "#Ai ", " #AI"])
def test_normalize_tag(raw: str) -> None:
    assert normalize_tag(raw) == "ai"


@pytest.mark.parametrize("raw", ["", "   ", "#", None, "two words", "emoji😀", "a" * 51])
def test_normalize_rejects(raw) -> None:
    with pytest.raises(InvalidTagError):
        normalize_tag(raw)


def test_dedupe_keeps_first_seen_order() -> None:
    assert dedupe_tags(["Music", "ai", "#music", "AI", "art"]) == ["music", "ai", "art"]


@pytest.mark.asyncio
async def test_first_use_creates_record(db_session, session_factory, now) -> None:
    name = await record_usage("  Music ", db_session, now=now)
    await db_session.commit()
    assert name == "music"

    tag = await _get(session_factory, "music")
    assert tag.total_usage == 1
    assert (tag.last_hour, tag.last_24_hours, tag.last_7_days) == (1, 1, 1)
    assert tag.category == HashtagCategory.GENERAL
    assert tag.trending_score == 0.0
    assert tag.rolled_over_at is None
    assert tag.is_banned is False


@pytest.mark.asyncio
async def test_n_uses_counted_exactly(db_session, session_factory, now) -> None:
    for i in range(25):
        await record_usage("coding", db_session, now=now + timedelta(seconds=i))
    await db_session.commit()

    tag = await _get(session_factory, "coding")
    assert tag.total_usage == 25
    assert tag.last_24_hours == 25
    assert tag.peak_usage_count == 25


@pytest.mark.asyncio
async def test_variants_share_one_record(db_session, session_factory, now) -> None:
    await record_usage("  AI  ", db_session, now=now)
    await record_usage("ai", db_session, now=now)
    await db_session.commit()

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(Hashtag))).scalar_one()
    assert count == 1
    assert (await _get(session_factory, "ai")).total_usage == 2


@pytest.mark.asyncio
async def test_weight_adds_to_every_window(db_session, session_factory, now) -> None:
    await record_usage("gaming", db_session, weight=7, now=now)
    await db_session.commit()
    tag = await _get(session_factory, "gaming")
    assert tag.total_usage == tag.last_hour == tag.last_24_hours == tag.last_7_days == 7


@pytest.mark.asyncio
@pytest.mark.parametrize("weight", [0, -3, True, 1.5])
async def test_invalid_weight_rejected(db_session, weight) -> None:
    with pytest.raises(InvalidWeightError):
        await record_usage("art", db_session, weight=weight)


@pytest.mark.asyncio
async def test_invalid_tag_writes_nothing(db_session, session_factory) -> None:
    with pytest.raises(InvalidTagError):
        await record_usage("   ", db_session)
    await db_session.commit()
    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(Hashtag))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_record_usages_dedupes_per_post(db_session, session_factory, now) -> None:
    recorded = await record_usages(["Travel", "#travel", "nature"], db_session, now=now)
    await db_session.commit()
    assert recorded == ["travel", "nature"]
    assert (await _get(session_factory, "travel")).total_usage == 1


@pytest.mark.asyncio
async def test_concurrent_uses_lose_nothing(session_factory, now) -> None:
    async def one_use() -> None:
        async with session_factory() as session:
            await record_usage("foodie", session, now=now)
            await session.commit()

    await asyncio.gather(*(one_use() for _ in range(10)))

    tag = await _get(session_factory, "foodie")
    assert tag.total_usage == 10
    assert tag.last_24_hours == 10
