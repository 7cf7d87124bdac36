#!/usr/bin/env python3
"""
Simulate hashtag traffic against a dev database.
Run from repo root: python scripts/simulate_trending.py
Uses DATABASE_URL from env or .env. Stop with Ctrl+C.

Seeds ten tags with plausible counters when they are missing, then every
3-7 seconds picks 1-3 tags, records a burst of uses and runs a rollover
pass so scores and velocity move.
"""
import asyncio
import logging
import random
import sys
from datetime import datetime, timezone
from pathlib import Path

# Repo root on path for shared and app imports
repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root))

from sqlalchemy import select  # noqa: E402

from app.config import Settings  # noqa: E402
from app.database import dispose_db, init_db  # noqa: E402
from app.models import Hashtag, HashtagCategory  # noqa: E402
from app.trending.rollover import run_rollover_pass  # noqa: E402
from app.trending.usage import record_usage  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s: %(message)s")
logger = logging.getLogger("hashtags.simulate")

# name -> (category, base daily usage)
SEED_TAGS: dict[str, tuple[HashtagCategory, int]] = {
    "technology": (HashtagCategory.TECHNOLOGY, 1200),
    "coding": (HashtagCategory.TECHNOLOGY, 850),
    "fitness": (HashtagCategory.HEALTH, 700),
    "travel": (HashtagCategory.TRAVEL, 950),
    "foodie": (HashtagCategory.FOOD, 600),
    "music": (HashtagCategory.MUSIC, 1100),
    "gaming": (HashtagCategory.GAMING, 1300),
    "art": (HashtagCategory.ART, 500),
    "ai": (HashtagCategory.TECHNOLOGY, 2000),
    "nature": (HashtagCategory.TRAVEL, 450),
}


async def seed(session_factory) -> int:
    now = datetime.now(timezone.utc)
    created = 0
    async with session_factory() as session:
        existing = set(
            (await session.execute(select(Hashtag.name).where(Hashtag.name.in_(SEED_TAGS))))
            .scalars()
            .all()
        )
        for name, (category, base) in SEED_TAGS.items():
            if name in existing:
                continue
            session.add(
                Hashtag(
                    name=name,
                    category=category,
                    total_usage=base,
                    last_hour=base // 24,
                    last_24_hours=base,
                    last_7_days=base * 7,
                    usage_updated_at=now,
                    first_used_at=now,
                )
            )
            created += 1
        await session.commit()
    return created


async def simulate_tick(session_factory, settings: Settings) -> None:
    picked = random.sample(list(SEED_TAGS), k=random.randint(1, 3))
    async with session_factory() as session:
        for name in picked:
            burst = random.randint(10, 59)
            await record_usage(name, session, weight=burst)
            logger.info("#%s +%d", name, burst)
        await session.commit()
    await run_rollover_pass(
        session_factory,
        batch_size=settings.rollover_batch_size,
        weights=settings.score_weights,
    )


async def main() -> None:
    settings = Settings()
    session_factory = init_db(settings.database_url)
    try:
        created = await seed(session_factory)
        print(f"Seeded {created} hashtag(s). Simulating traffic, Ctrl+C to stop.")
        while True:
            await simulate_tick(session_factory, settings)
            await asyncio.sleep(random.uniform(3, 7))
    finally:
        await dispose_db()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("Simulation stopped.")
