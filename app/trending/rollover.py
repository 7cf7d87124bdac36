"""Window rollover — decays usage windows and refreshes trending scores.

Runs on a fixed tick from the ARQ worker (app.worker.rollover_tick).

Decay policy, per window (hour / 24 h / 7 d):
  - hard reset:  the tag has not been used for a full window → 0
  - otherwise:   exponential decay over the time since the previous pass,
                 value * exp(-elapsed / window)

Counters are whole uses: a pass removes only whole uses and stores the
fraction it still owes (hour/day/week_decay_carry) for the next pass. A tag
used r times per hour settles near r * window hours whatever the tick length.

Each record is one unit of work: read a snapshot, plan the decay in Python,
then write a single UPDATE that *subtracts* the planned decrements and
overwrites score/velocity. The UPDATE is gated on the rolled_over_at value
that was read, so a second pass for the same window (retry, overlapping
worker) matches no row instead of decaying twice. Increments that land
between the read and the write survive because the write is relative.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from sqlalchemy import or_, select, update
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.hashtag import Hashtag
from app.trending.scoring import (
    DEFAULT_WEIGHTS,
    ScoreWeights,
    UsageSnapshot,
    as_utc,
    compute_score,
    snapshot_of,
)

logger = logging.getLogger(__name__)

HOUR_SECONDS = 3600
DAY_SECONDS = 24 * HOUR_SECONDS
WEEK_SECONDS = 7 * DAY_SECONDS

DEFAULT_BATCH_SIZE = 500


def decay_window(
    value: int,
    idle_s: float,
    elapsed_s: float,
    window_s: float,
    carry: float = 0.0,
) -> tuple[int, float]:
    """Decay one window counter. Returns ``(kept, carry)``.

    ``kept`` is never negative and never above ``value``. ``carry`` is the
    fraction of a use owed from earlier passes; it is added to this pass's
    decay and whatever is left below one whole use is returned.
    """
    if value <= 0 or idle_s >= window_s:
        return 0, 0.0
    if elapsed_s <= 0:
        return value, carry
    owed = value * -math.expm1(-elapsed_s / window_s) + carry
    removed = min(value, math.floor(owed))
    return value - removed, owed - removed


@dataclass(frozen=True)
class RolloverPlan:
    hour_decrement: int
    day_decrement: int
    week_decrement: int
    hour_carry: float
    day_carry: float
    week_carry: float
    score: float
    velocity: float
    # last_24_hours after decay; next pass measures velocity against it
    baseline_24_hours: int


def plan_rollover(
    snapshot: UsageSnapshot,
    now: datetime,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> RolloverPlan | None:
    """Decay + rescore for one snapshot. None when ``now`` is not after the last pass."""
    now = as_utc(now)
    if snapshot.rolled_over_at is not None and now <= snapshot.rolled_over_at:
        return None

    idle_s = (now - snapshot.usage_updated_at).total_seconds()
    anchor = snapshot.rolled_over_at or snapshot.usage_updated_at
    elapsed_s = (now - anchor).total_seconds()

    hour, hour_carry = decay_window(
        snapshot.last_hour, idle_s, elapsed_s, HOUR_SECONDS, snapshot.hour_decay_carry
    )
    day, day_carry = decay_window(
        snapshot.last_24_hours, idle_s, elapsed_s, DAY_SECONDS, snapshot.day_decay_carry
    )
    week, week_carry = decay_window(
        snapshot.last_7_days, idle_s, elapsed_s, WEEK_SECONDS, snapshot.week_decay_carry
    )
    decayed = replace(snapshot, last_hour=hour, last_24_hours=day, last_7_days=week)
    result = compute_score(decayed, now, weights)
    return RolloverPlan(
        hour_decrement=snapshot.last_hour - decayed.last_hour,
        day_decrement=snapshot.last_24_hours - decayed.last_24_hours,
        week_decrement=snapshot.last_7_days - decayed.last_7_days,
        hour_carry=hour_carry,
        day_carry=day_carry,
        week_carry=week_carry,
        score=result.score,
        velocity=result.velocity,
        baseline_24_hours=decayed.last_24_hours,
    )


async def apply_rollover(
    hashtag_id: uuid.UUID,
    db: AsyncSession,
    now: datetime | None = None,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> bool:
    """Roll one record over. Returns False if it was missing or already rolled for ``now``.

    Does not commit.
    """
    now = now or datetime.now(timezone.utc)
    record = await db.get(Hashtag, hashtag_id, populate_existing=True)
    if record is None:
        return False

    plan = plan_rollover(snapshot_of(record), now, weights)
    if plan is None:
        return False

    # Compare against the raw stored value, not the UTC-normalized copy
    seen = record.rolled_over_at
    gate = Hashtag.rolled_over_at.is_(None) if seen is None else Hashtag.rolled_over_at == seen

    result = await db.execute(
        update(Hashtag)
        .where(Hashtag.hashtag_id == hashtag_id, gate)
        .values(
            last_hour=Hashtag.last_hour - plan.hour_decrement,
            last_24_hours=Hashtag.last_24_hours - plan.day_decrement,
            last_7_days=Hashtag.last_7_days - plan.week_decrement,
            hour_decay_carry=plan.hour_carry,
            day_decay_carry=plan.day_carry,
            week_decay_carry=plan.week_carry,
            trending_score=plan.score,
            velocity=plan.velocity,
            scored_last_24_hours=plan.baseline_24_hours,
            rolled_over_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


@dataclass
class RolloverStats:
    scanned: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0


def _candidates():
    """Rows whose windows, velocity or score can still change."""
    return or_(
        Hashtag.last_hour > 0,
        Hashtag.last_24_hours > 0,
        Hashtag.last_7_days > 0,
        Hashtag.velocity != 0,
        Hashtag.rolled_over_at.is_(None),
        Hashtag.rolled_over_at < Hashtag.usage_updated_at,
    )


async def run_rollover_pass(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> RolloverStats:
    """One scheduler tick over every candidate record.

    A record that fails is logged and skipped. Losing the database itself
    (connection-level errors) propagates and aborts the tick; the next tick
    starts over, and records already rolled are gated against double decay.
    """
    now = now or datetime.now(timezone.utc)
    stats = RolloverStats()
    last_id: uuid.UUID | None = None

    while True:
        async with session_factory() as session:
            stmt = (
                select(Hashtag.hashtag_id)
                .where(_candidates())
                .order_by(Hashtag.hashtag_id)
                .limit(batch_size)
            )
            if last_id is not None:
                stmt = stmt.where(Hashtag.hashtag_id > last_id)
            ids = list((await session.execute(stmt)).scalars().all())

        if not ids:
            break

        for hashtag_id in ids:
            stats.scanned += 1
            try:
                async with session_factory() as session:
                    updated = await apply_rollover(hashtag_id, session, now, weights)
                    await session.commit()
            except (OperationalError, InterfaceError):
                logger.error("Rollover aborted at hashtag %s: database unavailable", hashtag_id)
                raise
            except Exception:
                stats.failed += 1
                logger.exception("Rollover failed for hashtag %s", hashtag_id)
                continue
            if updated:
                stats.updated += 1
            else:
                stats.skipped += 1

        last_id = ids[-1]
        if len(ids) < batch_size:
            break

    logger.info(
        "Rollover pass done: scanned=%d updated=%d skipped=%d failed=%d",
        stats.scanned,
        stats.updated,
        stats.skipped,
        stats.failed,
    )
    return stats
