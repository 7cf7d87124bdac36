"""Pure trending score functions — no I/O, no framework imports.

Default weights (uses → score points):
  hour     = 1.5   — uses in the trailing hour
  day      = 1.0   — uses in the trailing 24 h
  week     = 0.05  — uses in the trailing 7 days
  all_time = 0.01  — all-time total

day > week > all_time keeps recent activity dominant: a tag with 1 100 uses
today outranks one with 2 000 lifetime uses but only 500 today. Every weight
is non-negative, so raising any counter never lowers the score.

Velocity is the rate of change of the 24 h window between two scoring passes,
in uses per hour. The previous value lives on the row (scored_last_24_hours)
so no raw history has to be kept.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

_SCORE_PRECISION = 4

# Shortest interval velocity is averaged over (5 minutes)
MIN_VELOCITY_WINDOW_HOURS = 5 / 60


@dataclass(frozen=True)
class ScoreWeights:
    """Trending score weight policy. Overridable from settings."""

    hour: float = 1.5
    day: float = 1.0
    week: float = 0.05
    all_time: float = 0.01

    def __post_init__(self) -> None:
        if min(self.hour, self.day, self.week, self.all_time) < 0:
            raise ValueError("Score weights must be non-negative")
        if not self.day > self.week > self.all_time:
            raise ValueError("Score weights must satisfy day > week > all_time")


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class UsageSnapshot:
    """Point-in-time copy of the counters a scoring pass needs."""

    last_hour: int
    last_24_hours: int
    last_7_days: int
    total_usage: int
    usage_updated_at: datetime
    scored_last_24_hours: int = 0
    rolled_over_at: datetime | None = None
    velocity: float = 0.0
    hour_decay_carry: float = 0.0
    day_decay_carry: float = 0.0
    week_decay_carry: float = 0.0


@dataclass(frozen=True)
class ScoreResult:
    score: float
    velocity: float


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def snapshot_of(record: Any) -> UsageSnapshot:
    """Build a snapshot from a Hashtag row (or any object with the same fields)."""
    return UsageSnapshot(
        last_hour=record.last_hour,
        last_24_hours=record.last_24_hours,
        last_7_days=record.last_7_days,
        total_usage=record.total_usage,
        usage_updated_at=as_utc(record.usage_updated_at),
        scored_last_24_hours=record.scored_last_24_hours or 0,
        rolled_over_at=as_utc(record.rolled_over_at) if record.rolled_over_at else None,
        velocity=record.velocity or 0.0,
        hour_decay_carry=record.hour_decay_carry or 0.0,
        day_decay_carry=record.day_decay_carry or 0.0,
        week_decay_carry=record.week_decay_carry or 0.0,
    )


def score_windows(
    snapshot: UsageSnapshot,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted sum of the window counters and the all-time total."""
    raw = (
        weights.hour * max(0, snapshot.last_hour)
        + weights.day * max(0, snapshot.last_24_hours)
        + weights.week * max(0, snapshot.last_7_days)
        + weights.all_time * max(0, snapshot.total_usage)
    )
    return round(raw, _SCORE_PRECISION)


def compute_velocity(snapshot: UsageSnapshot, now: datetime) -> float:
    """Change of the 24 h window since the previous pass, per hour.

    Before the first pass the baseline is zero and the clock starts at the
    last recorded use. When no time has passed since the previous pass the
    stored velocity is returned, so re-scoring at the same instant is a no-op.
    """
    now = as_utc(now)
    if snapshot.rolled_over_at is not None:
        since = snapshot.rolled_over_at
        baseline = snapshot.scored_last_24_hours
    else:
        since = snapshot.usage_updated_at
        baseline = 0

    elapsed_hours = (now - since).total_seconds() / 3600.0
    if elapsed_hours <= 0:
        return snapshot.velocity
    # A burst scored seconds after it landed would otherwise read as thousands/hour
    elapsed_hours = max(elapsed_hours, MIN_VELOCITY_WINDOW_HOURS)
    return round((snapshot.last_24_hours - baseline) / elapsed_hours, _SCORE_PRECISION)


def compute_score(
    snapshot: UsageSnapshot,
    now: datetime,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ScoreResult:
    """Trending score and velocity for a snapshot at ``now``. Deterministic."""
    return ScoreResult(
        score=score_windows(snapshot, weights),
        velocity=compute_velocity(snapshot, now),
    )
