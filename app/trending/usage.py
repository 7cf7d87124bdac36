"""Usage counters — the write path hit once per hashtag per created/edited post.

Every mutation here is a single SQL statement evaluated by the database
(``SET col = col + :w``), never a read-modify-write in Python, so concurrent
posts using the same tag cannot lose increments.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.hashtag import Hashtag
from app.trending.exceptions import InvalidTagError, InvalidWeightError

logger = logging.getLogger(__name__)

MAX_TAG_LENGTH = 50
_TAG_BODY = re.compile(r"^\w+$")


def normalize_tag(raw: str | None) -> str:
    """Canonical form of a tag: trimmed, no leading '#', lowercase.

    "  AI  ", "#ai" and "Ai" all normalize to "ai".
    """
    if not isinstance(raw, str):
        raise InvalidTagError(raw, "not a string")
    name = raw.strip().lstrip("#").strip().lower()
    if not name:
        raise InvalidTagError(raw)
    if len(name) > MAX_TAG_LENGTH:
        raise InvalidTagError(raw, f"longer than {MAX_TAG_LENGTH} characters")
    if not _TAG_BODY.match(name):
        raise InvalidTagError(raw, "only letters, digits and '_' are allowed")
    return name


def _insert_for(db: AsyncSession):
    """Dialect-specific INSERT that supports ON CONFLICT DO NOTHING."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def _ensure_hashtag(name: str, now: datetime, db: AsyncSession) -> None:
    """Create the row with zeroed counters if the tag has never been seen.

    A concurrent first use of the same tag hits the unique constraint and
    does nothing, so exactly one row survives.
    """
    insert = _insert_for(db)
    stmt = (
        insert(Hashtag)
        .values(name=name, first_used_at=now, usage_updated_at=now)
        .on_conflict_do_nothing(index_elements=["name"])
    )
    await db.execute(stmt)


def check_weight(weight: object) -> int:
    if not isinstance(weight, int) or isinstance(weight, bool) or weight < 1:
        raise InvalidWeightError(weight)
    return weight


async def record_usage(
    tag_name: str,
    db: AsyncSession,
    weight: int = 1,
    now: datetime | None = None,
) -> str:
    """Count one (or ``weight``) uses of a tag. Returns the normalized name.

    Raises InvalidTagError for unusable names, InvalidWeightError for a
    weight that is not a positive integer. Does not commit; the caller
    owns the transaction.
    """
    name = normalize_tag(tag_name)
    check_weight(weight)
    now = now or datetime.now(timezone.utc)

    await _ensure_hashtag(name, now, db)

    await db.execute(
        update(Hashtag)
        .where(Hashtag.name == name)
        .values(
            total_usage=Hashtag.total_usage + weight,
            last_hour=Hashtag.last_hour + weight,
            last_24_hours=Hashtag.last_24_hours + weight,
            last_7_days=Hashtag.last_7_days + weight,
            usage_updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    # High-water mark: compared and written by the database in one statement
    await db.execute(
        update(Hashtag)
        .where(
            Hashtag.name == name,
            Hashtag.last_24_hours > Hashtag.peak_usage_count,
        )
        .values(peak_usage_count=Hashtag.last_24_hours, peak_usage_at=now)
        .execution_options(synchronize_session=False)
    )
    logger.debug("Recorded %d use(s) of #%s", weight, name)
    return name


async def record_usages(
    tag_names: Iterable[str],
    db: AsyncSession,
    weight: int = 1,
    now: datetime | None = None,
) -> list[str]:
    """Record a post's tags in one transaction, once per distinct normalized name.

    Invalid tags raise; use app.trending.ingest for the best-effort path.
    """
    now = now or datetime.now(timezone.utc)
    recorded: list[str] = []
    for name in dedupe_tags(tag_names):
        recorded.append(await record_usage(name, db, weight=weight, now=now))
    return recorded


def dedupe_tags(tag_names: Iterable[str]) -> list[str]:
    """Normalize and dedupe, keeping first-seen order. Raises on the first invalid tag."""
    seen: set[str] = set()
    result: list[str] = []
    for raw in tag_names:
        name = normalize_tag(raw)
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result
