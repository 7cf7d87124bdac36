"""Ingestion adapter between the post pipeline and the usage counters.

Hashtag tracking is best-effort: nothing here raises back into post creation.
Bad tags are skipped, each good tag is committed on its own, and a storage
error gets exactly one retry before it is reported as a warning.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from html import unescape

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.trending.exceptions import InvalidTagError
from app.trending.usage import check_weight, normalize_tag, record_usage

logger = logging.getLogger(__name__)

# "#" then a letter, then 1-49 word characters
HASHTAG_PATTERN = re.compile(r"#([^\W\d_]\w{1,49})")
HTML_TAG_PATTERN = re.compile(r"<[^>]+>")
MAX_HASHTAGS_PER_POST = 30


def extract_hashtags(body: str | None) -> list[str]:
    """Extract unique hashtags from a caption (HTML or plain text).

    Returns lowercase tag names without '#' prefix, deduplicated,
    preserving first-occurrence order. Max 30 hashtags per post.
    """
    if not body:
        return []
    plain = HTML_TAG_PATTERN.sub(" ", unescape(body))
    seen: set[str] = set()
    result: list[str] = []
    for match in HASHTAG_PATTERN.finditer(plain):
        tag = match.group(1).lower()
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
        if len(result) >= MAX_HASHTAGS_PER_POST:
            break
    return result


@dataclass
class IngestResult:
    recorded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def _split_valid(tag_names: Iterable[str], result: IngestResult) -> list[str]:
    """Normalize + dedupe; invalid entries go to ``result.skipped``."""
    seen: set[str] = set()
    valid: list[str] = []
    for raw in tag_names:
        try:
            name = normalize_tag(raw)
        except InvalidTagError as exc:
            logger.info("Skipping hashtag: %s", exc)
            result.skipped.append(str(raw))
            continue
        if name not in seen:
            seen.add(name)
            valid.append(name)
    return valid


async def _record_once(
    name: str,
    session_factory: async_sessionmaker[AsyncSession],
    weight: int,
    now: datetime,
) -> None:
    async with session_factory() as session:
        await record_usage(name, session, weight=weight, now=now)
        await session.commit()


async def on_hashtag_used(
    tag_names: Iterable[str],
    session_factory: async_sessionmaker[AsyncSession],
    weight: int = 1,
    retry_backoff: float = 0.2,
    now: datetime | None = None,
) -> IngestResult:
    """Count every tag of one created/edited post. Never raises for tag or storage errors.

    A weight that is not a positive integer is a caller error: InvalidWeightError
    is raised before any tag is touched.
    """
    check_weight(weight)
    now = now or datetime.now(timezone.utc)
    result = IngestResult()

    for name in _split_valid(tag_names, result):
        try:
            await _record_once(name, session_factory, weight, now)
        except SQLAlchemyError as first_exc:
            logger.info("Retrying #%s after storage error: %s", name, first_exc)
            await asyncio.sleep(retry_backoff)
            try:
                await _record_once(name, session_factory, weight, now)
            except SQLAlchemyError as exc:
                logger.warning("Hashtag #%s not counted, storage error: %s", name, exc)
                result.failed.append(name)
                continue
        result.recorded.append(name)

    if result.recorded:
        logger.info("Recorded hashtags %s", ", ".join(result.recorded))
    return result


def tags_for_event(tags: Iterable[str], caption: str | None) -> list[str]:
    """Explicit tags first, then inline '#tags' found in the caption."""
    return [*tags, *extract_hashtags(caption)]
