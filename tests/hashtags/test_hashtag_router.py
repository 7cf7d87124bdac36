from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from httpx import AsyncClient
from jose import jwt

from app import task_queue
from app.models import Hashtag, HashtagCategory
from app.trending.rollover import run_rollover_pass
from shared.auth.dependencies import get_auth_settings
from shared.constants import Role


def _bearer(*roles: Role | str, expires_in: timedelta = timedelta(minutes=5)) -> dict[str, str]:
    settings = get_auth_settings()
    token = jwt.encode(
        {
            "sub": str(uuid4()),
            "email": "mod@example.com",
            "roles": [getattr(r, "value", r) for r in roles],
            "iss": settings.issuer,
            "aud": settings.audience,
            "exp": datetime.now(timezone.utc) + expires_in,
        },
        settings.secret.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return {"Authorization": f"Bearer {token}"}


async def _seed(session_factory, *tags: Hashtag) -> None:
    async with session_factory() as session:
        session.add_all(tags)
        await session.commit()


@pytest.mark.asyncio
async def test_health(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "hashtags"}


@pytest.mark.asyncio
async def test_record_then_rank(async_client: AsyncClient, session_factory) -> None:
    response = await async_client.post(
        "/api/v1/hashtags/internal/usage",
        json={"tags": ["  AI  ", "ai", "Music"], "caption": "new track #music #coding"},
    )
    assert response.status_code == 202
    body = response.json()
    assert body["recorded"] == ["ai", "music", "coding"]
    assert body["skipped"] == []
    assert body["queued"] is False

    await run_rollover_pass(session_factory)

    trending = await async_client.get("/api/v1/hashtags/trending", params={"limit": 10})
    assert trending.status_code == 200
    data = trending.json()
    assert {i["name"] for i in data["items"]} == {"ai", "music", "coding"}
    assert data["limit"] == 10
    assert all(i["trending_score"] > 0 for i in data["items"])


@pytest.mark.asyncio
async def test_usage_skips_bad_tags(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/v1/hashtags/internal/usage", json={"tags": ["", "ok_tag", "no spaces"]}
    )
    assert response.status_code == 202
    assert response.json()["recorded"] == ["ok_tag"]
    assert response.json()["skipped"] == ["", "no spaces"]


@pytest.mark.asyncio
async def test_usage_rejects_bad_weight(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/api/v1/hashtags/internal/usage", json={"tags": ["ai"], "weight": 0}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_usage_queue_mode(async_client: AsyncClient, test_settings, monkeypatch) -> None:
    enqueued: list[tuple] = []

    async def fake_enqueue(function_name, *args, **kwargs):
        enqueued.append((function_name, args))
        return "job-1"

    test_settings.ingest_mode = "queue"
    monkeypatch.setattr(task_queue, "enqueue", fake_enqueue)

    response = await async_client.post(
        "/api/v1/hashtags/internal/usage", json={"tags": ["ai"], "weight": 3}
    )
    assert response.status_code == 202
    assert response.json()["queued"] is True
    assert response.json()["job_id"] == "job-1"
    name, args = enqueued[0]
    assert name == "ingest_hashtags"
    assert args[0]["tags"] == ["ai"]
    assert args[0]["weight"] == 3


@pytest.mark.asyncio
async def test_usage_queue_unavailable(async_client: AsyncClient, test_settings, monkeypatch) -> None:
    async def no_pool(function_name, *args, **kwargs):
        return None

    test_settings.ingest_mode = "queue"
    monkeypatch.setattr(task_queue, "enqueue", no_pool)

    response = await async_client.post("/api/v1/hashtags/internal/usage", json={"tags": ["ai"]})
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "service_unavailable"


@pytest.mark.asyncio
async def test_trending_clamps_limit_and_filters(async_client: AsyncClient, session_factory) -> None:
    await _seed(
        session_factory,
        Hashtag(name="music", category=HashtagCategory.MUSIC, trending_score=1563.5, total_usage=1100),
        Hashtag(name="ai", category=HashtagCategory.TECHNOLOGY, trending_score=1344.5, total_usage=2000),
        Hashtag(name="spam", trending_score=9999.0, is_banned=True),
    )

    response = await async_client.get("/api/v1/hashtags/trending", params={"limit": 500})
    assert response.status_code == 200
    data = response.json()
    assert data["limit"] == 50
    assert [i["name"] for i in data["items"]] == ["music", "ai"]

    tech = await async_client.get(
        "/api/v1/hashtags/trending", params={"category": "technology"}
    )
    assert [i["name"] for i in tech.json()["items"]] == ["ai"]
    assert tech.json()["category"] == "technology"


@pytest.mark.asyncio
async def test_trending_unknown_category(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/v1/hashtags/trending", params={"category": "cats"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_and_detail(async_client: AsyncClient, session_factory) -> None:
    await _seed(
        session_factory,
        Hashtag(name="music", total_usage=10),
        Hashtag(name="museum", total_usage=3),
    )

    search = await async_client.get("/api/v1/hashtags/search", params={"q": "#mu"})
    assert search.status_code == 200
    assert [s["name"] for s in search.json()["suggestions"]] == ["music", "museum"]

    detail = await async_client.get("/api/v1/hashtags/Music")
    assert detail.status_code == 200
    assert detail.json()["name"] == "music"
    assert detail.json()["total_usage"] == 10


@pytest.mark.asyncio
async def test_detail_not_found_envelope(async_client: AsyncClient) -> None:
    response = await async_client.get(
        "/api/v1/hashtags/ghost", headers={"X-Request-ID": "req-123"}
    )
    assert response.status_code == 404
    body = response.json()
    assert body["error"]["code"] == "not_found"
    assert body["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_moderation_requires_role(async_client: AsyncClient, session_factory) -> None:
    await _seed(session_factory, Hashtag(name="spam"))

    anonymous = await async_client.patch(
        "/api/v1/hashtags/admin/spam", json={"is_banned": True}
    )
    assert anonymous.status_code == 401

    user = await async_client.patch(
        "/api/v1/hashtags/admin/spam", json={"is_banned": True}, headers=_bearer(Role.USER)
    )
    assert user.status_code == 403


@pytest.mark.asyncio
async def test_moderation_token_checks(async_client: AsyncClient, session_factory) -> None:
    await _seed(session_factory, Hashtag(name="spam"), Hashtag(name="art"))
    url = "/api/v1/hashtags/admin/spam"

    # Roles this service does not know about are ignored, not fatal
    mixed = await async_client.patch(
        url, json={"is_featured": True}, headers=_bearer("creator", Role.MODERATOR)
    )
    assert mixed.status_code == 200

    unknown_only = await async_client.patch(
        url, json={"is_featured": False}, headers=_bearer("creator")
    )
    assert unknown_only.status_code == 403

    # Within the clock-skew leeway
    just_expired = await async_client.patch(
        url, json={"is_featured": False}, headers=_bearer(Role.ADMIN, expires_in=timedelta(seconds=-5))
    )
    assert just_expired.status_code == 200

    expired = await async_client.patch(
        "/api/v1/hashtags/admin/art",
        json={"is_featured": True},
        headers=_bearer(Role.ADMIN, expires_in=timedelta(minutes=-5)),
    )
    assert expired.status_code == 401


@pytest.mark.asyncio
async def test_moderator_bans_and_features(async_client: AsyncClient, session_factory) -> None:
    await _seed(
        session_factory,
        Hashtag(name="spam", trending_score=500.0, total_usage=500),
        Hashtag(name="art", trending_score=1.0, total_usage=1),
    )
    headers = _bearer(Role.MODERATOR)

    banned = await async_client.patch(
        "/api/v1/hashtags/admin/spam", json={"is_banned": True}, headers=headers
    )
    assert banned.status_code == 200
    assert banned.json()["is_banned"] is True

    featured = await async_client.patch(
        "/api/v1/hashtags/admin/art",
        json={"is_featured": True, "category": "art"},
        headers=headers,
    )
    assert featured.status_code == 200
    assert featured.json()["category"] == "art"

    trending = await async_client.get("/api/v1/hashtags/trending")
    items = trending.json()["items"]
    assert [i["name"] for i in items] == ["art"]
    assert items[0]["is_featured"] is True

    assert (await async_client.get("/api/v1/hashtags/spam")).status_code == 404


@pytest.mark.asyncio
async def test_moderation_validation(async_client: AsyncClient, session_factory) -> None:
    await _seed(session_factory, Hashtag(name="art"))
    headers = _bearer(Role.ADMIN)

    empty = await async_client.patch("/api/v1/hashtags/admin/art", json={}, headers=headers)
    assert empty.status_code == 422

    missing = await async_client.patch(
        "/api/v1/hashtags/admin/ghost", json={"is_featured": True}, headers=headers
    )
    assert missing.status_code == 404
