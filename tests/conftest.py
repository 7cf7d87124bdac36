import os
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

# Before app imports: the limiter reads these at import time
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401 - register with Base
from app.config import Settings
from app.database import get_db
from app.dependencies import get_db_session_factory, get_redis, get_settings
from app.main import create_app
from shared.database.postgres import Base

# Postgres when TEST_DATABASE_URL is set, a throwaway SQLite file otherwise
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'hashtags.db'}"
    engine = create_async_engine(url, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    yield factory
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        ingest_mode="sync",
        ingest_retry_backoff_seconds=0,
    )


@pytest_asyncio.fixture
async def async_client(
    session_factory: async_sessionmaker[AsyncSession],
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    test_app = create_app()

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    test_app.dependency_overrides[get_db] = _get_db
    test_app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    test_app.dependency_overrides[get_redis] = lambda: None
    test_app.dependency_overrides[get_settings] = lambda: test_settings

    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
