from functools import lru_cache

from fastapi import Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.database import get_session_factory


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_redis(request: Request) -> Redis | None:
    """Redis client created in the lifespan; None when the app runs without one."""
    return getattr(request.app.state, "redis", None)


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()
