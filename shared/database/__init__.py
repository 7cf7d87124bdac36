from shared.database.postgres import (
    AsyncSessionFactory,
    Base,
    get_async_session_factory,
    get_session,
)
from shared.database.redis_client import get_redis_client

__all__ = [
    "AsyncSessionFactory",
    "Base",
    "get_async_session_factory",
    "get_session",
    "get_redis_client",
]
