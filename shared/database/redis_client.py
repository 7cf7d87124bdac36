from typing import Any

import redis.asyncio as redis


def get_redis_client(
    redis_url: str,
    *,
    socket_timeout: float | None = None,
    **kwargs: Any,
) -> redis.Redis:
    """Lazily-connecting client; no round-trip happens until first use.

    ``socket_timeout`` bounds every command and the connect. A timeout
    surfaces as ``redis.exceptions.TimeoutError`` (a ``RedisError``), which
    the trending cache treats as a miss.
    """
    if socket_timeout is not None:
        kwargs.setdefault("socket_timeout", socket_timeout)
        kwargs.setdefault("socket_connect_timeout", socket_timeout)
    return redis.from_url(redis_url, decode_responses=True, **kwargs)
