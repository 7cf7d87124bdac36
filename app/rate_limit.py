"""
Global slowapi rate limiter.

Imported by the hashtag routers for per-endpoint limits. Mounted onto
app.state in main.py so slowapi's exception handler can find it.

Storage: Redis when RATE_LIMIT_STORAGE_URI / REDIS_URL is set, in-memory
otherwise (local dev and tests without Redis).
"""
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

TRENDING_READ_LIMIT = "60/minute"
SEARCH_READ_LIMIT = "120/minute"

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI") or os.getenv("REDIS_URL") or "memory://",
    enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false",
)
