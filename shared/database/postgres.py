import os
import ssl
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Server-side pool for Postgres; SQLite (scripts, tests) takes the driver defaults
_POOL_OPTIONS: dict[str, Any] = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 3600,
}


def _ssl_connect_args() -> dict[str, Any]:
    """asyncpg ``connect_args`` from DATABASE_SSL / DATABASE_SSL_CERT, or {}."""
    mode = os.environ.get("DATABASE_SSL", "").lower()
    if mode in ("", "disable"):
        return {}
    cert_path = Path(os.environ.get("DATABASE_SSL_CERT", ""))
    if cert_path.name and cert_path.exists():
        return {"ssl": ssl.create_default_context(cafile=str(cert_path))}
    # Encrypted, no cert verification
    return {"ssl": "require"}


def _engine_options(database_url: str, overrides: dict[str, Any]) -> dict[str, Any]:
    if make_url(database_url).get_backend_name() == "sqlite":
        return dict(overrides)
    options: dict[str, Any] = dict(_POOL_OPTIONS)
    connect_args = _ssl_connect_args()
    if connect_args:
        options["connect_args"] = connect_args
    options.update(overrides)
    return options


def get_async_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    return create_async_engine(database_url, **_engine_options(database_url, kwargs))


def get_async_session_factory(
    database_url: str,
    *,
    expire_on_commit: bool = False,
    **engine_kwargs: Any,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_async_engine(database_url, **engine_kwargs),
        class_=AsyncSession,
        expire_on_commit=expire_on_commit,
        autoflush=False,
    )


AsyncSessionFactory = async_sessionmaker[AsyncSession]


async def get_session(
    session_factory: AsyncSessionFactory,
) -> AsyncGenerator[AsyncSession, None]:
    """One session per request: commit on success, roll back on any error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
