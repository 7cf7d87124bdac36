"""Alembic environment for the hashtag service.

The target database comes from the app settings (DATABASE_URL or .env), so
migrations and the running service always agree on where the table lives.
"""
import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

# parents: [0]=alembic/  [1]=hashtags/  [2]=migrations/  [3]=repo_root/
sys.path.insert(0, str(Path(__file__).resolve().parents[3]))

import app.models  # noqa: E402, F401 (registers Hashtag with Base.metadata)
from app.config import Settings  # noqa: E402
from shared.database.postgres import Base  # noqa: E402

OWNED_TABLES = frozenset({"hashtags"})

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database_url = context.get_x_argument(as_dictionary=True).get("url") or Settings().database_url


def include_object(object, name, type_, reflected, compare_to):
    # Other services may share the database; autogenerate must ignore their tables
    return type_ != "table" or name in OWNED_TABLES


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=Base.metadata,
        include_object=include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=database_url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(database_url, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(_run_on)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
