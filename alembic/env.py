"""Alembic environment for the crop plan schema (async SQLAlchemy + asyncpg)."""

import asyncio
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from app.config import get_settings

# app.models, not app.models.base: importing the registry puts crop_plans on the metadata.
from app.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_url() -> str:
    """``sqlalchemy.url`` from alembic.ini wins over the app settings."""
    return config.get_main_option("sqlalchemy.url") or get_settings().database_url


def _configure_and_run(**options: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure_and_run(connection=connection)


async def _run_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    _configure_and_run(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
else:
    asyncio.run(_run_online())
