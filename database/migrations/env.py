"""Alembic environment для Launchpad: миграции идут через тот же async-движок, что и API."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlmodel import SQLModel

from config.settings import get_settings
from launchpad.db import build_engine

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

database = get_settings().database
target_metadata = SQLModel.metadata


def _configure(**kwargs) -> None:
    # SQLite не умеет ALTER COLUMN, поэтому batch-режим
    context.configure(
        target_metadata=target_metadata,
        render_as_batch=database.dsn.startswith("sqlite"),
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=database.dsn, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine(database)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_sync)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
