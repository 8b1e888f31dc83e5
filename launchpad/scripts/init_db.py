"""Создаёт таблицы Launchpad в БД из настроек (dev / первый запуск без Alembic)."""

from __future__ import annotations

import asyncio

from loguru import logger
from sqlmodel import SQLModel

from config.settings import get_settings
from launchpad.db import get_engine, init_db
from launchpad.logging_config import setup_logging


async def _run() -> None:
    engine = get_engine()
    try:
        await init_db(engine)
    finally:
        await engine.dispose()
    tables = ", ".join(table.name for table in SQLModel.metadata.sorted_tables)
    logger.info("Таблицы готовы ({tables}) в {dsn}", tables=tables, dsn=get_settings().database.dsn)


def main() -> None:
    setup_logging()
    asyncio.run(_run())


if __name__ == "__main__":
    main()
