"""Async-движок SQLModel и фабрика сессий."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import DatabaseSettings, get_settings
from launchpad import models  # noqa: F401  импортируем модели для регистрации метаданных

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def build_engine(settings: DatabaseSettings) -> AsyncEngine:
    return create_async_engine(settings.dsn, echo=settings.echo, poolclass=NullPool)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _session_maker
    if _session_maker is None:
        _session_maker = build_session_maker(get_engine())
    return _session_maker


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Создаёт таблицы (для dev и тестов; в проде — Alembic миграции)."""

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


__all__ = [
    "build_engine",
    "build_session_maker",
    "get_engine",
    "get_session_maker",
    "init_db",
]
