"""Сборка сервисов Launchpad из настроек процесса."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config.settings import AppSettings, get_settings
from .db import get_session_maker
from .services.curve.ledger_client import LedgerClient, RpcLedgerClient
from .services.curve.trade_ledger import TradeLedger
from .services.push.dispatcher import PushDispatcher, PushTransport


@dataclass(slots=True)
class AppContext:
    settings: AppSettings
    session_maker: async_sessionmaker[AsyncSession]
    trade_ledger: TradeLedger
    push_dispatcher: PushDispatcher
    ledger_client: LedgerClient | None = None

    async def close(self) -> None:
        if self.ledger_client is not None:
            await self.ledger_client.close()


def build_context(
    settings: AppSettings,
    session_maker: async_sessionmaker[AsyncSession],
    *,
    ledger_client: LedgerClient | None = None,
    push_transport: PushTransport | None = None,
) -> AppContext:
    if ledger_client is None and settings.ledger.transfers_enabled:
        ledger_client = RpcLedgerClient(settings.ledger)
    if ledger_client is None:
        logger.info("Переводы платформы отключены: сделки меняют только резервы пула")
    trade_ledger = TradeLedger(
        settings.trading,
        ledger_client=ledger_client,
        transfer_timeout=settings.ledger.request_timeout,
    )
    push_dispatcher = PushDispatcher(settings.push, transport=push_transport)
    if not settings.push.is_configured:
        logger.warning("VAPID ключи не заданы, отправка push недоступна")
    return AppContext(
        settings=settings,
        session_maker=session_maker,
        trade_ledger=trade_ledger,
        push_dispatcher=push_dispatcher,
        ledger_client=ledger_client,
    )


# Ленивый синглтон процесса.
_context: AppContext | None = None


def get_context() -> AppContext:
    global _context
    if _context is None:
        _context = build_context(get_settings(), get_session_maker())
    return _context


__all__ = ["AppContext", "build_context", "get_context"]
