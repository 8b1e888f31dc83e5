"""История сделок и журнал намерений."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from launchpad.models import TradeHistory, TradeIntent, TradeIntentStatus


async def insert_trade_record(
    session: AsyncSession,
    *,
    mint_address: str,
    wallet_address: str,
    trade_type: str,
    amount: int,
    price_lamports: int,
    signature: str | None = None,
    platform_signature: str | None = None,
) -> TradeHistory:
    record = TradeHistory(
        mint_address=mint_address,
        wallet_address=wallet_address,
        trade_type=trade_type,
        amount=amount,
        price_lamports=price_lamports,
        signature=signature,
        platform_signature=platform_signature,
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def list_trades_for_mint(
    session: AsyncSession,
    mint_address: str,
    limit: int = 50,
) -> Sequence[TradeHistory]:
    stmt = (
        select(TradeHistory)
        .where(TradeHistory.mint_address == mint_address)
        .order_by(TradeHistory.id.desc())  # type: ignore[union-attr]
        .limit(limit)
    )
    result = await session.exec(stmt)
    return result.all()


async def open_intent(
    session: AsyncSession,
    *,
    mint_address: str,
    wallet_address: str,
    trade_type: str,
    amount: int,
) -> TradeIntent:
    intent = TradeIntent(
        mint_address=mint_address,
        wallet_address=wallet_address,
        trade_type=trade_type,
        amount=amount,
        status=TradeIntentStatus.PENDING.value,
    )
    session.add(intent)
    await session.commit()
    await session.refresh(intent)
    return intent


async def mark_intent(
    session: AsyncSession,
    intent: TradeIntent,
    status: TradeIntentStatus,
    **fields: object,
) -> TradeIntent:
    intent.status = status.value
    for name, value in fields.items():
        setattr(intent, name, value)
    intent.touch()
    session.add(intent)
    await session.commit()
    await session.refresh(intent)
    return intent


async def get_intent(session: AsyncSession, intent_id: int) -> TradeIntent | None:
    # после rollback объект в identity map просрочен, перечитываем из БД
    stmt = (
        select(TradeIntent)
        .where(TradeIntent.id == intent_id)
        .execution_options(populate_existing=True)
    )
    result = await session.exec(stmt)
    return result.one_or_none()


async def list_intents_by_status(
    session: AsyncSession,
    status: TradeIntentStatus,
) -> list[TradeIntent]:
    stmt = select(TradeIntent).where(TradeIntent.status == status.value)
    result = await session.exec(stmt)
    return list(result.all())


__all__ = [
    "get_intent",
    "insert_trade_record",
    "list_intents_by_status",
    "list_trades_for_mint",
    "mark_intent",
    "open_intent",
]
