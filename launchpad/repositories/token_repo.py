"""Работа с таблицей пулов токенов."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from launchpad.models import Token
from launchpad.models.base import utcnow


async def get_token_by_mint(session: AsyncSession, mint_address: str) -> Optional[Token]:
    # populate_existing: резервы могли измениться условным апдейтом в обход identity map
    stmt = (
        select(Token)
        .where(Token.mint_address == mint_address)
        .execution_options(populate_existing=True)
    )
    result = await session.exec(stmt)
    return result.one_or_none()


async def create_token(
    session: AsyncSession,
    *,
    mint_address: str,
    sol_reserves: int,
    token_reserves: int,
    name: str | None = None,
    symbol: str | None = None,
    creator_wallet: str | None = None,
    is_active: bool = True,
) -> Token:
    token = Token(
        mint_address=mint_address,
        name=name,
        symbol=symbol,
        creator_wallet=creator_wallet,
        sol_reserves=sol_reserves,
        token_reserves=token_reserves,
        is_active=is_active,
    )
    session.add(token)
    await session.commit()
    await session.refresh(token)
    return token


async def compare_and_swap_reserves(
    session: AsyncSession,
    *,
    mint_address: str,
    expected_sol_reserves: int,
    expected_token_reserves: int,
    new_sol_reserves: int,
    new_token_reserves: int,
    tokens_sold_delta: int = 0,
    volume_delta: int = 0,
) -> bool:
    """Атомарно меняет резервы, только если они не изменились с момента чтения.

    Возвращает False, если пул успели обновить конкурентной сделкой.
    """

    stmt = (
        update(Token)
        .where(
            Token.mint_address == mint_address,
            Token.sol_reserves == expected_sol_reserves,
            Token.token_reserves == expected_token_reserves,
            Token.is_active.is_(True),
        )
        .values(
            sol_reserves=new_sol_reserves,
            token_reserves=new_token_reserves,
            tokens_sold=Token.tokens_sold + tokens_sold_delta,
            total_volume=Token.total_volume + volume_delta,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.exec(stmt)  # type: ignore[call-overload]
    swapped = result.rowcount == 1
    await session.commit()
    return swapped


async def set_trading_active(session: AsyncSession, mint_address: str, is_active: bool) -> None:
    token = await get_token_by_mint(session, mint_address)
    if token is None:
        return
    token.is_active = is_active
    token.touch()
    session.add(token)
    await session.commit()


__all__ = [
    "compare_and_swap_reserves",
    "create_token",
    "get_token_by_mint",
    "set_trading_active",
]
