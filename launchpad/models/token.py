"""Токен и его пул бондинг-кривой."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field

from .base import TimeStampedModel, units_field


class Token(TimeStampedModel, table=True):
    """Пул токена: резервы в минимальных единицах (лампорты / base units).

    Создаётся при запуске токена (вне этого сервиса), меняется только
    TradeLedger одним условным апдейтом на сделку, никогда не удаляется.
    """

    __tablename__ = "tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    mint_address: str = Field(max_length=64, unique=True, index=True)
    name: Optional[str] = Field(default=None, max_length=64)
    symbol: Optional[str] = Field(default=None, max_length=16)
    creator_wallet: Optional[str] = Field(default=None, max_length=64)
    sol_reserves: int = units_field(0)
    token_reserves: int = units_field(0)
    tokens_sold: int = units_field(0)
    total_volume: int = units_field(0)
    is_active: bool = Field(default=True)

    @property
    def constant_product(self) -> int:
        return self.sol_reserves * self.token_reserves


__all__ = ["Token"]
