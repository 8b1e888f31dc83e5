"""История сделок и журнал намерений."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from .base import TimeStampedModel, units_field, utcnow


class TradeType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class TradeIntentStatus(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    TRANSFERRED = "transferred"
    COMPLETED = "completed"
    FAILED = "failed"
    RECONCILE = "reconcile"


class TradeHistory(SQLModel, table=True):
    """Неизменяемая запись о завершённой сделке."""

    __tablename__ = "trade_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    mint_address: str = Field(max_length=64, index=True)
    wallet_address: str = Field(max_length=64, index=True)
    trade_type: str = Field(max_length=8)
    amount: int = units_field()
    price_lamports: int = units_field()
    signature: Optional[str] = Field(default=None, max_length=128)
    platform_signature: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


class TradeIntent(TimeStampedModel, table=True):
    """Двухфазный журнал: намерение -> коммит резервов -> перевод -> история.

    Хранит резервы до и после сделки, чтобы откатить пул при неудачном
    переводе или передать запись в сверку.
    """

    __tablename__ = "trade_intents"

    id: Optional[int] = Field(default=None, primary_key=True)
    mint_address: str = Field(max_length=64, index=True)
    wallet_address: str = Field(max_length=64)
    trade_type: str = Field(max_length=8)
    amount: int = units_field()
    status: str = Field(default=TradeIntentStatus.PENDING.value, max_length=16, index=True)
    prior_sol_reserves: Optional[int] = units_field(None, nullable=True)
    prior_token_reserves: Optional[int] = units_field(None, nullable=True)
    new_sol_reserves: Optional[int] = units_field(None, nullable=True)
    new_token_reserves: Optional[int] = units_field(None, nullable=True)
    platform_signature: Optional[str] = Field(default=None, max_length=128)
    error: Optional[str] = Field(default=None, max_length=512)


__all__ = ["TradeHistory", "TradeIntent", "TradeIntentStatus", "TradeType"]
