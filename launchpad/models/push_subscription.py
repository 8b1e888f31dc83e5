"""Подписки Web Push по кошельку."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field

from .base import TimeStampedModel


class PushSubscription(TimeStampedModel, table=True):
    __tablename__ = "push_subscriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    wallet_address: str = Field(max_length=64, index=True)
    endpoint: str = Field(max_length=1024, unique=True)
    p256dh: str = Field(max_length=128)
    auth: str = Field(max_length=64)


__all__ = ["PushSubscription"]
