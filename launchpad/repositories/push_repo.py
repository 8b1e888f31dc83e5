"""Функции для работы с таблицей push-подписок."""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from launchpad.models import PushSubscription


async def list_subscriptions_for_wallet(
    session: AsyncSession,
    wallet_address: str,
) -> Sequence[PushSubscription]:
    stmt = select(PushSubscription).where(PushSubscription.wallet_address == wallet_address)
    result = await session.exec(stmt)
    return result.all()


async def get_subscription_by_endpoint(
    session: AsyncSession,
    endpoint: str,
) -> Optional[PushSubscription]:
    stmt = select(PushSubscription).where(PushSubscription.endpoint == endpoint)
    result = await session.exec(stmt)
    return result.one_or_none()


async def upsert_subscription(
    session: AsyncSession,
    *,
    wallet_address: str,
    endpoint: str,
    p256dh: str,
    auth: str,
) -> PushSubscription:
    subscription = await get_subscription_by_endpoint(session, endpoint)
    if subscription is None:
        subscription = PushSubscription(
            wallet_address=wallet_address,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
        )
    else:
        subscription.wallet_address = wallet_address
        subscription.p256dh = p256dh
        subscription.auth = auth
        subscription.touch()
    session.add(subscription)
    await session.commit()
    await session.refresh(subscription)
    return subscription


async def delete_subscription(session: AsyncSession, subscription_id: int) -> None:
    stmt = delete(PushSubscription).where(PushSubscription.id == subscription_id)
    await session.exec(stmt)  # type: ignore[call-overload]
    await session.commit()


async def delete_subscription_by_endpoint(session: AsyncSession, endpoint: str) -> bool:
    stmt = delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
    result = await session.exec(stmt)  # type: ignore[call-overload]
    deleted = bool(result.rowcount)
    await session.commit()
    return deleted


__all__ = [
    "delete_subscription",
    "delete_subscription_by_endpoint",
    "get_subscription_by_endpoint",
    "list_subscriptions_for_wallet",
    "upsert_subscription",
]
