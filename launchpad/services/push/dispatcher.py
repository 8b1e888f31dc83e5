"""Рассылка Web Push уведомлений по подпискам кошелька.

Каждая подписка получает ровно одну попытку: без ретраев и backoff. Ошибка одной
подписки не роняет рассылку, мёртвые endpoint'ы (404/410) удаляются из БД.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import aiohttp
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import PushSettings
from launchpad.errors import PushNotConfigured
from launchpad.models import PushSubscription
from launchpad.repositories import (
    delete_subscription,
    delete_subscription_by_endpoint,
    list_subscriptions_for_wallet,
    upsert_subscription,
)
from . import vapid, webpush
from .webpush import PushMessage

GONE_STATUSES = frozenset({404, 410})


@dataclass(slots=True)
class DispatchResult:
    success: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"success": self.success, "failed": self.failed}


@dataclass(slots=True)
class PushResponse:
    status: int
    text: str = ""


@dataclass(slots=True, frozen=True)
class _Target:
    """Поля подписки на момент начала рассылки."""

    id: int | None
    endpoint: str
    p256dh: str
    auth: str


class PushTransport(Protocol):
    async def post(self, url: str, body: bytes, headers: dict[str, str]) -> PushResponse: ...


class AiohttpPushTransport:
    """POST на push-сервис через aiohttp с ограниченным таймаутом."""

    def __init__(self, timeout: float) -> None:
        self._timeout = timeout

    async def post(self, url: str, body: bytes, headers: dict[str, str]) -> PushResponse:
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, data=body, headers=headers) as resp:
                text = "" if 200 <= resp.status < 300 else await resp.text()
                return PushResponse(status=resp.status, text=text)


class PushDispatcher:
    """Шифрует и отправляет уведомление во все подписки кошелька."""

    def __init__(self, settings: PushSettings, transport: PushTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport or AiohttpPushTransport(settings.request_timeout)

    @property
    def public_key(self) -> str | None:
        return self._settings.vapid_public_key

    @property
    def is_configured(self) -> bool:
        return self._settings.is_configured

    async def register_subscription(
        self,
        session: AsyncSession,
        *,
        wallet_address: str,
        endpoint: str,
        p256dh: str,
        auth: str,
    ) -> PushSubscription:
        subscription = await upsert_subscription(
            session,
            wallet_address=wallet_address,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
        )
        logger.info(
            "Push-подписка кошелька {wallet} сохранена: {endpoint}",
            wallet=wallet_address,
            endpoint=endpoint[:60],
        )
        return subscription

    async def remove_subscription(self, session: AsyncSession, endpoint: str) -> bool:
        return await delete_subscription_by_endpoint(session, endpoint)

    async def list_subscriptions(self, session: AsyncSession, wallet_address: str) -> list[PushSubscription]:
        return list(await list_subscriptions_for_wallet(session, wallet_address))

    async def send_to_wallet(
        self,
        session: AsyncSession,
        wallet_address: str,
        message: PushMessage,
        subscriptions: list[PushSubscription] | None = None,
    ) -> DispatchResult:
        if not self._settings.is_configured:
            logger.error("VAPID ключи не настроены")
            raise PushNotConfigured()
        if subscriptions is None:
            subscriptions = await self.list_subscriptions(session, wallet_address)

        payload = message.to_json()
        targets = [_Target(sub.id, sub.endpoint, sub.p256dh, sub.auth) for sub in subscriptions]
        result = DispatchResult()
        for target in targets:
            if await self._send_one(session, target, payload):
                result.success += 1
            else:
                result.failed += 1

        logger.info(
            "Push для {wallet}: {ok} доставлено, {failed} с ошибкой",
            wallet=wallet_address,
            ok=result.success,
            failed=result.failed,
        )
        return result

    async def _send_one(self, session: AsyncSession, target: _Target, payload: str) -> bool:
        endpoint = target.endpoint
        try:
            body, headers = self._build_request(target, payload)
            logger.debug("Отправка push на {endpoint}", endpoint=endpoint[:60])
            response = await self._transport.post(endpoint, body, headers)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Push на {endpoint} не отправлен: {error}", endpoint=endpoint[:60], error=exc)
            return False

        if 200 <= response.status < 300:
            return True
        if response.status in GONE_STATUSES:
            logger.info("Подписка #{sub} истекла ({status}), удаляем", sub=target.id, status=response.status)
            try:
                await delete_subscription(session, target.id)
            except Exception as exc:  # noqa: BLE001
                await session.rollback()
                logger.error("Не удалось удалить подписку #{sub}: {error}", sub=target.id, error=exc)
            return False
        logger.warning(
            "Push-сервис ответил {status}: {text}",
            status=response.status,
            text=response.text[:200],
        )
        return False

    def _build_request(self, target: _Target, payload: str) -> tuple[bytes, dict[str, str]]:
        private_key = self._settings.vapid_private_key
        public_key = self._settings.vapid_public_key
        assert private_key is not None and public_key is not None
        token = vapid.sign(target.endpoint, self._settings.subject, private_key.get_secret_value())
        body = webpush.encrypt(
            payload,
            target.p256dh,
            target.auth,
            record_size=self._settings.record_size,
        )
        headers = {
            "Content-Type": "application/octet-stream",
            "Content-Encoding": "aes128gcm",
            "TTL": str(self._settings.ttl_seconds),
            "Authorization": vapid.authorization_header(token, public_key),
        }
        return body, headers


__all__ = [
    "AiohttpPushTransport",
    "DispatchResult",
    "PushDispatcher",
    "PushResponse",
    "PushTransport",
]
