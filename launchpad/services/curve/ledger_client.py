"""Клиент кастодиального релея платформы.

Сама подпись и отправка транзакций Solana живут во внешнем сервисе; здесь только
JSON-RPC вызовы «переведи токены / лампорты» с коротким таймаутом и без ретраев.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Any, Protocol

import aiohttp
from loguru import logger

from config.settings import LedgerSettings


class LedgerClientError(RuntimeError):
    """Перевод не подтверждён (HTTP, JSON-RPC ошибка или таймаут)."""


class LedgerClient(Protocol):
    async def transfer_tokens(self, mint: str, recipient: str, amount: int) -> str: ...

    async def transfer_sol(self, recipient: str, lamports: int) -> str: ...

    async def close(self) -> None: ...


class RpcLedgerClient:
    """aiohttp JSON-RPC клиент поверх релея кастодиального кошелька."""

    def __init__(self, settings: LedgerSettings) -> None:
        if settings.rpc_endpoint is None:
            raise LedgerClientError("ledger.rpc_endpoint не задан")
        self._rpc_endpoint = str(settings.rpc_endpoint)
        self._platform_wallet = settings.platform_wallet
        self._timeout = settings.request_timeout
        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)

    async def start(self) -> None:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
            logger.info("RpcLedgerClient готов: RPC {rpc}", rpc=self._rpc_endpoint)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def rpc_call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Выполняет JSON-RPC вызов к релею."""

        await self.start()
        assert self._session is not None
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or {}}
        try:
            async with self._session.post(self._rpc_endpoint, json=payload) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise LedgerClientError(f"RPC {method} завершился с HTTP {resp.status}: {text}")
                data = await resp.json()
        except asyncio.TimeoutError as exc:
            raise LedgerClientError(f"RPC {method}: таймаут {self._timeout}s") from exc
        except aiohttp.ClientError as exc:
            raise LedgerClientError(f"RPC {method}: {exc}") from exc
        if "error" in data:
            raise LedgerClientError(f"RPC ошибка {method}: {data['error']}")
        return data.get("result")

    async def transfer_tokens(self, mint: str, recipient: str, amount: int) -> str:
        """Переводит токены с кошелька платформы покупателю."""

        result = await self.rpc_call(
            "transferTokens",
            {
                "from": self._platform_wallet,
                "mint": mint,
                "to": recipient,
                "amount": str(amount),
            },
        )
        return self._signature(result, "transferTokens")

    async def transfer_sol(self, recipient: str, lamports: int) -> str:
        """Переводит лампорты с кошелька платформы продавцу."""

        result = await self.rpc_call(
            "transferSol",
            {"from": self._platform_wallet, "to": recipient, "lamports": str(lamports)},
        )
        return self._signature(result, "transferSol")

    @staticmethod
    def _signature(result: Any, method: str) -> str:
        signature = result.get("signature") if isinstance(result, dict) else result
        if not isinstance(signature, str) or not signature:
            raise LedgerClientError(f"RPC {method} не вернул подпись транзакции")
        return signature


__all__ = ["LedgerClient", "LedgerClientError", "RpcLedgerClient"]
