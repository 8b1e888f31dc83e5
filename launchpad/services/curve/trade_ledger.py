"""Исполнение сделок по бондинг-кривой.

Один проход на запрос: Validated -> Computed -> Persisted -> (Transferred)
-> Recorded -> Completed, либо Rejected на любой ошибке валидации/расчёта.
Пул обновляется единственным условным апдейтом (compare-and-swap по прежним
резервам), поэтому конкурентные сделки по одному минту не затирают друг друга.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import TradingSettings
from launchpad.errors import (
    ConcurrentUpdate,
    InsufficientLiquidity,
    InvalidParameters,
    LaunchpadError,
    PersistenceFailure,
    TokenNotFound,
    TradingDisabled,
    TransferFailed,
)
from launchpad.models import Token, TradeIntent, TradeIntentStatus, TradeType
from launchpad.repositories import (
    compare_and_swap_reserves,
    get_intent,
    get_token_by_mint,
    insert_trade_record,
    mark_intent,
    open_intent,
)
from .ledger_client import LedgerClient, LedgerClientError
from .reserve_math import MAX_UNITS, BondingCurveResult, quote


@dataclass(slots=True)
class TradeRequest:
    """Входящая заявка: amount в лампортах для buy и в base units для sell."""

    mint_address: str
    wallet_address: str
    trade_type: str
    amount: int
    signature: str | None = None


@dataclass(slots=True)
class TradeOutcome:
    trade_type: str
    result: BondingCurveResult
    signature: str | None = None
    platform_transfer_signature: str | None = None

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": True, "tradeType": self.trade_type}
        data.update(self.result.as_dict())
        data["signature"] = self.signature
        data["platformTransferSignature"] = self.platform_transfer_signature
        return {key: value for key, value in data.items() if value is not None}


@dataclass(slots=True)
class _PoolDelta:
    tokens_sold: int
    volume: int


class TradeLedger:
    """Оркестратор одной сделки: расчёт, коммит резервов, перевод, история."""

    def __init__(
        self,
        settings: TradingSettings,
        ledger_client: LedgerClient | None = None,
        transfer_timeout: float = 15.0,
    ) -> None:
        self._fee_bps = settings.fee_bps
        self._max_attempts = settings.max_commit_attempts
        self._ledger_client = ledger_client
        self._transfer_timeout = transfer_timeout

    @property
    def fee_bps(self) -> int:
        return self._fee_bps

    async def quote(
        self,
        session: AsyncSession,
        mint_address: str,
        trade_type: str,
        amount: int,
    ) -> BondingCurveResult:
        """Расчёт без записи в БД (предпросмотр сделки)."""

        request = TradeRequest(
            mint_address=mint_address,
            wallet_address="-",
            trade_type=trade_type,
            amount=amount,
        )
        self._validate(request)
        token = await self._load_pool(session, mint_address)
        return self._compute(request, token)

    async def execute_trade(self, session: AsyncSession, request: TradeRequest) -> TradeOutcome:
        self._validate(request)
        logger.info(
            "Сделка {kind}: mint={mint} wallet={wallet} amount={amount}",
            kind=request.trade_type,
            mint=request.mint_address,
            wallet=request.wallet_address,
            amount=request.amount,
        )

        intent: TradeIntent | None = None
        intent_id: int | None = None
        try:
            token, result = None, None
            for attempt in range(1, self._max_attempts + 1):
                token = await self._load_pool(session, request.mint_address)
                result = self._compute(request, token)
                if intent is None:
                    intent = await open_intent(
                        session,
                        mint_address=request.mint_address,
                        wallet_address=request.wallet_address,
                        trade_type=request.trade_type,
                        amount=request.amount,
                    )
                    intent_id = intent.id
                if await self._commit(session, request, token, result):
                    break
                logger.warning(
                    "Пул {mint} изменён конкурентной сделкой, попытка {attempt}/{total}",
                    mint=request.mint_address,
                    attempt=attempt,
                    total=self._max_attempts,
                )
            else:
                raise ConcurrentUpdate()
        except LaunchpadError as exc:
            if intent_id is not None:
                await self._close_intent(session, intent_id, TradeIntentStatus.FAILED, exc.message)
            raise

        assert token is not None and result is not None and intent is not None
        intent = await mark_intent(
            session,
            intent,
            TradeIntentStatus.COMMITTED,
            prior_sol_reserves=token.sol_reserves,
            prior_token_reserves=token.token_reserves,
            new_sol_reserves=result.new_sol_reserves,
            new_token_reserves=result.new_token_reserves,
        )

        platform_signature = None
        if self._ledger_client is not None:
            platform_signature = await self._transfer(session, request, token, result, intent)
            intent = await mark_intent(
                session,
                intent,
                TradeIntentStatus.TRANSFERRED,
                platform_signature=platform_signature,
            )

        await self._record(session, request, result, platform_signature, intent)
        outcome = TradeOutcome(
            trade_type=request.trade_type,
            result=result,
            signature=request.signature,
            platform_transfer_signature=platform_signature,
        )
        logger.info(
            "Сделка завершена: mint={mint} out={out} fee={fee} impact={impact:.4f}%",
            mint=request.mint_address,
            out=result.output,
            fee=result.platform_fee,
            impact=result.price_impact,
        )
        return outcome

    @staticmethod
    def _validate(request: TradeRequest) -> None:
        amount = request.amount
        if (
            not request.mint_address
            or not request.wallet_address
            or request.trade_type not in (TradeType.BUY.value, TradeType.SELL.value)
            or isinstance(amount, bool)
            or not isinstance(amount, int)
            or amount <= 0
            or amount > MAX_UNITS
        ):
            raise InvalidParameters()

    @staticmethod
    async def _load_pool(session: AsyncSession, mint_address: str) -> Token:
        try:
            token = await get_token_by_mint(session, mint_address)
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Не удалось прочитать пул {mint}: {error}", mint=mint_address, error=exc)
            raise PersistenceFailure("Failed to load token") from exc
        if token is None:
            raise TokenNotFound()
        if not token.is_active:
            raise TradingDisabled()
        return token

    def _compute(self, request: TradeRequest, token: Token) -> BondingCurveResult:
        try:
            result = quote(
                request.trade_type,
                request.amount,
                token.sol_reserves,
                token.token_reserves,
                self._fee_bps,
            )
        except ValueError as exc:
            # пустой пул (нулевые резервы) — торговать нечем
            raise InsufficientLiquidity() from exc
        if result.output <= 0 or result.new_sol_reserves <= 0 or result.new_token_reserves <= 0:
            raise InsufficientLiquidity()
        if result.new_sol_reserves > MAX_UNITS or result.new_token_reserves > MAX_UNITS:
            # резерв не влезет в BIGINT
            raise InvalidParameters()
        return result

    @staticmethod
    def _delta(request: TradeRequest, result: BondingCurveResult) -> _PoolDelta:
        if request.trade_type == TradeType.BUY.value:
            return _PoolDelta(tokens_sold=result.tokens_out or 0, volume=request.amount)
        return _PoolDelta(tokens_sold=-request.amount, volume=result.sol_out or 0)

    async def _commit(
        self,
        session: AsyncSession,
        request: TradeRequest,
        token: Token,
        result: BondingCurveResult,
    ) -> bool:
        delta = self._delta(request, result)
        try:
            return await compare_and_swap_reserves(
                session,
                mint_address=request.mint_address,
                expected_sol_reserves=token.sol_reserves,
                expected_token_reserves=token.token_reserves,
                new_sol_reserves=result.new_sol_reserves,
                new_token_reserves=result.new_token_reserves,
                tokens_sold_delta=delta.tokens_sold,
                volume_delta=delta.volume,
            )
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Не удалось обновить резервы {mint}: {error}", mint=request.mint_address, error=exc)
            raise PersistenceFailure() from exc

    async def _transfer(
        self,
        session: AsyncSession,
        request: TradeRequest,
        token: Token,
        result: BondingCurveResult,
        intent: TradeIntent,
    ) -> str:
        assert self._ledger_client is not None
        intent_id = intent.id
        assert intent_id is not None
        if request.trade_type == TradeType.BUY.value:
            call = self._ledger_client.transfer_tokens(
                request.mint_address, request.wallet_address, result.tokens_out or 0
            )
        else:
            call = self._ledger_client.transfer_sol(request.wallet_address, result.sol_out or 0)
        try:
            return await asyncio.wait_for(call, timeout=self._transfer_timeout)
        except (LedgerClientError, asyncio.TimeoutError) as exc:
            reason = str(exc) or "transfer timed out"
            logger.error(
                "Перевод платформы не подтверждён для {mint}: {error}",
                mint=request.mint_address,
                error=reason,
            )
            await self._compensate(session, request, token, result, intent_id, reason)
            raise TransferFailed() from exc

    async def _compensate(
        self,
        session: AsyncSession,
        request: TradeRequest,
        token: Token,
        result: BondingCurveResult,
        intent_id: int,
        reason: str,
    ) -> None:
        """Откатывает резервы к значениям до сделки, если пул с тех пор не менялся."""

        delta = self._delta(request, result)
        try:
            reverted = await compare_and_swap_reserves(
                session,
                mint_address=request.mint_address,
                expected_sol_reserves=result.new_sol_reserves,
                expected_token_reserves=result.new_token_reserves,
                new_sol_reserves=token.sol_reserves,
                new_token_reserves=token.token_reserves,
                tokens_sold_delta=-delta.tokens_sold,
                volume_delta=-delta.volume,
            )
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Откат резервов {mint} упал: {error}", mint=request.mint_address, error=exc)
            reverted = False
        if reverted:
            logger.warning("Резервы {mint} откачены после неудачного перевода", mint=request.mint_address)
            await self._close_intent(session, intent_id, TradeIntentStatus.FAILED, reason)
            return
        logger.error(
            "Резервы {mint} не удалось откатить, намерение #{intent} передано в сверку",
            mint=request.mint_address,
            intent=intent_id,
        )
        await self._close_intent(session, intent_id, TradeIntentStatus.RECONCILE, reason)

    async def _record(
        self,
        session: AsyncSession,
        request: TradeRequest,
        result: BondingCurveResult,
        platform_signature: str | None,
        intent: TradeIntent,
    ) -> None:
        """История — best-effort журнал: ошибка логируется, сделка остаётся в силе."""

        if request.trade_type == TradeType.BUY.value:
            amount, price_lamports = result.tokens_out or 0, request.amount
        else:
            amount, price_lamports = request.amount, result.sol_out or 0
        try:
            await insert_trade_record(
                session,
                mint_address=request.mint_address,
                wallet_address=request.wallet_address,
                trade_type=request.trade_type,
                amount=amount,
                price_lamports=price_lamports,
                signature=request.signature,
                platform_signature=platform_signature,
            )
            await mark_intent(session, intent, TradeIntentStatus.COMPLETED)
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Не удалось записать сделку в историю: {error}", error=exc)

    @staticmethod
    async def _close_intent(
        session: AsyncSession,
        intent_id: int,
        status: TradeIntentStatus,
        reason: str,
    ) -> None:
        """Закрывает намерение по id: объект в сессии мог истечь после rollback."""

        try:
            intent = await get_intent(session, intent_id)
            if intent is None:
                logger.error("Намерение #{intent} не найдено", intent=intent_id)
                return
            await mark_intent(session, intent, status, error=reason[:512])
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.error("Не удалось обновить намерение #{intent}: {error}", intent=intent_id, error=exc)


__all__ = ["TradeLedger", "TradeOutcome", "TradeRequest"]
