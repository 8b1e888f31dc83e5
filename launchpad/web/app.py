"""FastAPI backend: исполнение сделок по кривой и отправка Web Push."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from launchpad.context import AppContext, get_context
from launchpad.errors import InvalidParameters, LaunchpadError, PushNotConfigured
from launchpad.repositories import list_trades_for_mint
from launchpad.services.curve.trade_ledger import TradeRequest
from launchpad.services.push.webpush import PushMessage
from launchpad.utils.encoding import b64url_decode

EXECUTE_TRADE_PATH = "/functions/v1/execute-trade"
SEND_PUSH_PATH = "/functions/v1/send-push-notification"

CORS_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]


class TradeBody(BaseModel):
    mintAddress: str | None = None
    walletAddress: str | None = None
    tradeType: str | None = None
    amount: int | float | None = None
    signature: str | None = None


class PushSendBody(BaseModel):
    walletAddress: str | None = None
    title: str | None = None
    body: str | None = None
    url: str | None = None
    tokenMint: str | None = None


class SubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class SubscribeBody(BaseModel):
    walletAddress: str = Field(..., min_length=1)
    endpoint: str = Field(..., min_length=1)
    keys: SubscriptionKeys


class UnsubscribeBody(BaseModel):
    endpoint: str


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _as_lamports(amount: int | float | None) -> int:
    """JSON number -> целое в минимальных единицах (дробные суммы отклоняем)."""

    if isinstance(amount, float):
        if not amount.is_integer():
            raise InvalidParameters()
        amount = int(amount)
    if amount is None or amount <= 0:
        raise InvalidParameters()
    return amount


def create_app(context: AppContext | None = None) -> FastAPI:
    ctx = context or get_context()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Launchpad API стартует в окружении {env}", env=ctx.settings.environment)
        yield
        await ctx.close()
        logger.info("Launchpad API корректно остановлен")

    app = FastAPI(title=ctx.settings.api.title, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ctx.settings.api.cors_origins,
        allow_methods=["*"],
        allow_headers=CORS_HEADERS,
    )

    async def get_db_session() -> AsyncIterator[AsyncSession]:
        async with ctx.session_maker() as session:
            yield session

    @app.exception_handler(LaunchpadError)
    async def launchpad_error_handler(request: Request, exc: LaunchpadError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("{path}: {error}", path=request.url.path, error=exc.message)
        return _error(exc.message, exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        if request.url.path == EXECUTE_TRADE_PATH:
            return _error(InvalidParameters.message, status.HTTP_400_BAD_REQUEST)
        if request.url.path == SEND_PUSH_PATH:
            return _error("Missing required fields", status.HTTP_400_BAD_REQUEST)
        return _error("Invalid request", status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Необработанная ошибка {path}: {error}", path=request.url.path, error=exc)
        return _error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    @app.post(EXECUTE_TRADE_PATH)
    async def execute_trade(
        payload: TradeBody,
        session: AsyncSession = Depends(get_db_session),
    ) -> JSONResponse:
        request = TradeRequest(
            mint_address=payload.mintAddress or "",
            wallet_address=payload.walletAddress or "",
            trade_type=payload.tradeType or "",
            amount=_as_lamports(payload.amount),
            signature=payload.signature,
        )
        outcome = await ctx.trade_ledger.execute_trade(session, request)
        return JSONResponse(outcome.as_dict())

    @app.post(SEND_PUSH_PATH)
    async def send_push_notification(
        payload: PushSendBody,
        session: AsyncSession = Depends(get_db_session),
    ) -> JSONResponse:
        if not payload.walletAddress or not payload.title or not payload.body:
            return _error("Missing required fields", status.HTTP_400_BAD_REQUEST)
        dispatcher = ctx.push_dispatcher
        if not dispatcher.is_configured:
            raise PushNotConfigured()
        try:
            subscriptions = await dispatcher.list_subscriptions(session, payload.walletAddress)
        except SQLAlchemyError as exc:
            logger.error("Не удалось прочитать подписки: {error}", error=exc)
            return _error("Failed to load subscriptions", status.HTTP_500_INTERNAL_SERVER_ERROR)
        if not subscriptions:
            logger.info("Нет push-подписок для кошелька {wallet}", wallet=payload.walletAddress)
            return JSONResponse({"message": "No subscriptions found"})
        message = PushMessage(
            title=payload.title,
            body=payload.body,
            url=payload.url,
            token_mint=payload.tokenMint,
        )
        result = await dispatcher.send_to_wallet(
            session, payload.walletAddress, message, subscriptions=subscriptions
        )
        return JSONResponse(result.as_dict())

    @app.get("/api/tokens/{mint_address}/quote")
    async def quote_trade(
        mint_address: str,
        trade_type: str = Query(..., alias="tradeType"),
        amount: int = Query(..., gt=0),
        session: AsyncSession = Depends(get_db_session),
    ) -> JSONResponse:
        result = await ctx.trade_ledger.quote(session, mint_address, trade_type, amount)
        return JSONResponse({"tradeType": trade_type, "feeBps": ctx.trade_ledger.fee_bps, **result.as_dict()})

    @app.get("/api/tokens/{mint_address}/trades")
    async def recent_trades(
        mint_address: str,
        limit: int = Query(50, ge=1, le=500),
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        trades = await list_trades_for_mint(session, mint_address, limit=limit)
        return {
            "trades": [
                {
                    "walletAddress": trade.wallet_address,
                    "tradeType": trade.trade_type,
                    "amount": trade.amount,
                    "priceLamports": trade.price_lamports,
                    "signature": trade.signature,
                    "createdAt": trade.created_at.isoformat(),
                }
                for trade in trades
            ]
        }

    @app.post("/api/push/subscriptions", status_code=status.HTTP_201_CREATED)
    async def subscribe(
        payload: SubscribeBody,
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        try:
            p256dh_len = len(b64url_decode(payload.keys.p256dh))
            auth_len = len(b64url_decode(payload.keys.auth))
        except ValueError:
            p256dh_len = auth_len = 0
        if p256dh_len != 65 or auth_len != 16:
            return _error("Invalid subscription keys", status.HTTP_400_BAD_REQUEST)
        subscription = await ctx.push_dispatcher.register_subscription(
            session,
            wallet_address=payload.walletAddress,
            endpoint=payload.endpoint,
            p256dh=payload.keys.p256dh,
            auth=payload.keys.auth,
        )
        return {"status": "ok", "id": subscription.id}

    @app.delete("/api/push/subscriptions")
    async def unsubscribe(
        payload: UnsubscribeBody,
        session: AsyncSession = Depends(get_db_session),
    ) -> dict:
        removed = await ctx.push_dispatcher.remove_subscription(session, payload.endpoint)
        return {"removed": removed}

    @app.get("/api/push/vapid-public-key")
    async def vapid_public_key() -> dict:
        if not ctx.push_dispatcher.is_configured:
            raise PushNotConfigured()
        return {"publicKey": ctx.push_dispatcher.public_key}

    @app.get("/api/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "service": "launchpad-api",
            "transfers_enabled": ctx.ledger_client is not None,
            "push_configured": ctx.push_dispatcher.is_configured,
        }

    return app


__all__ = ["create_app"]
