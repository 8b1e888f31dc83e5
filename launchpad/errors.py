"""Таксономия ошибок Launchpad.

Каждое исключение несёт HTTP-статус и человекочитаемое сообщение, которое
web-слой отдаёт клиенту как ``{"error": message}``.
"""

from __future__ import annotations


class LaunchpadError(Exception):
    """Базовое исключение сервиса."""

    status_code: int = 500
    message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InvalidParameters(LaunchpadError):
    status_code = 400
    message = "Invalid trade parameters"


class TokenNotFound(LaunchpadError):
    status_code = 404
    message = "Token not found"


class StateConflict(LaunchpadError):
    """Пул в состоянии, при котором сделка невозможна."""

    status_code = 400


class TradingDisabled(StateConflict):
    message = "Token trading is disabled"


class InsufficientLiquidity(StateConflict):
    message = "Insufficient liquidity for this trade"


class ConcurrentUpdate(StateConflict):
    status_code = 409
    message = "Pool state changed, please retry the trade"


class TransferFailed(LaunchpadError):
    message = "Platform transfer failed"


class PersistenceFailure(LaunchpadError):
    message = "Failed to update reserves"


class PushNotConfigured(LaunchpadError):
    message = "Push notifications not configured"


__all__ = [
    "ConcurrentUpdate",
    "InsufficientLiquidity",
    "InvalidParameters",
    "LaunchpadError",
    "PersistenceFailure",
    "PushNotConfigured",
    "StateConflict",
    "TokenNotFound",
    "TradingDisabled",
    "TransferFailed",
]
