"""SQLModel сущности Launchpad."""

from .push_subscription import PushSubscription  # noqa: F401
from .token import Token  # noqa: F401
from .trade import TradeHistory, TradeIntent, TradeIntentStatus, TradeType  # noqa: F401

__all__ = [
    "PushSubscription",
    "Token",
    "TradeHistory",
    "TradeIntent",
    "TradeIntentStatus",
    "TradeType",
]
