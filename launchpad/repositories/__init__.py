"""Репозитории для работы с БД."""

from .push_repo import (
    delete_subscription,
    delete_subscription_by_endpoint,
    get_subscription_by_endpoint,
    list_subscriptions_for_wallet,
    upsert_subscription,
)
from .token_repo import (
    compare_and_swap_reserves,
    create_token,
    get_token_by_mint,
    set_trading_active,
)
from .trade_repo import (
    get_intent,
    insert_trade_record,
    list_intents_by_status,
    list_trades_for_mint,
    mark_intent,
    open_intent,
)

__all__ = [
    "compare_and_swap_reserves",
    "create_token",
    "delete_subscription",
    "delete_subscription_by_endpoint",
    "get_intent",
    "get_subscription_by_endpoint",
    "get_token_by_mint",
    "insert_trade_record",
    "list_intents_by_status",
    "list_subscriptions_for_wallet",
    "list_trades_for_mint",
    "mark_intent",
    "open_intent",
    "set_trading_active",
    "upsert_subscription",
]
