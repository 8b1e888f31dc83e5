"""Бондинг-кривая с постоянным произведением (x * y = k).

Все производные резервы считаются целочисленным делением с округлением вниз:
так произведение резервов не растёт из-за округления и пул нельзя «пересушить».
Чистые функции без I/O, резервы в минимальных единицах (лампорты / base units).
"""

from __future__ import annotations

from dataclasses import dataclass

# Комиссия по умолчанию; фактическое значение приходит из TradingSettings.fee_bps
FEE_BPS = 100
BPS_DIVISOR = 10_000
# Верхняя граница сумм и резервов: колонки BIGINT со знаком
MAX_UNITS = 2**63 - 1


@dataclass(slots=True, frozen=True)
class BondingCurveResult:
    """Результат расчёта сделки по кривой."""

    new_sol_reserves: int
    new_token_reserves: int
    platform_fee: int
    price_impact: float
    tokens_out: int | None = None
    sol_out: int | None = None

    @property
    def output(self) -> int:
        """Сколько получает трейдер (токены при покупке, лампорты при продаже)."""

        return self.tokens_out if self.tokens_out is not None else (self.sol_out or 0)

    def as_dict(self) -> dict[str, int | float | None]:
        return {
            "tokensOut": self.tokens_out,
            "solOut": self.sol_out,
            "platformFee": self.platform_fee,
            "priceImpact": self.price_impact,
            "newSolReserves": self.new_sol_reserves,
            "newTokenReserves": self.new_token_reserves,
        }


def _check_positive(**values: int) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


def _fee(amount: int, fee_bps: int) -> int:
    if not 0 <= fee_bps < BPS_DIVISOR:
        raise ValueError(f"fee_bps out of range: {fee_bps}")
    return amount * fee_bps // BPS_DIVISOR


def spot_price(sol_reserves: int, token_reserves: int) -> float:
    """Цена одного base unit токена в лампортах."""

    if token_reserves <= 0:
        return 0.0
    return sol_reserves / token_reserves


def _price_impact(paid: int, received: int, spot: float) -> float:
    if received <= 0 or spot == 0:
        return 0.0
    execution = paid / received
    return abs((execution - spot) / spot) * 100


def calculate_buy(
    sol_in: int,
    sol_reserves: int,
    token_reserves: int,
    fee_bps: int = FEE_BPS,
) -> BondingCurveResult:
    """Покупка: комиссия снимается со входящего SOL до пересчёта резервов.

    ``tokens_out <= 0`` означает нехватку ликвидности, решение за вызывающим.
    """

    _check_positive(sol_in=sol_in, sol_reserves=sol_reserves, token_reserves=token_reserves)
    platform_fee = _fee(sol_in, fee_bps)
    sol_after_fee = sol_in - platform_fee

    k = sol_reserves * token_reserves
    new_sol_reserves = sol_reserves + sol_after_fee
    new_token_reserves = k // new_sol_reserves
    tokens_out = token_reserves - new_token_reserves

    return BondingCurveResult(
        tokens_out=tokens_out,
        new_sol_reserves=new_sol_reserves,
        new_token_reserves=new_token_reserves,
        platform_fee=platform_fee,
        price_impact=_price_impact(sol_after_fee, tokens_out, spot_price(sol_reserves, token_reserves)),
    )


def calculate_sell(
    token_in: int,
    sol_reserves: int,
    token_reserves: int,
    fee_bps: int = FEE_BPS,
) -> BondingCurveResult:
    """Продажа: комиссия снимается с исходящего SOL."""

    _check_positive(token_in=token_in, sol_reserves=sol_reserves, token_reserves=token_reserves)
    k = sol_reserves * token_reserves
    new_token_reserves = token_reserves + token_in
    new_sol_reserves = k // new_token_reserves
    sol_out_before_fee = sol_reserves - new_sol_reserves

    platform_fee = _fee(sol_out_before_fee, fee_bps)
    sol_out = sol_out_before_fee - platform_fee

    return BondingCurveResult(
        sol_out=sol_out,
        new_sol_reserves=new_sol_reserves,
        new_token_reserves=new_token_reserves,
        platform_fee=platform_fee,
        price_impact=_price_impact(sol_out_before_fee, token_in, spot_price(sol_reserves, token_reserves)),
    )


def quote(
    trade_type: str,
    amount: int,
    sol_reserves: int,
    token_reserves: int,
    fee_bps: int = FEE_BPS,
) -> BondingCurveResult:
    if trade_type == "buy":
        return calculate_buy(amount, sol_reserves, token_reserves, fee_bps)
    if trade_type == "sell":
        return calculate_sell(amount, sol_reserves, token_reserves, fee_bps)
    raise ValueError(f"Unknown trade type: {trade_type!r}")


__all__ = [
    "BPS_DIVISOR",
    "BondingCurveResult",
    "FEE_BPS",
    "MAX_UNITS",
    "calculate_buy",
    "calculate_sell",
    "quote",
    "spot_price",
]
