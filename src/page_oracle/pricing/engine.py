"""Pure AMM price math.

All functions work on raw integer pool amounts plus token decimals and
return ``Decimal`` values computed in a 60-digit context. No I/O happens here.
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from ..constants import Q96, Q192
from ..domain import CosmosPoolState, V2PoolState, V3PoolState
from ..errors import DivisionByZero
from ..units import decimal_shift, to_decimal_units

PRECISION = 60


def v2_price_ratio(
    reserve_a: int, decimals_a: int, reserve_b: int, decimals_b: int
) -> Decimal:
    """Price of token A denominated in token B for a constant-product pair."""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        amount_a = to_decimal_units(reserve_a, decimals_a)
        amount_b = to_decimal_units(reserve_b, decimals_b)
        if amount_a == 0:
            raise DivisionByZero("Reserve of the priced token is zero")
        return amount_b / amount_a


def v2_pool_price(state: V2PoolState, tracked_is_token0: bool) -> Decimal:
    if tracked_is_token0:
        return v2_price_ratio(
            state.reserve0, state.decimals0, state.reserve1, state.decimals1
        )
    return v2_price_ratio(
        state.reserve1, state.decimals1, state.reserve0, state.decimals0
    )


def v3_token0_price(sqrt_price_x96: int, decimals0: int, decimals1: int) -> Decimal:
    """Price of token0 in token1 units from a Q64.96 square-root price.

    The square is taken on integers so no precision is lost before the
    division by 2**192.
    """
    if sqrt_price_x96 <= 0:
        raise DivisionByZero("sqrtPriceX96 is zero")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        raw = Decimal(sqrt_price_x96 * sqrt_price_x96) / Decimal(Q192)
        return raw * decimal_shift(decimals0, decimals1)


def v3_pool_price(state: V3PoolState, tracked_is_token0: bool) -> Decimal:
    price0 = v3_token0_price(state.sqrt_price_x96, state.decimals0, state.decimals1)
    if tracked_is_token0:
        return price0
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return Decimal(1) / price0


def sqrt_price_x96_from_price(price: Decimal, decimals0: int, decimals1: int) -> int:
    """Inverse of :func:`v3_token0_price` (token0 price in token1 units)."""
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        raw = price / decimal_shift(decimals0, decimals1)
        return int((raw.sqrt() * Decimal(Q96)).to_integral_value())


def v3_amounts_from_liquidity(
    liquidity: int, sqrt_price_x96: int, decimals0: int, decimals1: int
) -> tuple[Decimal, Decimal]:
    """Approximate token amounts backing the active liquidity.

    amount0 = L * 2**96 / sqrtP and amount1 = L * sqrtP / 2**96, normalized
    by decimals. Treats all liquidity as sitting at the current price; this
    is not a full-range position accounting.
    """
    if sqrt_price_x96 <= 0:
        raise DivisionByZero("sqrtPriceX96 is zero")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        amount0 = Decimal(liquidity * Q96) / Decimal(sqrt_price_x96)
        amount1 = Decimal(liquidity * sqrt_price_x96) / Decimal(Q96)
        return amount0.scaleb(-decimals0), amount1.scaleb(-decimals1)


def cosmos_price_ratio(
    state: CosmosPoolState,
    tracked_denom: str,
    tracked_decimals: int,
    quote_denom: str,
    quote_decimals: int,
) -> Decimal:
    """Tracked asset priced in the quote asset from pool balances.

    Pool weights are not applied; the pools in use are equally weighted.
    """
    return v2_price_ratio(
        state.amount_of(tracked_denom),
        tracked_decimals,
        state.amount_of(quote_denom),
        quote_decimals,
    )


def usd_price(ratio: Decimal, reference_usd: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return ratio * reference_usd
