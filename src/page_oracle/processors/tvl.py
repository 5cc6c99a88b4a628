from __future__ import annotations

from decimal import Decimal

from ..domain import ChainQuote, CosmosPoolState, V2PoolState, V3PoolState
from ..errors import PoolReadError
from ..pricing import v3_amounts_from_liquidity
from ..units import to_decimal_units


def _value(
    tracked_amount: Decimal,
    quote_amount: Decimal,
    quote: ChainQuote,
) -> Decimal:
    return tracked_amount * quote.price_usd + quote_amount * quote.quote_usd


def calculate_tvl(quote: ChainQuote) -> Decimal:
    """USD value of both sides of the pool the quote was priced from.

    V3 pools are valued from the active liquidity at the current price,
    which approximates rather than accounts for every position.

    Raises:
        PoolReadError: If the quote lacks the side information it needs.
    """
    state = quote.pool_state
    match state:
        case V2PoolState():
            if quote.tracked_is_token0 is None:
                raise PoolReadError(f"{quote.chain.value} quote has no tracked side")
            amount0 = to_decimal_units(state.reserve0, state.decimals0)
            amount1 = to_decimal_units(state.reserve1, state.decimals1)
        case V3PoolState():
            if quote.tracked_is_token0 is None:
                raise PoolReadError(f"{quote.chain.value} quote has no tracked side")
            amount0, amount1 = v3_amounts_from_liquidity(
                state.liquidity, state.sqrt_price_x96, state.decimals0, state.decimals1
            )
        case CosmosPoolState():
            if (
                quote.tracked_denom is None
                or quote.quote_denom is None
                or quote.tracked_decimals is None
                or quote.quote_decimals is None
            ):
                raise PoolReadError(f"{quote.chain.value} quote has no denoms")
            return _value(
                to_decimal_units(
                    state.amount_of(quote.tracked_denom), quote.tracked_decimals
                ),
                to_decimal_units(
                    state.amount_of(quote.quote_denom), quote.quote_decimals
                ),
                quote,
            )
        case _:
            raise PoolReadError(f"Unsupported pool state: {state!r}")

    if quote.tracked_is_token0:
        return _value(amount0, amount1, quote)
    return _value(amount1, amount0, quote)
