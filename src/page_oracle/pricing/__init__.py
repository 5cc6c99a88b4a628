from .engine import (
    cosmos_price_ratio,
    sqrt_price_x96_from_price,
    usd_price,
    v2_pool_price,
    v2_price_ratio,
    v3_amounts_from_liquidity,
    v3_pool_price,
    v3_token0_price,
)
from .reference import ReferencePriceBootstrapper, fetch_cosmos_quote_price

__all__ = [
    "ReferencePriceBootstrapper",
    "cosmos_price_ratio",
    "fetch_cosmos_quote_price",
    "sqrt_price_x96_from_price",
    "usd_price",
    "v2_pool_price",
    "v2_price_ratio",
    "v3_amounts_from_liquidity",
    "v3_pool_price",
    "v3_token0_price",
]
