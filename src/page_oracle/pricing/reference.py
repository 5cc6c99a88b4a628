from __future__ import annotations

import logging
from decimal import Decimal

from ..connections import ConnectionResolver, LcdConnection
from ..domain import (
    CosmosReferenceConfig,
    ReferencePairConfig,
    V2PoolState,
    V3PoolState,
)
from ..errors import InvalidPoolState, PoolReadError, ReferenceAssetUnavailable
from ..pools import PoolStateReader, token_side
from .engine import cosmos_price_ratio, usd_price, v2_pool_price, v3_pool_price

logger = logging.getLogger(__name__)


class ReferencePriceBootstrapper:
    """Prices the EVM reference asset (ETH) in USD from a stable pair."""

    def __init__(
        self,
        pair: ReferencePairConfig,
        resolver: ConnectionResolver,
        reader: PoolStateReader,
    ):
        self.pair = pair
        self._resolver = resolver
        self._reader = reader
        reader.remember_decimals(
            pair.chain, pair.reference_address, pair.reference_decimals
        )
        reader.remember_decimals(pair.chain, pair.stable_address, pair.stable_decimals)

    async def fetch_reference_price(self) -> Decimal:
        """USD price of the reference asset.

        Raises:
            ReferenceAssetUnavailable: On any failure; the cause is chained.
        """
        pair = self.pair
        try:
            state = await self._resolver.run(
                pair.chain, lambda connection: self._reader.read(connection, pair.pool)
            )
            match state:
                case V2PoolState():
                    ratio = v2_pool_price(
                        state, token_side(pair.reference_address, state)
                    )
                case V3PoolState():
                    ratio = v3_pool_price(
                        state, token_side(pair.reference_address, state)
                    )
                case _:
                    raise PoolReadError(f"Unexpected reference pool state: {state!r}")
            price = usd_price(ratio, pair.stable_usd_price)
            if price <= 0:
                raise InvalidPoolState(f"Non-positive {pair.symbol} price {price}")
        except Exception as exc:
            logger.error(
                "Failed to bootstrap %s/USD from %s: %s",
                pair.symbol,
                pair.chain.value,
                exc,
            )
            raise ReferenceAssetUnavailable(
                f"{pair.symbol}/USD unavailable from {pair.chain.value}: {exc}"
            ) from exc

        logger.info("%s/USD reference price: %s", pair.symbol, price)
        return price


async def fetch_cosmos_quote_price(
    connection: LcdConnection,
    reader: PoolStateReader,
    reference: CosmosReferenceConfig,
) -> Decimal:
    """USD price of the Cosmos quote asset (OSMO) from its stable pool."""
    state = await reader.read_cosmos_pool(connection, reference.pool_id)
    ratio = cosmos_price_ratio(
        state,
        reference.asset_denom,
        reference.asset_decimals,
        reference.stable_denom,
        reference.stable_decimals,
    )
    price = usd_price(ratio, reference.stable_usd_price)
    logger.debug("%s/USD from pool %s: %s", reference.symbol, reference.pool_id, price)
    return price
