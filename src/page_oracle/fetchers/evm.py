from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from decimal import Decimal

from ..connections import ConnectionResolver
from ..domain import ChainQuote, TokenConfig, V2PoolState, V3PoolState
from ..errors import InvalidPoolState, PoolReadError, ReferenceAssetUnavailable
from ..pools import PoolStateReader, tracked_is_token0
from ..pricing import usd_price, v2_pool_price, v3_pool_price
from .base import BaseChainPriceFetcher, FetchStage


class EvmChainPriceFetcher(BaseChainPriceFetcher):
    """Prices the token from a V2 pair or V3 pool quoted in the reference asset."""

    def __init__(
        self,
        token: TokenConfig,
        resolver: ConnectionResolver,
        reader: PoolStateReader,
    ):
        super().__init__(token, resolver, reader)
        reader.remember_decimals(token.chain, token.address, token.decimals)

    @property
    def fetcher_name(self) -> str:
        return f"evm-{self.token.pool_type.value}"

    async def _fetch(self, reference: Awaitable[Decimal]) -> ChainQuote:
        self._enter(FetchStage.RESOLVING_ENDPOINT)
        await self.resolver.get_connection(self.chain)

        self._enter(FetchStage.READING_POOL)
        state = await self.resolver.run(
            self.chain, lambda connection: self.reader.read(connection, self.token.pool)
        )
        if not isinstance(state, V2PoolState | V3PoolState):
            raise PoolReadError(f"Unexpected pool state for EVM chain: {state!r}")
        is_token0 = tracked_is_token0(self.token, state)

        self._enter(FetchStage.COMPUTING)
        try:
            reference_usd = await asyncio.shield(reference)
        except ReferenceAssetUnavailable:
            raise
        except Exception as exc:
            raise ReferenceAssetUnavailable(
                f"Reference price unavailable for {self.chain.value}: {exc}"
            ) from exc

        match state:
            case V2PoolState():
                ratio = v2_pool_price(state, is_token0)
                quote_decimals = state.decimals1 if is_token0 else state.decimals0
            case V3PoolState():
                ratio = v3_pool_price(state, is_token0)
                quote_decimals = state.decimals1 if is_token0 else state.decimals0

        price = usd_price(ratio, reference_usd)
        if price <= 0:
            raise InvalidPoolState(f"Non-positive price {price} on {self.chain.value}")

        return ChainQuote(
            chain=self.chain,
            price_usd=price,
            quote_usd=reference_usd,
            pool_state=state,
            tracked_is_token0=is_token0,
            tracked_decimals=self.token.decimals,
            quote_decimals=quote_decimals,
        )
