from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from decimal import Decimal

from ..connections import Connection, ConnectionResolver, LcdConnection
from ..domain import (
    ChainQuote,
    CosmosPoolConfig,
    CosmosPoolState,
    CosmosReferenceConfig,
    TokenConfig,
)
from ..errors import InvalidPoolState
from ..pools import PoolStateReader
from ..pricing import cosmos_price_ratio, fetch_cosmos_quote_price, usd_price
from .base import BaseChainPriceFetcher, FetchStage


class CosmosChainPriceFetcher(BaseChainPriceFetcher):
    """Prices the token from a GAMM pool quoted in OSMO.

    OSMO is priced from its own stable pool on the same chain, so the EVM
    reference price is never awaited.
    """

    def __init__(
        self,
        token: TokenConfig,
        resolver: ConnectionResolver,
        reader: PoolStateReader,
        quote_reference: CosmosReferenceConfig,
    ):
        if not isinstance(token.pool, CosmosPoolConfig):
            raise ValueError(f"{token.chain.value} token needs a Cosmos pool config")
        super().__init__(token, resolver, reader)
        self.quote_reference = quote_reference

    @property
    def fetcher_name(self) -> str:
        return "cosmos-gamm"

    async def _read(
        self, connection: Connection
    ) -> tuple[CosmosPoolState, Decimal]:
        if not isinstance(connection, LcdConnection):
            raise TypeError(f"Cosmos fetch needs an LCD connection, got {connection!r}")
        # A failed read cancels its sibling before the resolver fails over.
        try:
            async with asyncio.TaskGroup() as tg:
                state_task = tg.create_task(
                    self.reader.read(connection, self.token.pool)
                )
                quote_task = tg.create_task(
                    fetch_cosmos_quote_price(
                        connection, self.reader, self.quote_reference
                    )
                )
        except ExceptionGroup as group:
            # The resolver retries on the bare transport error type.
            raise group.exceptions[0] from None
        return state_task.result(), quote_task.result()

    async def _fetch(self, reference: Awaitable[Decimal]) -> ChainQuote:
        self._enter(FetchStage.RESOLVING_ENDPOINT)
        await self.resolver.get_connection(self.chain)

        self._enter(FetchStage.READING_POOL)
        state, quote_usd = await self.resolver.run(self.chain, self._read)

        self._enter(FetchStage.COMPUTING)
        ratio = cosmos_price_ratio(
            state,
            self.token.address,
            self.token.decimals,
            self.quote_reference.asset_denom,
            self.quote_reference.asset_decimals,
        )
        price = usd_price(ratio, quote_usd)
        if price <= 0:
            raise InvalidPoolState(f"Non-positive price {price} on {self.chain.value}")

        return ChainQuote(
            chain=self.chain,
            price_usd=price,
            quote_usd=quote_usd,
            pool_state=state,
            tracked_denom=self.token.address,
            quote_denom=self.quote_reference.asset_denom,
            tracked_decimals=self.token.decimals,
            quote_decimals=self.quote_reference.asset_decimals,
        )
