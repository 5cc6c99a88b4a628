from __future__ import annotations

from collections.abc import Iterable

from ..connections import ConnectionResolver
from ..domain import ChainFamily, CosmosReferenceConfig, TokenConfig
from ..pools import PoolStateReader
from .base import BaseChainPriceFetcher, FetchStage
from .cosmos import CosmosChainPriceFetcher
from .evm import EvmChainPriceFetcher


def build_fetchers(
    tokens: Iterable[TokenConfig],
    resolver: ConnectionResolver,
    reader: PoolStateReader,
    cosmos_reference: CosmosReferenceConfig,
) -> list[BaseChainPriceFetcher]:
    """Create one fetcher per configured token.

    Raises:
        ValueError: If two tokens are configured for the same chain.
    """
    fetchers: list[BaseChainPriceFetcher] = []
    seen = set()
    for token in tokens:
        if token.chain in seen:
            raise ValueError(f"Duplicate token configuration for {token.chain.value}")
        seen.add(token.chain)
        match token.chain.family:
            case ChainFamily.EVM:
                fetchers.append(EvmChainPriceFetcher(token, resolver, reader))
            case ChainFamily.COSMOS:
                fetchers.append(
                    CosmosChainPriceFetcher(token, resolver, reader, cosmos_reference)
                )
    return fetchers


__all__ = [
    "BaseChainPriceFetcher",
    "CosmosChainPriceFetcher",
    "EvmChainPriceFetcher",
    "FetchStage",
    "build_fetchers",
]
