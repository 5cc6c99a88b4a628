from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from decimal import Decimal
from enum import Enum

from ..connections import ConnectionResolver
from ..domain import ChainId, ChainQuote, TokenConfig
from ..errors import describe_error
from ..pools import PoolStateReader

logger = logging.getLogger(__name__)


class FetchStage(str, Enum):
    IDLE = "idle"
    RESOLVING_ENDPOINT = "resolving_endpoint"
    READING_POOL = "reading_pool"
    COMPUTING = "computing"
    DONE = "done"
    FAILED = "failed"


class BaseChainPriceFetcher(ABC):
    """Abstract base class for per-chain price fetchers.

    A fetcher walks IDLE -> RESOLVING_ENDPOINT -> READING_POOL -> COMPUTING
    and ends in DONE or FAILED. Errors propagate unchanged; retries only
    happen through the resolver's endpoint failover.
    """

    def __init__(
        self,
        token: TokenConfig,
        resolver: ConnectionResolver,
        reader: PoolStateReader,
    ):
        self.token = token
        self.resolver = resolver
        self.reader = reader
        self.stage = FetchStage.IDLE

    @property
    @abstractmethod
    def fetcher_name(self) -> str:
        """Return the name of this fetcher."""
        ...

    @property
    def chain(self) -> ChainId:
        return self.token.chain

    def _enter(self, stage: FetchStage) -> None:
        logger.debug(
            "[%s] %s -> %s", self.chain.value, self.stage.value, stage.value
        )
        self.stage = stage

    async def fetch(self, reference: Awaitable[Decimal]) -> ChainQuote:
        """Fetch the tracked token's USD price on this chain.

        Args:
            reference: Shared awaitable resolving to the EVM reference asset's
                USD price. Fetchers that do not need it never await it.
        """
        self.stage = FetchStage.IDLE
        try:
            quote = await self._fetch(reference)
        except Exception as exc:
            logger.warning(
                "[%s] %s failed while %s: %s",
                self.chain.value,
                self.fetcher_name,
                self.stage.value,
                describe_error(exc),
            )
            self._enter(FetchStage.FAILED)
            raise
        self._enter(FetchStage.DONE)
        logger.info(
            "[%s] %s price: $%s", self.chain.value, self.token.symbol, quote.price_usd
        )
        return quote

    @abstractmethod
    async def _fetch(self, reference: Awaitable[Decimal]) -> ChainQuote: ...
