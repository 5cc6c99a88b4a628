"""Cached multi-chain price oracle."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from .connections import ConnectionResolver
from .constants import DEFAULT_TOKENS, ETH_USDC_REFERENCE_PAIR, OSMO_USDC_REFERENCE
from .domain import (
    CacheEntry,
    ChainId,
    ChainQuote,
    CosmosReferenceConfig,
    PriceSnapshot,
    ReferencePairConfig,
    TokenConfig,
)
from .errors import AggregateError, ChainUnavailable, OracleError, describe_error
from .fetchers import BaseChainPriceFetcher, build_fetchers
from .pools import PoolStateReader
from .pricing import ReferencePriceBootstrapper
from .processors import aggregation_weights, calculate_tvl, weighted_average_price
from .settings import OracleSettings

logger = logging.getLogger(__name__)


@dataclass
class _InflightRefresh:
    task: asyncio.Task[PriceSnapshot]
    waiters: int = 0


class PriceOracle:
    """Serves a periodically refreshed, consistent price snapshot.

    A fresh snapshot is returned without I/O. Once it expires the next read
    starts a refresh and every concurrent reader awaits that same refresh.
    The refresh is cancelled only when its last reader goes away.
    """

    def __init__(
        self,
        settings: OracleSettings,
        *,
        tokens: Iterable[TokenConfig] = DEFAULT_TOKENS,
        reference_pair: ReferencePairConfig = ETH_USDC_REFERENCE_PAIR,
        cosmos_reference: CosmosReferenceConfig = OSMO_USDC_REFERENCE,
        resolver: ConnectionResolver | None = None,
        reader: PoolStateReader | None = None,
        fetchers: Sequence[BaseChainPriceFetcher] | None = None,
        bootstrapper: ReferencePriceBootstrapper | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self._clock = clock
        self.resolver = resolver or ConnectionResolver(
            settings.endpoint_pools(),
            timeout=settings.request_timeout_seconds,
            lcd_liveness_check=settings.lcd_liveness_check,
        )
        self.reader = reader or PoolStateReader()
        self.bootstrapper = bootstrapper or ReferencePriceBootstrapper(
            reference_pair, self.resolver, self.reader
        )
        self.fetchers = (
            list(fetchers)
            if fetchers is not None
            else build_fetchers(tokens, self.resolver, self.reader, cosmos_reference)
        )
        self._entry: CacheEntry | None = None
        self._last_timestamp: float | None = None
        self._inflight: _InflightRefresh | None = None

    @property
    def cached_snapshot(self) -> PriceSnapshot | None:
        """Last snapshot regardless of age, or None before the first refresh."""
        return self._entry.snapshot if self._entry else None

    def invalidate(self) -> None:
        """Drop the cached snapshot so the next read refreshes.

        The last timestamp is kept so the next snapshot is never older.
        """
        self._entry = None

    async def get_snapshot(self) -> PriceSnapshot:
        """Return the current snapshot, refreshing it when expired.

        Raises:
            AggregateError: If the refresh produced no chain at all.
            NoEligiblePrices: If every priced chain is excluded from the
                aggregate price.
        """
        entry = self._entry
        if entry is not None and not entry.is_expired(self._clock()):
            return entry.snapshot

        inflight = self._inflight
        if inflight is None or inflight.task.done():
            inflight = _InflightRefresh(task=asyncio.create_task(self._refresh()))
            inflight.task.add_done_callback(self._clear_inflight)
            self._inflight = inflight
        else:
            logger.debug("Joining in-flight refresh")

        inflight.waiters += 1
        try:
            return await asyncio.shield(inflight.task)
        finally:
            inflight.waiters -= 1
            if inflight.waiters == 0 and not inflight.task.done():
                logger.info("All readers left; cancelling refresh")
                inflight.task.cancel()

    async def get_price(self, chain: ChainId) -> Decimal:
        snapshot = await self.get_snapshot()
        price = snapshot.price(chain)
        if price is None:
            raise ChainUnavailable(chain, snapshot.failures.get(chain))
        return price

    async def get_tvl(self, chain: ChainId) -> Decimal:
        """TVL of ``chain`` from the current snapshot.

        Raises:
            ChainUnavailable: If the chain has no TVL in the snapshot.
        """
        snapshot = await self.get_snapshot()
        tvl = snapshot.tvl.get(chain)
        if tvl is None:
            raise ChainUnavailable(
                chain, snapshot.failures.get(chain, "TVL not available")
            )
        return tvl

    def _clear_inflight(self, task: asyncio.Task[PriceSnapshot]) -> None:
        if self._inflight is not None and self._inflight.task is task:
            self._inflight = None

    async def _fetch_chain(
        self, fetcher: BaseChainPriceFetcher, reference: asyncio.Task[Decimal]
    ) -> ChainQuote:
        timeout_s = self.settings.chain_timeout_seconds
        deadline = asyncio.timeout(timeout_s)
        try:
            async with deadline:
                return await fetcher.fetch(reference)
        except TimeoutError as exc:
            if not deadline.expired():
                raise
            raise TimeoutError(
                f"{fetcher.chain.value} fetch exceeded {timeout_s}s"
            ) from exc

    async def _refresh(self) -> PriceSnapshot:
        logger.info("Refreshing prices for %d chains", len(self.fetchers))
        reference_task = asyncio.create_task(
            self.bootstrapper.fetch_reference_price()
        )
        try:
            results = await asyncio.gather(
                *(self._fetch_chain(f, reference_task) for f in self.fetchers),
                return_exceptions=True,
            )
        finally:
            if not reference_task.done():
                reference_task.cancel()

        reference_price: Decimal | None = None
        if reference_task.done() and not reference_task.cancelled():
            if reference_task.exception() is None:
                reference_price = reference_task.result()

        quotes: dict[ChainId, ChainQuote] = {}
        errors: dict[ChainId, BaseException] = {}
        for fetcher, result in zip(self.fetchers, results):
            match result:
                case ChainQuote() as quote:
                    quotes[fetcher.chain] = quote
                case Exception() as e:
                    logger.error("Chain '%s' failed: %s", fetcher.chain.value, e)
                    errors[fetcher.chain] = e
                case BaseException() as e:
                    raise e

        if not quotes:
            raise AggregateError(errors)

        tvl: dict[ChainId, Decimal] = {}
        for chain, quote in quotes.items():
            try:
                tvl[chain] = calculate_tvl(quote)
            except OracleError as exc:
                logger.warning("TVL unavailable for %s: %s", chain.value, exc)

        prices = {chain: quote.price_usd for chain, quote in quotes.items()}
        settings = self.settings
        excluded = frozenset(settings.excluded_chains)
        weighted = weighted_average_price(
            prices,
            tvl,
            min_liquidity=settings.min_liquidity_usd,
            exclude=excluded,
            manual_weights=settings.manual_weights,
        )
        weights = aggregation_weights(
            prices,
            tvl,
            min_liquidity=settings.min_liquidity_usd,
            exclude=excluded,
            manual_weights=settings.manual_weights,
        )

        now = self._clock()
        timestamp = now
        if self._last_timestamp is not None:
            timestamp = max(now, self._last_timestamp)
        snapshot = PriceSnapshot(
            prices=prices,
            weighted_price=weighted,
            timestamp=timestamp,
            reference_price_usd=reference_price,
            tvl=tvl,
            failures={chain: describe_error(exc) for chain, exc in errors.items()},
            weights=weights,
        )
        self._entry = CacheEntry(
            snapshot=snapshot, fetched_at=now, ttl=self.settings.cache_ttl_seconds
        )
        self._last_timestamp = timestamp
        logger.info(
            "Refresh complete: %d/%d chains, weighted price $%s",
            len(quotes),
            len(self.fetchers),
            weighted,
        )
        return snapshot
