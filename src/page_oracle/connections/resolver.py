from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

import backoff
import requests
from eth_typing import URI
from web3 import Web3
from web3.exceptions import ProviderConnectionError

from ..constants import COSMOS_LATEST_BLOCK_PATH
from ..domain import ChainFamily, ChainId
from ..errors import NoAvailableEndpoint, PoolReadError, describe_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    requests.exceptions.RequestException,
    ProviderConnectionError,
    TimeoutError,
    ConnectionError,
)


@dataclass(frozen=True)
class EvmConnection:
    """Live JSON-RPC endpoint of an EVM chain."""

    chain: ChainId
    url: str
    w3: Web3
    timeout: float

    async def call(self, address: str, abi: list[dict], fn_name: str, *args: Any) -> Any:
        """Run a read-only contract call in a worker thread, bounded by ``timeout``."""
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=abi
        )
        fn = getattr(contract.functions, fn_name)(*args)
        return await asyncio.wait_for(asyncio.to_thread(fn.call), timeout=self.timeout)

    async def block_number(self) -> int:
        return await asyncio.wait_for(
            asyncio.to_thread(lambda: self.w3.eth.block_number), timeout=self.timeout
        )


@dataclass(frozen=True)
class LcdConnection:
    """Cosmos SDK LCD (REST) endpoint."""

    chain: ChainId
    url: str
    timeout: float

    async def get_json(self, path: str) -> Any:
        """GET ``path`` relative to the endpoint and decode the JSON body.

        Raises:
            requests.HTTPError: On a non-2xx response.
            PoolReadError: If the body is not valid JSON.
        """
        url = f"{self.url}{path}"
        response = await asyncio.wait_for(
            asyncio.to_thread(lambda: requests.get(url, timeout=self.timeout)),
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as exc:
            raise PoolReadError(f"Undecodable response from {url}") from exc

    async def latest_height(self) -> int:
        data = await self.get_json(COSMOS_LATEST_BLOCK_PATH)
        try:
            return int(data["block"]["header"]["height"])
        except (KeyError, TypeError, ValueError) as exc:
            raise PoolReadError(f"Malformed latest block from {self.url}") from exc


Connection = EvmConnection | LcdConnection
Connector = Callable[[ChainId, str], Awaitable[Connection]]


@dataclass(frozen=True)
class EndpointAttempt:
    """Outcome of trying one endpoint URL."""

    url: str
    connection: Connection | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.connection is not None


async def open_evm_connection(chain: ChainId, url: str, *, timeout: float) -> EvmConnection:
    """Open an HTTP provider and prove it is alive with ``eth_blockNumber``."""
    w3 = Web3(Web3.HTTPProvider(URI(url), request_kwargs={"timeout": timeout}))
    connection = EvmConnection(chain=chain, url=url, w3=w3, timeout=timeout)
    height = await connection.block_number()
    logger.debug("%s endpoint %s alive at block %d", chain.value, url, height)
    return connection


async def open_lcd_connection(
    chain: ChainId, url: str, *, timeout: float, liveness_check: bool = True
) -> LcdConnection:
    connection = LcdConnection(chain=chain, url=url, timeout=timeout)
    if liveness_check:
        height = await connection.latest_height()
        logger.debug("%s endpoint %s alive at height %d", chain.value, url, height)
    return connection


class ConnectionResolver:
    """Picks the first live endpoint per chain and remembers it.

    Endpoints are tried in configuration order. The winner is memoized until
    ``invalidate`` is called, and a per-chain lock makes concurrent callers
    share one resolution.
    """

    def __init__(
        self,
        endpoints: Mapping[ChainId, Sequence[str]],
        *,
        timeout: float,
        lcd_liveness_check: bool = True,
        connectors: Mapping[ChainFamily, Connector] | None = None,
    ):
        self._endpoints = {chain: tuple(urls) for chain, urls in endpoints.items()}
        self._timeout = timeout
        self._connectors: dict[ChainFamily, Connector] = {
            ChainFamily.EVM: partial(open_evm_connection, timeout=timeout),
            ChainFamily.COSMOS: partial(
                open_lcd_connection,
                timeout=timeout,
                liveness_check=lcd_liveness_check,
            ),
        }
        if connectors:
            self._connectors.update(connectors)
        self._memo: dict[ChainId, Connection] = {}
        self._locks: dict[ChainId, asyncio.Lock] = {}

    def endpoints(self, chain: ChainId) -> tuple[str, ...]:
        return self._endpoints.get(chain, ())

    def current(self, chain: ChainId) -> Connection | None:
        return self._memo.get(chain)

    async def _attempt(self, chain: ChainId, url: str) -> EndpointAttempt:
        connector = self._connectors[chain.family]
        try:
            connection = await connector(chain, url)
        except Exception as exc:
            logger.warning(
                "Endpoint %s for %s failed: %s", url, chain.value, describe_error(exc)
            )
            return EndpointAttempt(url=url, error=describe_error(exc))
        return EndpointAttempt(url=url, connection=connection)

    async def get_connection(self, chain: ChainId) -> Connection:
        """Return the memoized connection or resolve a new one.

        Raises:
            NoAvailableEndpoint: If every configured endpoint failed.
        """
        cached = self._memo.get(chain)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(chain, asyncio.Lock())
        async with lock:
            cached = self._memo.get(chain)
            if cached is not None:
                return cached

            attempts: list[EndpointAttempt] = []
            for url in self.endpoints(chain):
                attempt = await self._attempt(chain, url)
                attempts.append(attempt)
                if attempt.connection is not None:
                    if len(attempts) > 1:
                        logger.info(
                            "Using fallback endpoint %s for %s", url, chain.value
                        )
                    self._memo = {**self._memo, chain: attempt.connection}
                    return attempt.connection

            raise NoAvailableEndpoint(chain, attempts)

    def invalidate(self, chain: ChainId) -> None:
        if chain in self._memo:
            logger.debug("Dropping memoized endpoint for %s", chain.value)
            self._memo = {k: v for k, v in self._memo.items() if k is not chain}

    def invalidate_all(self) -> None:
        self._memo = {}

    async def run(
        self, chain: ChainId, operation: Callable[[Connection], Awaitable[T]]
    ) -> T:
        """Run ``operation`` against the chain's connection.

        A transport error drops the memoized endpoint and retries once against
        a fresh resolution. Any other error propagates unchanged.
        """

        def _on_backoff(details: Any) -> None:
            logger.warning(
                "Transport error on %s (attempt %d of 2), failing over: %s",
                chain.value,
                details["tries"],
                details.get("exception"),
            )
            self.invalidate(chain)

        def _on_giveup(details: Any) -> None:
            self.invalidate(chain)

        @backoff.on_exception(
            backoff.constant,
            TRANSPORT_ERRORS,
            max_tries=2,
            interval=0,
            jitter=None,
            on_backoff=_on_backoff,
            on_giveup=_on_giveup,
        )
        async def _run_with_failover() -> T:
            connection = await self.get_connection(chain)
            return await operation(connection)

        return await _run_with_failover()
