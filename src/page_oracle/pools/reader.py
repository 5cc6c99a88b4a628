from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..abi import load_erc20_abi, load_uniswap_v2_pair_abi, load_uniswap_v3_pool_abi
from ..connections import Connection, EvmConnection, LcdConnection
from ..constants import OSMOSIS_POOL_PATH
from ..domain import (
    ChainId,
    CosmosPoolAsset,
    CosmosPoolConfig,
    CosmosPoolState,
    EvmPoolState,
    PoolConfig,
    PoolState,
    TokenConfig,
    V2PoolConfig,
    V2PoolState,
    V3PoolConfig,
    V3PoolState,
)
from ..errors import InvalidPoolState, PoolReadError

logger = logging.getLogger(__name__)

CONTRACT_ERRORS = (BadFunctionCallOutput, ContractLogicError)


class PoolStateReader:
    """Reads raw pool state from EVM contracts and Cosmos LCD endpoints.

    Token decimals are memoized per ``(chain, address)`` since they never
    change; everything else is read fresh on every call.
    """

    def __init__(self) -> None:
        self._v2_abi = load_uniswap_v2_pair_abi()
        self._v3_abi = load_uniswap_v3_pool_abi()
        self._erc20_abi = load_erc20_abi()
        self._decimals: dict[tuple[ChainId, str], int] = {}

    def remember_decimals(self, chain: ChainId, address: str, decimals: int) -> None:
        self._decimals[(chain, address.lower())] = decimals

    async def read(self, connection: Connection, pool: PoolConfig) -> PoolState:
        match pool:
            case V2PoolConfig(address=address):
                return await self._read_v2(self._require_evm(connection), address)
            case V3PoolConfig(address=address):
                return await self._read_v3(self._require_evm(connection), address)
            case CosmosPoolConfig(pool_id=pool_id):
                return await self.read_cosmos_pool(
                    self._require_lcd(connection), pool_id
                )
        raise TypeError(f"Unsupported pool configuration: {pool!r}")

    @staticmethod
    def _require_evm(connection: Connection) -> EvmConnection:
        if not isinstance(connection, EvmConnection):
            raise TypeError(f"EVM pool needs an EVM connection, got {connection!r}")
        return connection

    @staticmethod
    def _require_lcd(connection: Connection) -> LcdConnection:
        if not isinstance(connection, LcdConnection):
            raise TypeError(f"Cosmos pool needs an LCD connection, got {connection!r}")
        return connection

    async def _call(
        self, connection: EvmConnection, address: str, abi: list[dict], fn_name: str
    ) -> Any:
        try:
            return await connection.call(address, abi, fn_name)
        except CONTRACT_ERRORS as exc:
            raise PoolReadError(
                f"{fn_name}() failed on {address} ({connection.chain.value}): {exc}"
            ) from exc

    async def token_decimals(self, connection: EvmConnection, token: str) -> int:
        key = (connection.chain, token.lower())
        cached = self._decimals.get(key)
        if cached is not None:
            return cached
        decimals = await self._call(connection, token, self._erc20_abi, "decimals")
        if not isinstance(decimals, int) or decimals < 0:
            raise PoolReadError(f"Invalid decimals() for {token}: {decimals!r}")
        self._decimals[key] = decimals
        return decimals

    async def _read_tokens(
        self, connection: EvmConnection, address: str, abi: list[dict]
    ) -> tuple[str, str, int, int]:
        token0, token1 = await asyncio.gather(
            self._call(connection, address, abi, "token0"),
            self._call(connection, address, abi, "token1"),
        )
        decimals0, decimals1 = await asyncio.gather(
            self.token_decimals(connection, token0),
            self.token_decimals(connection, token1),
        )
        return str(token0), str(token1), decimals0, decimals1

    async def _read_v2(self, connection: EvmConnection, address: str) -> V2PoolState:
        reserves, (token0, token1, decimals0, decimals1) = await asyncio.gather(
            self._call(connection, address, self._v2_abi, "getReserves"),
            self._read_tokens(connection, address, self._v2_abi),
        )
        try:
            reserve0, reserve1 = int(reserves[0]), int(reserves[1])
        except (TypeError, ValueError, IndexError) as exc:
            raise PoolReadError(
                f"Malformed getReserves() from {address}: {reserves!r}"
            ) from exc

        if reserve0 <= 0 or reserve1 <= 0:
            raise InvalidPoolState(
                f"V2 pool {address} on {connection.chain.value} has empty reserves "
                f"({reserve0}, {reserve1})"
            )

        logger.debug(
            "V2 %s reserves: %d / %d (decimals %d / %d)",
            address,
            reserve0,
            reserve1,
            decimals0,
            decimals1,
        )
        return V2PoolState(
            address=address,
            reserve0=reserve0,
            reserve1=reserve1,
            token0=token0,
            token1=token1,
            decimals0=decimals0,
            decimals1=decimals1,
        )

    async def _read_v3(self, connection: EvmConnection, address: str) -> V3PoolState:
        slot0, liquidity, (token0, token1, decimals0, decimals1) = await asyncio.gather(
            self._call(connection, address, self._v3_abi, "slot0"),
            self._call(connection, address, self._v3_abi, "liquidity"),
            self._read_tokens(connection, address, self._v3_abi),
        )
        try:
            sqrt_price_x96, tick = int(slot0[0]), int(slot0[1])
            liquidity = int(liquidity)
        except (TypeError, ValueError, IndexError) as exc:
            raise PoolReadError(f"Malformed slot0() from {address}: {slot0!r}") from exc

        if sqrt_price_x96 <= 0:
            raise InvalidPoolState(
                f"V3 pool {address} on {connection.chain.value} has zero sqrt price"
            )
        if liquidity <= 0:
            raise InvalidPoolState(
                f"V3 pool {address} on {connection.chain.value} has no active liquidity"
            )

        logger.debug(
            "V3 %s sqrtPriceX96=%d tick=%d liquidity=%d",
            address,
            sqrt_price_x96,
            tick,
            liquidity,
        )
        return V3PoolState(
            address=address,
            sqrt_price_x96=sqrt_price_x96,
            liquidity=liquidity,
            tick=tick,
            token0=token0,
            token1=token1,
            decimals0=decimals0,
            decimals1=decimals1,
        )

    async def read_cosmos_pool(
        self, connection: LcdConnection, pool_id: str
    ) -> CosmosPoolState:
        """Read a GAMM pool's asset list over LCD.

        Raises:
            PoolReadError: If the pool is unknown (404) or the payload is malformed.
            InvalidPoolState: If the pool holds no assets.
        """
        try:
            data = await connection.get_json(OSMOSIS_POOL_PATH.format(pool_id=pool_id))
        except requests.HTTPError as exc:
            if exc.response is not None and exc.response.status_code == 404:
                raise PoolReadError(
                    f"Pool {pool_id} not found on {connection.chain.value}"
                ) from exc
            raise

        try:
            raw_assets = data["pool"]["pool_assets"]
            assets = tuple(
                CosmosPoolAsset(
                    denom=str(item["token"]["denom"]),
                    amount=int(item["token"]["amount"]),
                    weight=item.get("weight"),
                )
                for item in raw_assets
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PoolReadError(f"Malformed pool {pool_id} payload: {exc}") from exc

        if not assets:
            raise InvalidPoolState(f"Pool {pool_id} has no assets")

        logger.debug(
            "Cosmos pool %s assets: %s",
            pool_id,
            ", ".join(f"{a.amount} {a.denom}" for a in assets),
        )
        return CosmosPoolState(pool_id=pool_id, assets=assets)


def token_side(address: str, state: EvmPoolState) -> bool:
    """True when ``address`` is the pool's token0, False when it is token1."""
    if address.lower() == state.token0.lower():
        return True
    if address.lower() == state.token1.lower():
        return False
    raise PoolReadError(
        f"{address} is not part of pool {state.address} "
        f"({state.token0}, {state.token1})"
    )


def tracked_is_token0(token: TokenConfig, state: EvmPoolState) -> bool:
    """Which side of the pool holds the tracked token.

    Derived from the pool's token addresses when the config leaves it open,
    otherwise cross-checked against them.

    Raises:
        PoolReadError: If the token is on neither side or contradicts the config.
    """
    derived = token_side(token.address, state)
    if token.token_is_token0 is not None and token.token_is_token0 != derived:
        raise PoolReadError(
            f"{token.symbol} configured as token{'0' if token.token_is_token0 else '1'} "
            f"but pool {state.address} holds it as token{'0' if derived else '1'}"
        )
    return derived
