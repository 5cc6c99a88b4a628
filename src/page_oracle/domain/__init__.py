"""Domain models for the oracle."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from enum import Enum
from types import MappingProxyType
from typing import Any

from ..errors import PoolReadError


class ChainFamily(str, Enum):
    EVM = "evm"
    COSMOS = "cosmos"


class ChainId(str, Enum):
    ETHEREUM = "ethereum"
    OPTIMISM = "optimism"
    BASE = "base"
    OSMOSIS = "osmosis"

    @property
    def family(self) -> ChainFamily:
        if self is ChainId.OSMOSIS:
            return ChainFamily.COSMOS
        return ChainFamily.EVM


class PoolType(str, Enum):
    V2 = "v2"
    V3 = "v3"
    COSMOS_AMM = "cosmos-amm"


@dataclass(frozen=True)
class V2PoolConfig:
    """Constant-product pair contract."""

    address: str

    @property
    def pool_type(self) -> PoolType:
        return PoolType.V2


@dataclass(frozen=True)
class V3PoolConfig:
    """Concentrated-liquidity pool contract."""

    address: str

    @property
    def pool_type(self) -> PoolType:
        return PoolType.V3


@dataclass(frozen=True)
class CosmosPoolConfig:
    """GAMM pool on a Cosmos SDK chain, addressed by numeric id."""

    pool_id: str

    @property
    def pool_type(self) -> PoolType:
        return PoolType.COSMOS_AMM


PoolConfig = V2PoolConfig | V3PoolConfig | CosmosPoolConfig
EvmPoolConfig = V2PoolConfig | V3PoolConfig


@dataclass(frozen=True)
class TokenConfig:
    """Static description of the tracked token on one chain.

    ``address`` is the ERC20 address on EVM chains and the bank denom on the
    Cosmos chain. ``token_is_token0`` is ``None`` when the side should be
    derived from the pool's token addresses.
    """

    chain: ChainId
    address: str
    decimals: int
    pool: PoolConfig
    token_is_token0: bool | None = None
    symbol: str = "PAGE"

    @property
    def pool_type(self) -> PoolType:
        return self.pool.pool_type


@dataclass(frozen=True)
class ReferencePairConfig:
    """Stable pair used to price the EVM reference (native gas) asset."""

    chain: ChainId
    pool: EvmPoolConfig
    reference_address: str
    reference_decimals: int
    stable_address: str
    stable_decimals: int
    stable_usd_price: Decimal = Decimal(1)
    symbol: str = "ETH"


@dataclass(frozen=True)
class CosmosReferenceConfig:
    """Stable pool used to price the Cosmos chain's quote asset."""

    pool_id: str
    asset_denom: str
    asset_decimals: int
    stable_denom: str
    stable_decimals: int
    stable_usd_price: Decimal = Decimal(1)
    symbol: str = "OSMO"


@dataclass(frozen=True)
class V2PoolState:
    address: str
    reserve0: int
    reserve1: int
    token0: str
    token1: str
    decimals0: int
    decimals1: int


@dataclass(frozen=True)
class V3PoolState:
    address: str
    sqrt_price_x96: int
    liquidity: int
    tick: int
    token0: str
    token1: str
    decimals0: int
    decimals1: int


@dataclass(frozen=True)
class CosmosPoolAsset:
    denom: str
    amount: int
    weight: str | None = None


@dataclass(frozen=True)
class CosmosPoolState:
    pool_id: str
    assets: tuple[CosmosPoolAsset, ...]

    def amount_of(self, denom: str) -> int:
        """Raw amount of ``denom`` held by the pool.

        Raises:
            PoolReadError: If the pool does not hold ``denom``.
        """
        for asset in self.assets:
            if asset.denom == denom:
                return asset.amount
        raise PoolReadError(f"Pool {self.pool_id} does not hold {denom}")


PoolState = V2PoolState | V3PoolState | CosmosPoolState
EvmPoolState = V2PoolState | V3PoolState


@dataclass(frozen=True)
class ChainQuote:
    """Result of one successful chain fetch.

    Keeps the pool state the price was computed from so liquidity can be
    valued from the very same read.
    """

    chain: ChainId
    price_usd: Decimal
    quote_usd: Decimal
    pool_state: PoolState
    tracked_is_token0: bool | None = None
    tracked_denom: str | None = None
    quote_denom: str | None = None
    tracked_decimals: int | None = None
    quote_decimals: int | None = None


def _frozen(mapping: Mapping[Any, Any] | None) -> Mapping[Any, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class PriceSnapshot:
    """Consistent view of all chains produced by one refresh cycle.

    Chains that failed are absent from ``prices`` and listed in
    ``failures``; they are never reported as zero.
    ``weights`` holds the normalized weight each chain carried in
    ``weighted_price``.
    """

    prices: Mapping[ChainId, Decimal]
    weighted_price: Decimal
    timestamp: float
    reference_price_usd: Decimal | None = None
    tvl: Mapping[ChainId, Decimal] = field(default_factory=dict)
    failures: Mapping[ChainId, str] = field(default_factory=dict)
    weights: Mapping[ChainId, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "prices", _frozen(self.prices))
        object.__setattr__(self, "tvl", _frozen(self.tvl))
        object.__setattr__(self, "failures", _frozen(self.failures))
        object.__setattr__(self, "weights", _frozen(self.weights))

    def price(self, chain: ChainId) -> Decimal | None:
        return self.prices.get(chain)

    def is_available(self, chain: ChainId) -> bool:
        return chain in self.prices

    @property
    def chains(self) -> list[ChainId]:
        return [chain for chain in ChainId if chain in self.prices]

    @property
    def total_tvl(self) -> Decimal:
        return sum(self.tvl.values(), Decimal(0))

    @property
    def tvl_shares(self) -> dict[ChainId, Decimal]:
        """Each chain's fraction of the total TVL; empty when there is none."""
        total = self.total_tvl
        if total <= 0:
            return {}
        with localcontext() as ctx:
            ctx.prec = 60
            return {chain: value / total for chain, value in self.tvl.items()}

    def as_dict(self) -> dict[str, Any]:
        """JSON-friendly representation (Decimals rendered as strings)."""
        return {
            "timestamp": self.timestamp,
            "weighted_price": str(self.weighted_price),
            "reference_price_usd": (
                str(self.reference_price_usd)
                if self.reference_price_usd is not None
                else None
            ),
            "prices": {chain.value: str(price) for chain, price in self.prices.items()},
            "tvl": {chain.value: str(value) for chain, value in self.tvl.items()},
            "total_tvl": str(self.total_tvl),
            "tvl_shares": {
                chain.value: str(share) for chain, share in self.tvl_shares.items()
            },
            "weights": {chain.value: str(weight) for chain, weight in self.weights.items()},
            "failures": {chain.value: reason for chain, reason in self.failures.items()},
        }


@dataclass(frozen=True)
class CacheEntry:
    snapshot: PriceSnapshot
    fetched_at: float
    ttl: float = 300.0

    def is_expired(self, now: float) -> bool:
        return now - self.fetched_at >= self.ttl


__all__ = [
    "CacheEntry",
    "ChainFamily",
    "ChainId",
    "ChainQuote",
    "CosmosPoolAsset",
    "CosmosPoolConfig",
    "CosmosPoolState",
    "CosmosReferenceConfig",
    "EvmPoolConfig",
    "EvmPoolState",
    "PoolConfig",
    "PoolState",
    "PoolType",
    "PriceSnapshot",
    "ReferencePairConfig",
    "TokenConfig",
    "V2PoolConfig",
    "V2PoolState",
    "V3PoolConfig",
    "V3PoolState",
]
