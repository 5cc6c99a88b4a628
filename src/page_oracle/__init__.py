"""Multi-chain PAGE token price and TVL oracle."""

from .domain import ChainId, PriceSnapshot
from .errors import (
    AggregateError,
    ChainUnavailable,
    NoAvailableEndpoint,
    OracleError,
    PoolReadError,
    ReferenceAssetUnavailable,
)
from .oracle import PriceOracle
from .settings import OracleSettings

__all__ = [
    "AggregateError",
    "ChainId",
    "ChainUnavailable",
    "NoAvailableEndpoint",
    "OracleError",
    "OracleSettings",
    "PoolReadError",
    "PriceOracle",
    "PriceSnapshot",
    "ReferenceAssetUnavailable",
]
