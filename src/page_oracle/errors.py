"""Exception hierarchy for the price oracle."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .connections.resolver import EndpointAttempt
    from .domain import ChainId


class OracleError(Exception):
    """Base class for every error raised by page-oracle."""


class NoAvailableEndpoint(OracleError):
    """Raised when every configured endpoint for a chain failed.

    Carries one ``EndpointAttempt`` per URL tried, in the order tried.
    """

    def __init__(self, chain: ChainId, attempts: Sequence[EndpointAttempt]):
        self.chain = chain
        self.attempts = tuple(attempts)
        if self.attempts:
            details = "; ".join(
                f"{attempt.url}: {attempt.error}" for attempt in self.attempts
            )
        else:
            details = "no endpoints configured"
        super().__init__(f"No available endpoint for {chain.value}: {details}")


class PoolReadError(OracleError):
    """Raised when on-chain pool data is missing, malformed or unexpected."""


class InvalidPoolState(PoolReadError):
    """Raised when pool data decodes fine but cannot be priced (empty pool)."""


class DivisionByZero(InvalidPoolState):
    """Raised when a price computation would divide by a zero amount."""


class ReferenceAssetUnavailable(OracleError):
    """Raised when the reference asset USD price could not be bootstrapped."""


class NoEligiblePrices(OracleError):
    """Raised when no chain has a usable price to aggregate."""


class ChainUnavailable(OracleError):
    """Raised when a chain is absent from the current snapshot."""

    def __init__(self, chain: ChainId, reason: str | None = None):
        self.chain = chain
        self.reason = reason
        message = f"No data available for {chain.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AggregateError(OracleError):
    """Raised when every chain failed during one refresh cycle."""

    def __init__(self, failures: Mapping[ChainId, BaseException]):
        self.failures = dict(failures)
        details = "; ".join(
            f"{chain.value}: {describe_error(exc)}"
            for chain, exc in self.failures.items()
        )
        super().__init__(f"All chains failed to refresh: {details}")


def describe_error(exc: BaseException) -> str:
    """Short, log-friendly description of an exception."""
    message = str(exc)
    if not message:
        return type(exc).__name__
    return f"{type(exc).__name__}: {message}"
