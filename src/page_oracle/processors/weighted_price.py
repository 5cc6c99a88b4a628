from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from decimal import Decimal, localcontext

from ..domain import ChainId
from ..errors import NoEligiblePrices

logger = logging.getLogger(__name__)

PRECISION = 60


def _raw_weights(
    prices: Mapping[ChainId, Decimal],
    liquidities: Mapping[ChainId, Decimal],
    min_liquidity: Decimal | float,
    exclude: Collection[ChainId],
    manual_weights: Mapping[ChainId, Decimal | float] | None,
) -> tuple[dict[ChainId, Decimal], dict[ChainId, Decimal]]:
    threshold = Decimal(str(min_liquidity))
    eligible = {
        chain: price
        for chain, price in prices.items()
        if chain not in exclude and price > 0
    }
    if not eligible:
        raise NoEligiblePrices("No chain has a positive price to aggregate")

    weights: dict[ChainId, Decimal] = {}
    for chain in eligible:
        liquidity = liquidities.get(chain, Decimal(0))
        if liquidity <= 0 or liquidity < threshold:
            weights[chain] = Decimal(0)
        elif manual_weights is not None:
            weights[chain] = max(Decimal(str(manual_weights.get(chain, 0))), Decimal(0))
        else:
            weights[chain] = liquidity
    return eligible, weights


def aggregation_weights(
    prices: Mapping[ChainId, Decimal],
    liquidities: Mapping[ChainId, Decimal],
    *,
    min_liquidity: Decimal | float = 0,
    exclude: Collection[ChainId] = (),
    manual_weights: Mapping[ChainId, Decimal | float] | None = None,
) -> dict[ChainId, Decimal]:
    """Normalized weight each eligible chain carries in the aggregate price.

    Same eligibility rules as :func:`weighted_average_price`. The weights sum
    to one; when every raw weight is zero the eligible chains share equally.
    """
    eligible, weights = _raw_weights(
        prices, liquidities, min_liquidity, exclude, manual_weights
    )
    with localcontext() as ctx:
        ctx.prec = PRECISION
        total_weight = sum(weights.values(), Decimal(0))
        if total_weight == 0:
            share = Decimal(1) / len(eligible)
            return {chain: share for chain in eligible}
        return {chain: weight / total_weight for chain, weight in weights.items()}


def weighted_average_price(
    prices: Mapping[ChainId, Decimal],
    liquidities: Mapping[ChainId, Decimal],
    *,
    min_liquidity: Decimal | float = 0,
    exclude: Collection[ChainId] = (),
    manual_weights: Mapping[ChainId, Decimal | float] | None = None,
) -> Decimal:
    """Liquidity-weighted mean of per-chain prices.

    Only chains with a positive price that are not in ``exclude`` take part.
    A chain with missing liquidity, or liquidity below ``min_liquidity``,
    weighs zero. ``manual_weights`` replaces liquidity as the weight of the
    remaining chains; a chain it does not name weighs zero. When every
    weight is zero the arithmetic mean of the eligible prices is returned.

    Raises:
        NoEligiblePrices: If no chain has a positive price.
    """
    eligible, weights = _raw_weights(
        prices, liquidities, min_liquidity, exclude, manual_weights
    )
    with localcontext() as ctx:
        ctx.prec = PRECISION
        total_weight = sum(weights.values(), Decimal(0))
        if total_weight == 0:
            logger.warning(
                "No weight above zero for %s; using the plain mean",
                ", ".join(chain.value for chain in eligible),
            )
            return sum(eligible.values(), Decimal(0)) / len(eligible)

        weighted = sum(
            (eligible[chain] * weights[chain] for chain in eligible), Decimal(0)
        )
        return weighted / total_weight
