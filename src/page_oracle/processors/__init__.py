from __future__ import annotations

from .tvl import calculate_tvl
from .weighted_price import aggregation_weights, weighted_average_price

__all__ = [
    "aggregation_weights",
    "calculate_tvl",
    "weighted_average_price",
]
