from __future__ import annotations

from decimal import Decimal


def to_decimal_units(value: int, decimals: int) -> Decimal:
    """Convert a raw integer token amount to whole-token units.

    Args:
        value: Integer amount expressed with ``decimals`` decimal places.
        decimals: Decimal precision of ``value``.

    Returns:
        The exact amount as a Decimal (``value / 10**decimals``).

    Notes:
        - Uses ``Decimal.scaleb`` so no rounding happens for any realistic
          token amount.
        - Negative decimals are rejected; ERC20 ``decimals()`` is a uint8.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")
    return Decimal(value).scaleb(-decimals)


def decimal_shift(decimals_from: int, decimals_to: int) -> Decimal:
    """Return ``10**(decimals_from - decimals_to)`` as an exact Decimal."""
    return Decimal(1).scaleb(decimals_from - decimals_to)
