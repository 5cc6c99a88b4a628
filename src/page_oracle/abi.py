"""Minimal contract ABIs shipped with the package."""

from __future__ import annotations

import json
from functools import cache
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"


@cache
def load_abi(name: str) -> list[dict]:
    """Return the "abi" list of ``abis/<name>.json``.

    Raises:
        FileNotFoundError: If no ABI of that name ships with the package.
        KeyError: If the file has no "abi" field.
    """
    data = json.loads((ABIS_DIR / f"{name}.json").read_text())
    return data["abi"]


def load_uniswap_v2_pair_abi() -> list[dict]:
    """getReserves, token0, token1."""
    return load_abi("UniswapV2Pair")


def load_uniswap_v3_pool_abi() -> list[dict]:
    """slot0, liquidity, token0, token1."""
    return load_abi("UniswapV3Pool")


def load_erc20_abi() -> list[dict]:
    return load_abi("ERC20")
