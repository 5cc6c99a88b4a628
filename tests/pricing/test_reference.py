from __future__ import annotations

from decimal import Decimal

import pytest

from page_oracle.connections import ConnectionResolver, LcdConnection
from page_oracle.constants import ETH_USDC_REFERENCE_PAIR, OSMOSIS_POOL_PATH
from page_oracle.domain import (
    ChainFamily,
    ChainId,
    CosmosReferenceConfig,
    ReferencePairConfig,
    V2PoolConfig,
)
from page_oracle.errors import NoAvailableEndpoint, ReferenceAssetUnavailable
from page_oracle.pools import PoolStateReader
from page_oracle.pricing import (
    ReferencePriceBootstrapper,
    fetch_cosmos_quote_price,
    sqrt_price_x96_from_price,
)

PAIR = ETH_USDC_REFERENCE_PAIR


def _resolver(make_evm_connection, contracts) -> ConnectionResolver:
    async def connector(chain, url):
        return make_evm_connection(contracts, chain=chain, url=url)

    return ConnectionResolver(
        {ChainId.BASE: ["https://base.test"]},
        timeout=1.0,
        connectors={ChainFamily.EVM: connector},
    )


@pytest.mark.asyncio
async def test_bootstraps_eth_price_from_v3_pool(make_evm_connection):
    # WETH is token0 and USDC token1 on the Base pool
    sqrt_price = sqrt_price_x96_from_price(Decimal(3000), 18, 6)
    contracts = {
        PAIR.pool.address: {
            "slot0": [sqrt_price, -196_000, 0, 0, 0, 0, True],
            "liquidity": 10**18,
            "token0": PAIR.reference_address,
            "token1": PAIR.stable_address,
        }
    }
    bootstrapper = ReferencePriceBootstrapper(
        PAIR, _resolver(make_evm_connection, contracts), PoolStateReader()
    )

    price = await bootstrapper.fetch_reference_price()

    assert abs(price - 3000) < Decimal("1e-9")


@pytest.mark.asyncio
async def test_bootstraps_eth_price_from_v2_pair(make_evm_connection):
    pair_address = "0x" + "5d" * 20
    pair = ReferencePairConfig(
        chain=ChainId.BASE,
        pool=V2PoolConfig(address=pair_address),
        reference_address=PAIR.reference_address,
        reference_decimals=18,
        stable_address=PAIR.stable_address,
        stable_decimals=6,
    )
    contracts = {
        pair_address: {
            "getReserves": [1000 * 10**18, 3_000_000 * 10**6, 0],
            "token0": PAIR.reference_address,
            "token1": PAIR.stable_address,
        }
    }
    bootstrapper = ReferencePriceBootstrapper(
        pair, _resolver(make_evm_connection, contracts), PoolStateReader()
    )

    assert await bootstrapper.fetch_reference_price() == 3000


@pytest.mark.asyncio
async def test_failure_is_reported_as_reference_unavailable():
    async def dead(chain, url):
        raise ConnectionError("refused")

    resolver = ConnectionResolver(
        {ChainId.BASE: ["https://a.test", "https://b.test"]},
        timeout=1.0,
        connectors={ChainFamily.EVM: dead},
    )
    bootstrapper = ReferencePriceBootstrapper(PAIR, resolver, PoolStateReader())

    with pytest.raises(ReferenceAssetUnavailable) as exc_info:
        await bootstrapper.fetch_reference_price()

    assert isinstance(exc_info.value.__cause__, NoAvailableEndpoint)


@pytest.mark.asyncio
async def test_cosmos_quote_price(lcd_routes, pool_payload):
    lcd = "https://lcd.test"
    lcd_routes.routes[lcd + OSMOSIS_POOL_PATH.format(pool_id="678")] = pool_payload(
        "678", [("uosmo", 1_000_000 * 10**6), ("ibc/USDC", 480_000 * 10**6)]
    )
    reference = CosmosReferenceConfig(
        pool_id="678",
        asset_denom="uosmo",
        asset_decimals=6,
        stable_denom="ibc/USDC",
        stable_decimals=6,
    )
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=lcd, timeout=1.0)

    price = await fetch_cosmos_quote_price(connection, PoolStateReader(), reference)

    assert price == Decimal("0.48")
