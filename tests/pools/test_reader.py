from __future__ import annotations

import pytest
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from page_oracle.connections import LcdConnection
from page_oracle.constants import OSMOSIS_POOL_PATH, Q96
from page_oracle.domain import (
    ChainId,
    CosmosPoolConfig,
    TokenConfig,
    V2PoolConfig,
    V2PoolState,
    V3PoolConfig,
    V3PoolState,
)
from page_oracle.errors import InvalidPoolState, PoolReadError
from page_oracle.pools import PoolStateReader, tracked_is_token0

PAIR = "0x" + "1c" * 20
PAGE = "0x" + "2a" * 20
WETH = "0x" + "3b" * 20
LCD = "https://lcd.test"


def _v2_contracts(reserve0=1000 * 10**8, reserve1=2 * 10**18, **extra):
    return {
        PAIR: {
            "getReserves": extra.get("reserves", [reserve0, reserve1, 1_700_000_000]),
            "token0": PAGE,
            "token1": WETH,
        },
        PAGE: {"decimals": 8},
        WETH: {"decimals": 18},
    }


@pytest.mark.asyncio
async def test_reads_v2_pair(make_evm_connection):
    reader = PoolStateReader()
    connection = make_evm_connection(_v2_contracts())

    state = await reader.read(connection, V2PoolConfig(address=PAIR))

    assert state == V2PoolState(
        address=PAIR,
        reserve0=1000 * 10**8,
        reserve1=2 * 10**18,
        token0=PAGE,
        token1=WETH,
        decimals0=8,
        decimals1=18,
    )


@pytest.mark.asyncio
async def test_decimals_are_memoized_and_seedable(make_evm_connection):
    reader = PoolStateReader()
    contracts = _v2_contracts()
    del contracts[PAGE]
    contracts[WETH] = {}
    reader.remember_decimals(ChainId.ETHEREUM, "0x" + PAGE[2:].upper(), 8)
    reader.remember_decimals(ChainId.ETHEREUM, WETH, 18)

    state = await reader.read(make_evm_connection(contracts), V2PoolConfig(address=PAIR))

    assert (state.decimals0, state.decimals1) == (8, 18)


@pytest.mark.asyncio
async def test_decimals_memo_is_per_chain(make_evm_connection):
    reader = PoolStateReader()
    reader.remember_decimals(ChainId.OPTIMISM, PAGE, 6)
    connection = make_evm_connection(_v2_contracts(), chain=ChainId.ETHEREUM)

    assert await reader.token_decimals(connection, PAGE) == 8


@pytest.mark.asyncio
async def test_v2_empty_reserves_are_invalid(make_evm_connection):
    reader = PoolStateReader()
    connection = make_evm_connection(_v2_contracts(reserve0=0))

    with pytest.raises(InvalidPoolState, match="empty reserves"):
        await reader.read(connection, V2PoolConfig(address=PAIR))


@pytest.mark.asyncio
async def test_v2_malformed_reserves(make_evm_connection):
    reader = PoolStateReader()
    connection = make_evm_connection(_v2_contracts(reserves=[]))

    with pytest.raises(PoolReadError, match="Malformed getReserves"):
        await reader.read(connection, V2PoolConfig(address=PAIR))


@pytest.mark.parametrize(
    "error",
    [ContractLogicError("execution reverted"), BadFunctionCallOutput("empty result")],
)
@pytest.mark.asyncio
async def test_contract_errors_become_pool_read_errors(make_evm_connection, error):
    reader = PoolStateReader()
    contracts = _v2_contracts()
    contracts[PAIR]["getReserves"] = error

    with pytest.raises(PoolReadError, match="getReserves"):
        await reader.read(make_evm_connection(contracts), V2PoolConfig(address=PAIR))


@pytest.mark.asyncio
async def test_reads_v3_pool(make_evm_connection):
    reader = PoolStateReader()
    sqrt_price = 79_228_162_514_264_337_593_543_950_336
    connection = make_evm_connection(
        {
            PAIR: {
                "slot0": [sqrt_price, -12, 1, 1, 1, 0, True],
                "liquidity": 5 * 10**18,
                "token0": WETH,
                "token1": PAGE,
            },
            PAGE: {"decimals": 8},
            WETH: {"decimals": 18},
        },
        chain=ChainId.BASE,
    )

    state = await reader.read(connection, V3PoolConfig(address=PAIR))

    assert isinstance(state, V3PoolState)
    assert state.sqrt_price_x96 == sqrt_price
    assert state.tick == -12
    assert state.liquidity == 5 * 10**18
    assert (state.token0, state.token1) == (WETH, PAGE)
    assert (state.decimals0, state.decimals1) == (18, 8)


@pytest.mark.asyncio
async def test_v3_zero_sqrt_price_is_invalid(make_evm_connection):
    reader = PoolStateReader()
    connection = make_evm_connection(
        {
            PAIR: {
                "slot0": [0, 0, 0, 0, 0, 0, False],
                "liquidity": 0,
                "token0": WETH,
                "token1": PAGE,
            },
            PAGE: {"decimals": 8},
            WETH: {"decimals": 18},
        }
    )

    with pytest.raises(InvalidPoolState):
        await reader.read(connection, V3PoolConfig(address=PAIR))


@pytest.mark.asyncio
async def test_v3_without_liquidity_is_invalid(make_evm_connection):
    reader = PoolStateReader()
    connection = make_evm_connection(
        {
            PAIR: {
                "slot0": [Q96, 0, 0, 0, 0, 0, True],
                "liquidity": 0,
                "token0": WETH,
                "token1": PAGE,
            },
            PAGE: {"decimals": 8},
            WETH: {"decimals": 18},
        }
    )

    with pytest.raises(InvalidPoolState, match="no active liquidity"):
        await reader.read(connection, V3PoolConfig(address=PAIR))


@pytest.mark.asyncio
async def test_evm_pool_needs_evm_connection():
    reader = PoolStateReader()
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=LCD, timeout=1.0)

    with pytest.raises(TypeError):
        await reader.read(connection, V2PoolConfig(address=PAIR))


@pytest.mark.asyncio
async def test_reads_cosmos_pool(lcd_routes, pool_payload):
    lcd_routes.routes[LCD + OSMOSIS_POOL_PATH.format(pool_id="1344")] = pool_payload(
        "1344", [("ibc/PAGE", 10_000 * 10**8), ("uosmo", 50_000 * 10**6)]
    )
    reader = PoolStateReader()
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=LCD, timeout=1.0)

    state = await reader.read(connection, CosmosPoolConfig(pool_id="1344"))

    assert state.pool_id == "1344"
    assert state.amount_of("ibc/PAGE") == 10_000 * 10**8
    assert state.amount_of("uosmo") == 50_000 * 10**6
    assert state.assets[0].weight == "536870912000000"


@pytest.mark.asyncio
async def test_unknown_cosmos_pool(lcd_routes):
    reader = PoolStateReader()
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=LCD, timeout=1.0)

    with pytest.raises(PoolReadError, match="not found"):
        await reader.read(connection, CosmosPoolConfig(pool_id="999999"))


@pytest.mark.asyncio
async def test_empty_cosmos_pool_is_invalid(lcd_routes, pool_payload):
    lcd_routes.routes[LCD + OSMOSIS_POOL_PATH.format(pool_id="1")] = pool_payload(
        "1", []
    )
    reader = PoolStateReader()
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=LCD, timeout=1.0)

    with pytest.raises(InvalidPoolState):
        await reader.read(connection, CosmosPoolConfig(pool_id="1"))


@pytest.mark.asyncio
async def test_malformed_cosmos_payload(lcd_routes, fake_response):
    lcd_routes.routes[LCD + OSMOSIS_POOL_PATH.format(pool_id="1")] = fake_response(
        {"pool": {"pool_assets": [{"token": {"denom": "uosmo", "amount": "lots"}}]}}
    )
    reader = PoolStateReader()
    connection = LcdConnection(chain=ChainId.OSMOSIS, url=LCD, timeout=1.0)

    with pytest.raises(PoolReadError, match="Malformed"):
        await reader.read(connection, CosmosPoolConfig(pool_id="1"))


def _state(token0=PAGE, token1=WETH) -> V2PoolState:
    return V2PoolState(
        address=PAIR,
        reserve0=1,
        reserve1=1,
        token0=token0,
        token1=token1,
        decimals0=8,
        decimals1=18,
    )


def _token(token_is_token0=None, address=PAGE) -> TokenConfig:
    return TokenConfig(
        chain=ChainId.ETHEREUM,
        address=address,
        decimals=8,
        pool=V2PoolConfig(address=PAIR),
        token_is_token0=token_is_token0,
    )


def test_tracked_side_is_derived_case_insensitively():
    mixed_case = "0x" + PAGE[2:].upper()
    assert tracked_is_token0(_token(address=mixed_case), _state()) is True
    assert tracked_is_token0(_token(), _state(token0=WETH, token1=PAGE)) is False


def test_tracked_side_is_cross_checked():
    assert tracked_is_token0(_token(token_is_token0=True), _state()) is True

    with pytest.raises(PoolReadError, match="configured as token1"):
        tracked_is_token0(_token(token_is_token0=False), _state())


def test_token_outside_pool_raises():
    with pytest.raises(PoolReadError, match="not part of pool"):
        tracked_is_token0(_token(address="0x" + "44" * 20), _state())
