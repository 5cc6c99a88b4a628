"""Pool, token and endpoint constants for the PAGE deployment."""

from .domain import (
    ChainId,
    CosmosPoolConfig,
    CosmosReferenceConfig,
    ReferencePairConfig,
    TokenConfig,
    V2PoolConfig,
    V3PoolConfig,
)

Q96 = 2**96
Q192 = 2**192

DEFAULT_CACHE_TTL_SECONDS = 300.0

WETH_DECIMALS = 18

# Primary endpoint first, backup second
DEFAULT_ETHEREUM_RPC_URLS = ["https://eth.drpc.org", "https://eth.llamarpc.com"]
DEFAULT_OPTIMISM_RPC_URLS = [
    "https://mainnet.optimism.io",
    "https://optimism.llamarpc.com",
]
DEFAULT_BASE_RPC_URLS = ["https://mainnet.base.org", "https://base.publicnode.com"]
DEFAULT_OSMOSIS_LCD_URLS = [
    "https://lcd.osmosis.zone",
    "https://api.kyve.network/osmosis",
]

OSMOSIS_PAGE_DENOM = (
    "ibc/23A62409E4AD8133116C249B1FA38EED30E500A115D7B153109462CD82C1CD99"
)
OSMOSIS_USDC_DENOM = (
    "ibc/D189335C6E4A68B513C10AB227BF1C1D38C746766278BA3EEB4FB14124F1D858"
)
OSMOSIS_OSMO_DENOM = "uosmo"

PAGE_ETHEREUM = TokenConfig(
    chain=ChainId.ETHEREUM,
    address="0x60e683C6514Edd5F758A55b6f393BeBBAfaA8d5e",
    decimals=8,
    pool=V2PoolConfig(address="0x9a25d21e204f10177738edb0c3345bd88478aaa2"),
    token_is_token0=True,
)

PAGE_OPTIMISM = TokenConfig(
    chain=ChainId.OPTIMISM,
    address="0xe67E77c47a37795c0ea40A038F7ab3d76492e803",
    decimals=8,
    pool=V2PoolConfig(address="0x5421DA31D54640b58355d8D16D78af84D34D2405"),
    token_is_token0=False,
)

PAGE_BASE = TokenConfig(
    chain=ChainId.BASE,
    address="0xc4730f86d1F86cE0712a7b17EE919Db7dEFad7FE",
    decimals=8,
    pool=V3PoolConfig(address="0xb05113fbB5f2551Dc6f10EF3C4EfFB9C03C0E3E9"),
    token_is_token0=False,
)

PAGE_OSMOSIS = TokenConfig(
    chain=ChainId.OSMOSIS,
    address=OSMOSIS_PAGE_DENOM,
    decimals=8,
    pool=CosmosPoolConfig(pool_id="1344"),
)

DEFAULT_TOKENS: tuple[TokenConfig, ...] = (
    PAGE_ETHEREUM,
    PAGE_OPTIMISM,
    PAGE_BASE,
    PAGE_OSMOSIS,
)

# ETH/USDC 0.05% pool on Base; WETH is token0, USDC is token1
ETH_USDC_REFERENCE_PAIR = ReferencePairConfig(
    chain=ChainId.BASE,
    pool=V3PoolConfig(address="0xd0b53D9277642d899DF5C87A3966A349A798F224"),
    reference_address="0x4200000000000000000000000000000000000006",
    reference_decimals=WETH_DECIMALS,
    stable_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    stable_decimals=6,
)

OSMO_USDC_REFERENCE = CosmosReferenceConfig(
    pool_id="678",
    asset_denom=OSMOSIS_OSMO_DENOM,
    asset_decimals=6,
    stable_denom=OSMOSIS_USDC_DENOM,
    stable_decimals=6,
)

OSMOSIS_POOL_PATH = "/osmosis/gamm/v1beta1/pools/{pool_id}"
COSMOS_LATEST_BLOCK_PATH = "/cosmos/base/tendermint/v1beta1/blocks/latest"
