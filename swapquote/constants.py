"""Network and protocol constants for the swap quoter.

Contract addresses are stored lowercase; use eth_utils.to_checksum_address
when presenting them to users.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Network(str, Enum):
    """Supported EVM networks."""

    ETHEREUM = "ETHEREUM"
    ARBITRUM = "ARBITRUM"
    OPTIMISM = "OPTIMISM"
    BASE = "BASE"
    POLYGON = "POLYGON"

    @classmethod
    def parse(cls, value: str | Network) -> Network:
        """Parse a network name case-insensitively.

        Raises:
            ValueError: If the name is not a supported network
        """
        if isinstance(value, Network):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError as err:
            raise ValueError(f"Unsupported network: {value}") from err


# Fee tiers in hundredths of a bip (3000 = 0.3%)
FEE_TIER_LOWEST = 100
FEE_TIER_LOW = 500
FEE_TIER_MEDIUM = 3000
FEE_TIER_HIGH = 10000

V3_FEE_TIERS = (FEE_TIER_LOWEST, FEE_TIER_LOW, FEE_TIER_MEDIUM, FEE_TIER_HIGH)

# Default tick spacing by fee tier (v3 factory enables these pairs)
TICK_SPACING = {
    FEE_TIER_LOWEST: 1,
    FEE_TIER_LOW: 10,
    FEE_TIER_MEDIUM: 60,
    FEE_TIER_HIGH: 200,
}

# UniswapV2 charges a flat 0.3%
V2_FEE_TIER = FEE_TIER_MEDIUM
V2_FEE_BPS = 30

# Gas costs per swap, from on-chain measurements
V2_SWAP_GAS = 60_000
V3_SWAP_GAS = 106_000
V4_SWAP_GAS = 130_000
FALLBACK_SWAP_GAS = 300_000
FALLBACK_GAS_PER_HOP = 150_000
FALLBACK_GAS_PRICE_WEI = 20 * 10**9

GAS_LIMIT_BUFFER = 1.2
GAS_PRICE_MULTIPLIER = 1.1

# Quote defaults
DEFAULT_SLIPPAGE_BPS = 50
MAX_SLIPPAGE_BPS = 5000
DEFAULT_DEADLINE_SECONDS = 20 * 60
MIN_DEADLINE_SECONDS = 60
MAX_DEADLINE_SECONDS = 60 * 60
MAX_HOPS = 2
MAX_TOKEN_DECIMALS = 77

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# CREATE2 init code hashes
V2_POOL_INIT_CODE_HASH = "0x96e8ac4277198ff8b6f785478aa9a39f403cb768dd02cbee326c3e7da348845f"
V3_POOL_INIT_CODE_HASH = "0xe34f199b19b2b4f47f68442619d555527d244f78a3297ea89325f843f87b8b54"

_V3_FACTORY = "0x1f98431c8ad98523631ae4a59f267346ea31f984"
_QUOTER_V2 = "0x61ffe014ba17989e743c5f6cb21bf9697530b21e"
_SWAP_ROUTER_02 = "0x68b3465833fb72a70ecdf485e0e4c7bd8665fc45"


@dataclass(frozen=True)
class NetworkInfo:
    """Static deployment data for one network.

    Attributes:
        network: Network identifier
        chain_id: EIP-155 chain id
        wrapped_native: Wrapped native token (WETH, WMATIC)
        v2_factory: UniswapV2 factory, None where v2 is not deployed
        v2_router: UniswapV2 Router02
        v3_factory: UniswapV3 factory
        v3_quoter: QuoterV2 used for v3 quotes
        v3_router: SwapRouter02
        v4_state_view: V4 StateView lens contract, None where v4 is not used
        rpc_endpoints: Public JSON-RPC endpoints used when none are configured
    """

    network: Network
    chain_id: int
    wrapped_native: str
    v3_factory: str = _V3_FACTORY
    v3_quoter: str = _QUOTER_V2
    v3_router: str = _SWAP_ROUTER_02
    v2_factory: str | None = None
    v2_router: str | None = None
    v4_state_view: str | None = None
    rpc_endpoints: tuple[str, ...] = field(default_factory=tuple)


NETWORKS: dict[Network, NetworkInfo] = {
    Network.ETHEREUM: NetworkInfo(
        network=Network.ETHEREUM,
        chain_id=1,
        wrapped_native="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
        v2_factory="0x5c69bee701ef814a2b6a3edd4b1652cb9cc5aa6f",
        v2_router="0x7a250d5630b4cf539739df2c5dacb4c659f2488d",
        rpc_endpoints=(
            "https://ethereum.publicnode.com",
            "https://eth.llamarpc.com",
            "https://rpc.ankr.com/eth",
        ),
    ),
    Network.ARBITRUM: NetworkInfo(
        network=Network.ARBITRUM,
        chain_id=42161,
        wrapped_native="0x82af49447d8a07e3bd95bd0d56f35241523fbab1",
        rpc_endpoints=(
            "https://arb1.arbitrum.io/rpc",
            "https://arbitrum.publicnode.com",
        ),
    ),
    Network.OPTIMISM: NetworkInfo(
        network=Network.OPTIMISM,
        chain_id=10,
        wrapped_native="0x4200000000000000000000000000000000000006",
        rpc_endpoints=(
            "https://mainnet.optimism.io",
            "https://optimism.publicnode.com",
        ),
    ),
    Network.BASE: NetworkInfo(
        network=Network.BASE,
        chain_id=8453,
        wrapped_native="0x4200000000000000000000000000000000000006",
        v3_factory="0x33128a8fc17869897dce68ed026d694621f6fdfd",
        v3_quoter="0x3d4e44eb1374240ce5f1b871ab261cd16335b76a",
        v3_router="0x2626664c2603336e57b271c5c0b26f421741e481",
        rpc_endpoints=(
            "https://mainnet.base.org",
            "https://base.publicnode.com",
        ),
    ),
    Network.POLYGON: NetworkInfo(
        network=Network.POLYGON,
        chain_id=137,
        wrapped_native="0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270",
        rpc_endpoints=(
            "https://polygon-rpc.com",
            "https://polygon-bor.publicnode.com",
        ),
    ),
}


@dataclass(frozen=True)
class KnownToken:
    """A commonly traded token listed by the tokens endpoint."""

    symbol: str
    address: str
    decimals: int


KNOWN_TOKENS: dict[Network, tuple[KnownToken, ...]] = {
    Network.ETHEREUM: (
        KnownToken("WETH", "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2", 18),
        KnownToken("USDC", "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", 6),
        KnownToken("USDT", "0xdac17f958d2ee523a2206206994597c13d831ec7", 6),
        KnownToken("DAI", "0x6b175474e89094c44da98b954eedeac495271d0f", 18),
        KnownToken("WBTC", "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599", 8),
    ),
    Network.ARBITRUM: (
        KnownToken("WETH", "0x82af49447d8a07e3bd95bd0d56f35241523fbab1", 18),
        KnownToken("USDC", "0xaf88d065e77c8cc2239327c5edb3a432268e5831", 6),
        KnownToken("USDT", "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9", 6),
        KnownToken("DAI", "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1", 18),
        KnownToken("WBTC", "0x2f2a2543b76a4166549f7aab2e75bef0aefc5b0f", 8),
    ),
    Network.OPTIMISM: (
        KnownToken("WETH", "0x4200000000000000000000000000000000000006", 18),
        KnownToken("USDC", "0x0b2c639c533813f4aa9d7837caf62653d097ff85", 6),
        KnownToken("USDT", "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58", 6),
        KnownToken("DAI", "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1", 18),
        KnownToken("WBTC", "0x68f180fcce6836688e9084f035309e29bf0a2095", 8),
    ),
    Network.BASE: (
        KnownToken("WETH", "0x4200000000000000000000000000000000000006", 18),
        KnownToken("USDC", "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913", 6),
        KnownToken("DAI", "0x50c5725949a6f0c72e6c4a641f24049a917db0cb", 18),
    ),
    Network.POLYGON: (
        KnownToken("WMATIC", "0x0d500b1d8e8ef31e21c99d1db9a6444d3adf1270", 18),
        KnownToken("WETH", "0x7ceb23fd6bc0add59e62ac25578270cff1b9f619", 18),
        KnownToken("USDC", "0x3c499c542cef5e3811e1192ce70d8cc03d5c3359", 6),
        KnownToken("USDT", "0xc2132d05d31c914a87c6611c10748aeb04b58e8f", 6),
        KnownToken("DAI", "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063", 18),
        KnownToken("WBTC", "0x1bfd67037b42cf73acf2047067bd4f2c47d9bfd6", 8),
    ),
}
