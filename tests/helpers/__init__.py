"""Test helpers module for shared test utilities.

- constants: Token addresses, well-known pools and accounts
- fake_node: In-process JSON-RPC node behind httpx.MockTransport
- factories: Clients, orchestrators, pools and quotes wired to a FakeNode
"""

from tests.helpers.constants import (
    DAI,
    SENDER,
    SPENDER,
    TOKEN_DECIMALS,
    TOKEN_SYMBOLS,
    USDC,
    USDT,
    WBTC,
    WETH,
    WETH_USDC_V2,
    WETH_USDC_V3_500,
    WETH_USDC_V3_3000,
)
from tests.helpers.factories import (
    ENDPOINTS,
    NOW,
    STATE_VIEW,
    RecordingSleep,
    make_client,
    make_gateway,
    make_orchestrator,
    make_pool_ref,
    make_quote,
)
from tests.helpers.fake_node import FakeNode, Revert, RpcFault, sqrt_price_x96

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "WBTC",
    "WETH_USDC_V2",
    "WETH_USDC_V3_500",
    "WETH_USDC_V3_3000",
    "SENDER",
    "SPENDER",
    "TOKEN_DECIMALS",
    "TOKEN_SYMBOLS",
    # Fake node
    "FakeNode",
    "Revert",
    "RpcFault",
    "sqrt_price_x96",
    # Factories
    "ENDPOINTS",
    "NOW",
    "STATE_VIEW",
    "RecordingSleep",
    "make_client",
    "make_gateway",
    "make_orchestrator",
    "make_pool_ref",
    "make_quote",
]
