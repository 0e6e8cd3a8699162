"""Deterministic pool identifiers.

V2 pairs and V3 pools are deployed with CREATE2, so their addresses follow
from the factory, the sorted token pair and (for V3) the fee. V4 pools live
inside a singleton and are identified by the hash of their pool key.
"""

from __future__ import annotations

from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak

from swapquote.constants import (
    TICK_SPACING,
    V2_POOL_INIT_CODE_HASH,
    V3_POOL_INIT_CODE_HASH,
    ZERO_ADDRESS,
)
from swapquote.models.types import normalize_address, sort_tokens


def create2_address(deployer: str, salt: bytes, init_code_hash: str) -> str:
    """Address of a contract deployed with CREATE2, lowercase."""
    payload = (
        b"\xff"
        + bytes.fromhex(normalize_address(deployer)[2:])
        + salt
        + bytes.fromhex(init_code_hash.removeprefix("0x"))
    )
    return "0x" + keccak(payload)[12:].hex()


def v2_pair_address(
    factory: str,
    token_a: str,
    token_b: str,
    init_code_hash: str = V2_POOL_INIT_CODE_HASH,
) -> str:
    """UniswapV2 pair address for a token pair.

    The salt is keccak256(token0 ++ token1), tightly packed.
    """
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(bytes.fromhex(token0[2:]) + bytes.fromhex(token1[2:]))
    return create2_address(factory, salt, init_code_hash)


def v3_pool_address(
    factory: str,
    token_a: str,
    token_b: str,
    fee: int,
    init_code_hash: str = V3_POOL_INIT_CODE_HASH,
) -> str:
    """UniswapV3 pool address for a token pair and fee tier.

    The salt is keccak256(abi.encode(token0, token1, fee)).
    """
    token0, token1 = sort_tokens(token_a, token_b)
    salt = keccak(encode(["address", "address", "uint24"], [token0, token1, fee]))
    return create2_address(factory, salt, init_code_hash)


def v4_pool_id(
    token_a: str,
    token_b: str,
    fee: int,
    tick_spacing: int | None = None,
    hooks: str = ZERO_ADDRESS,
) -> str:
    """UniswapV4 pool id: keccak256(abi.encode(PoolKey)).

    Args:
        token_a: One currency of the pair
        token_b: The other currency
        fee: Fee in pips
        tick_spacing: Tick spacing; defaults to the standard spacing for fee
        hooks: Hooks contract, zero for hookless pools

    Returns:
        0x-prefixed 32-byte pool id
    """
    currency0, currency1 = sort_tokens(token_a, token_b)
    spacing = TICK_SPACING[fee] if tick_spacing is None else tick_spacing
    encoded = encode(
        ["address", "address", "uint24", "int24", "address"],
        [currency0, currency1, fee, spacing, normalize_address(hooks)],
    )
    return "0x" + keccak(encoded).hex()
