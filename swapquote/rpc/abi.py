"""Contract call encoding and decoding.

Selectors are derived from their canonical signatures. Arguments are ABI
encoded with eth_abi: 32-byte big-endian words, addresses right-aligned and
lowercased before encoding.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from eth_abi import decode, encode  # type: ignore[attr-defined]
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from swapquote.models.types import normalize_address


def selector(signature: str) -> bytes:
    """4-byte selector for a canonical function signature."""
    return function_signature_to_4byte_selector(signature)


# ERC-20
BALANCE_OF_SIG = "balanceOf(address)"
ALLOWANCE_SIG = "allowance(address,address)"
APPROVE_SIG = "approve(address,uint256)"
TRANSFER_SIG = "transfer(address,uint256)"
NAME_SIG = "name()"
SYMBOL_SIG = "symbol()"
DECIMALS_SIG = "decimals()"

# Pools
GET_RESERVES_SIG = "getReserves()"
SLOT0_SIG = "slot0()"
LIQUIDITY_SIG = "liquidity()"
V4_GET_SLOT0_SIG = "getSlot0(bytes32)"
V4_GET_LIQUIDITY_SIG = "getLiquidity(bytes32)"

# Quoting and swapping
QUOTE_EXACT_INPUT_SINGLE_SIG = "quoteExactInputSingle((address,address,uint256,uint24,uint160))"
SWAP_EXACT_TOKENS_SIG = "swapExactTokensForTokens(uint256,uint256,address[],address,uint256)"
EXACT_INPUT_SINGLE_SIG = "exactInputSingle((address,address,uint24,address,uint256,uint256,uint160))"
EXACT_INPUT_SIG = "exactInput((bytes,address,uint256,uint256))"

BALANCE_OF_SELECTOR = selector(BALANCE_OF_SIG)  # 0x70a08231
ALLOWANCE_SELECTOR = selector(ALLOWANCE_SIG)  # 0xdd62ed3e
APPROVE_SELECTOR = selector(APPROVE_SIG)  # 0x095ea7b3
TRANSFER_SELECTOR = selector(TRANSFER_SIG)  # 0xa9059cbb
NAME_SELECTOR = selector(NAME_SIG)  # 0x06fdde03
SYMBOL_SELECTOR = selector(SYMBOL_SIG)  # 0x95d89b41
DECIMALS_SELECTOR = selector(DECIMALS_SIG)  # 0x313ce567
GET_RESERVES_SELECTOR = selector(GET_RESERVES_SIG)  # 0x0902f1ac
SLOT0_SELECTOR = selector(SLOT0_SIG)  # 0x3850c7bd
LIQUIDITY_SELECTOR = selector(LIQUIDITY_SIG)  # 0x1a686502
V4_GET_SLOT0_SELECTOR = selector(V4_GET_SLOT0_SIG)
V4_GET_LIQUIDITY_SELECTOR = selector(V4_GET_LIQUIDITY_SIG)
QUOTE_EXACT_INPUT_SINGLE_SELECTOR = selector(QUOTE_EXACT_INPUT_SINGLE_SIG)  # 0xc6a5026a
SWAP_EXACT_TOKENS_SELECTOR = selector(SWAP_EXACT_TOKENS_SIG)  # 0x38ed1739
EXACT_INPUT_SINGLE_SELECTOR = selector(EXACT_INPUT_SINGLE_SIG)  # 0x04e45aaf
EXACT_INPUT_SELECTOR = selector(EXACT_INPUT_SIG)  # 0xb858183f


def encode_call(function_selector: bytes, types: Sequence[str] = (), args: Sequence[Any] = ()) -> str:
    """Build 0x-prefixed calldata from a selector and ABI arguments."""
    normalized = [
        normalize_address(a) if t == "address" else a for t, a in zip(types, args, strict=True)
    ]
    body = encode(list(types), normalized) if types else b""
    return "0x" + (function_selector + body).hex()


def hex_to_bytes(data: str | None) -> bytes:
    """Decode a 0x-prefixed hex string from a node.

    Raises:
        ValueError: If the string is not valid hex
    """
    if not data:
        return b""
    text = data[2:] if data.startswith(("0x", "0X")) else data
    try:
        return bytes.fromhex(text)
    except ValueError as err:
        raise ValueError(f"Malformed hex from node: {data[:66]}") from err


def decode_result(types: Sequence[str], data: str | bytes) -> tuple[Any, ...]:
    """Decode ABI return data.

    Raises:
        ValueError: If data is empty or too short for the types
    """
    raw = hex_to_bytes(data) if isinstance(data, str) else data
    if not raw:
        raise ValueError("Empty return data")
    try:
        return tuple(decode(list(types), raw))
    except (DecodingError, OverflowError) as err:
        raise ValueError(f"Cannot decode {list(types)} from {len(raw)} bytes") from err


def decode_string_or_bytes32(data: str | bytes) -> str:
    """Decode a token name/symbol returned as string or legacy bytes32.

    Raises:
        ValueError: If data is neither form
    """
    raw = hex_to_bytes(data) if isinstance(data, str) else data
    if len(raw) == 32:
        return raw.rstrip(b"\x00").decode("utf-8", errors="replace")
    (value,) = decode_result(["string"], raw)
    return value
