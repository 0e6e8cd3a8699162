"""Shared type definitions for quoter models."""

from __future__ import annotations

import re
from typing import Annotated, Any

from eth_utils import to_checksum_address
from pydantic import BeforeValidator, Field, PlainSerializer

# Maximum uint256 value
UINT256_MAX = 2**256 - 1

# ASCII decimal integer; str.isdigit() also accepts other Unicode digits
DECIMAL_INTEGER = re.compile(r"[0-9]+")


def validate_uint256(value: Any) -> int:
    """Validate that a value is a uint256 given as int or decimal string.

    Args:
        value: Value to validate

    Returns:
        The value as int

    Raises:
        ValueError: If value is not a non-negative integer within uint256 range
    """
    if isinstance(value, bool):
        raise ValueError("Uint256 cannot be a boolean")
    if isinstance(value, str):
        if not DECIMAL_INTEGER.fullmatch(value):
            raise ValueError(f"Uint256 must be a decimal integer string: '{value}'")
        value = int(value)
    if not isinstance(value, int):
        raise ValueError(f"Uint256 must be string or int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"Uint256 cannot be negative: {value}")
    if value > UINT256_MAX:
        raise ValueError(f"Uint256 overflow: {value} > 2^256-1")
    return value


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# 256-bit unsigned integer; accepts int or decimal string, serializes to string
Uint256 = Annotated[
    int,
    BeforeValidator(validate_uint256),
    PlainSerializer(str, return_type=str, when_used="json"),
    Field(description="256-bit unsigned integer"),
]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a well-formed Ethereum address."""
    if not isinstance(address, str):
        return False
    if not address.startswith(("0x", "0X")):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False


def checksum(address: str) -> str:
    """Return the EIP-55 checksummed form of an address."""
    return to_checksum_address(normalize_address(address))


def sort_tokens(token_a: str, token_b: str) -> tuple[str, str]:
    """Return two token addresses lowercased, in canonical pool order.

    Pools order their tokens by numeric address value; for lowercase hex of
    equal length this matches string order.
    """
    a = normalize_address(token_a)
    b = normalize_address(token_b)
    return (a, b) if a < b else (b, a)
