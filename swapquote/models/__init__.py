"""Data models for the swap quoter."""

from swapquote.models.pool import (
    ConcentratedState,
    ConstantProductState,
    PoolRef,
    PoolState,
    PoolVersion,
    TokenMeta,
)
from swapquote.models.quote import Quote, QuoteFailure, QuoteResult, QuoteStage, RouteHop
from swapquote.models.types import (
    UINT256_MAX,
    Address,
    Uint256,
    checksum,
    is_valid_address,
    normalize_address,
    sort_tokens,
)

__all__ = [
    # Pools
    "PoolVersion",
    "PoolRef",
    "PoolState",
    "ConstantProductState",
    "ConcentratedState",
    "TokenMeta",
    # Quotes
    "Quote",
    "QuoteFailure",
    "QuoteResult",
    "QuoteStage",
    "RouteHop",
    # Types
    "Address",
    "Uint256",
    "UINT256_MAX",
    "checksum",
    "is_valid_address",
    "normalize_address",
    "sort_tokens",
]
