"""Pool discovery and state reads."""

from swapquote.pools.addresses import (
    create2_address,
    v2_pair_address,
    v3_pool_address,
    v4_pool_id,
)
from swapquote.pools.info import PoolInfo, describe_pool
from swapquote.pools.resolver import PoolResolver

__all__ = [
    "PoolInfo",
    "PoolResolver",
    "create2_address",
    "describe_pool",
    "v2_pair_address",
    "v3_pool_address",
    "v4_pool_id",
]
