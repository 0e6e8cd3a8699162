"""Pool and token descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from swapquote.constants import Network


class PoolVersion(str, Enum):
    """AMM design generation.

    V2 is constant-product; V3 and V4 are concentrated-liquidity.
    """

    V2 = "V2"
    V3 = "V3"
    V4 = "V4"

    @property
    def is_concentrated(self) -> bool:
        return self is not PoolVersion.V2


@dataclass(frozen=True)
class PoolRef:
    """Identity of a deployed pool.

    Attributes:
        network: Network the pool lives on
        version: Pool design generation
        pool_address: Contract address, or the 32-byte pool id for V4
        token0: Lower-sorted token (lowercase)
        token1: Higher-sorted token (lowercase)
        fee_tier: Fee in hundredths of a bip (3000 = 0.3%)
        tick_spacing: Tick spacing for concentrated pools, None for V2
    """

    network: Network
    version: PoolVersion
    pool_address: str
    token0: str
    token1: str
    fee_tier: int
    tick_spacing: int | None = None

    def __post_init__(self) -> None:
        if self.token0 >= self.token1:
            raise ValueError(f"Pool tokens not in canonical order: {self.token0}, {self.token1}")

    def zero_for_one(self, token_in: str) -> bool:
        """True if swapping token_in means selling token0."""
        token_in = token_in.lower()
        if token_in == self.token0:
            return True
        if token_in == self.token1:
            return False
        raise ValueError(f"Token {token_in} is not in pool {self.pool_address}")

    @property
    def sort_key(self) -> tuple[str, int, str]:
        return (self.version.value, self.fee_tier, self.pool_address)


@dataclass(frozen=True)
class ConstantProductState:
    """Reserves of a V2 pool at fetch time."""

    reserve0: int
    reserve1: int
    fetched_at: float

    @property
    def is_empty(self) -> bool:
        return self.reserve0 == 0 or self.reserve1 == 0

    def reserves_for(self, zero_for_one: bool) -> tuple[int, int]:
        """Return (reserve_in, reserve_out) for a swap direction."""
        if zero_for_one:
            return self.reserve0, self.reserve1
        return self.reserve1, self.reserve0


@dataclass(frozen=True)
class ConcentratedState:
    """Active-range state of a V3 or V4 pool at fetch time."""

    liquidity: int
    sqrt_price_x96: int
    tick: int
    fetched_at: float

    @property
    def is_empty(self) -> bool:
        return self.liquidity == 0 or self.sqrt_price_x96 == 0


PoolState = ConstantProductState | ConcentratedState


@dataclass(frozen=True)
class TokenMeta:
    """ERC-20 metadata.

    Attributes:
        network: Network the token lives on
        address: EIP-55 checksummed address
        name: Token name
        symbol: Token symbol
        decimals: Decimal places, in [0, 77]
    """

    network: Network
    address: str
    name: str
    symbol: str
    decimals: int
