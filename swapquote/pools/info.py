"""Read-only descriptions of pools for the inspection endpoints."""

from __future__ import annotations

from decimal import Decimal, localcontext

from pydantic import BaseModel, Field

from swapquote.amm.concentrated import cl_price
from swapquote.amm.math import PriceRatio, v2_spot_price
from swapquote.constants import Network
from swapquote.models.pool import ConcentratedState, ConstantProductState, PoolRef, PoolState, PoolVersion, TokenMeta
from swapquote.models.types import Address, Uint256

# Significant digits shown for spot prices
PRICE_DIGITS = 18


def format_price(value: Decimal) -> str:
    """Plain decimal string rounded to PRICE_DIGITS significant digits."""
    with localcontext() as ctx:
        ctx.prec = PRICE_DIGITS
        return format((+value).normalize(), "f")


class PoolInfo(BaseModel):
    """State and spot price of one pool.

    V2 pools carry reserves; V3 and V4 pools carry liquidity, sqrtPriceX96
    and tick. Prices are decimal-adjusted strings.
    """

    network: Network
    version: PoolVersion
    pool_address: str = Field(alias="poolAddress", description="Pool address or V4 pool id")
    token0: Address
    token1: Address
    symbol0: str
    symbol1: str
    fee_tier: int = Field(alias="feeTier")
    tick_spacing: int | None = Field(default=None, alias="tickSpacing")
    reserve0: Uint256 | None = None
    reserve1: Uint256 | None = None
    liquidity: Uint256 | None = None
    sqrt_price_x96: Uint256 | None = Field(default=None, alias="sqrtPriceX96")
    tick: int | None = None
    token1_per_token0: str = Field(alias="token1PerToken0")
    token0_per_token1: str = Field(alias="token0PerToken1")
    fetched_at: float = Field(alias="fetchedAt")

    model_config = {"populate_by_name": True, "frozen": True}


def describe_pool(pool: PoolRef, state: PoolState, meta0: TokenMeta, meta1: TokenMeta) -> PoolInfo:
    """Combine a pool's identity, state and token metadata.

    Raises:
        InvalidReservesError: If the state cannot be priced
        TypeError: If the state does not match the pool version
    """
    if isinstance(state, ConstantProductState) is pool.version.is_concentrated:
        raise TypeError(f"{type(state).__name__} does not describe a {pool.version.value} pool")

    fields: dict[str, object] = {}
    price: PriceRatio
    if isinstance(state, ConstantProductState):
        price = v2_spot_price(state.reserve0, state.reserve1, meta0.decimals, meta1.decimals)
        fields.update(reserve0=state.reserve0, reserve1=state.reserve1)
    elif isinstance(state, ConcentratedState):
        price = cl_price(state.sqrt_price_x96, meta0.decimals, meta1.decimals)
        fields.update(
            liquidity=state.liquidity, sqrt_price_x96=state.sqrt_price_x96, tick=state.tick
        )
    else:
        raise TypeError(f"Unknown pool state: {type(state).__name__}")

    return PoolInfo(
        network=pool.network,
        version=pool.version,
        pool_address=pool.pool_address,
        token0=pool.token0,
        token1=pool.token1,
        symbol0=meta0.symbol,
        symbol1=meta1.symbol,
        fee_tier=pool.fee_tier,
        tick_spacing=pool.tick_spacing,
        token1_per_token0=format_price(price.token1_per_token0),
        token0_per_token1=format_price(price.token0_per_token1),
        fetched_at=state.fetched_at,
        **fields,
    )
