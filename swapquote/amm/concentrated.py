"""Concentrated-liquidity price math (UniswapV3 / V4).

Prices are Q64.96 square roots: sqrt_price_x96 = sqrt(token1/token0) * 2^96,
in raw token units. Swap fees are in pips (hundredths of a bip, 3000 = 0.3%).
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from swapquote.amm.math import BPS, DECIMAL_PRECISION, PriceRatio
from swapquote.errors import InsufficientLiquidityError, InvalidReservesError

Q96 = 2**96
Q192 = Q96 * Q96
PIPS = 1_000_000

# TickMath bounds
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def _check_sqrt_price(sqrt_price_x96: int) -> None:
    if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
        raise InvalidReservesError(f"sqrtPriceX96 out of range: {sqrt_price_x96}")


def cl_price(sqrt_price_x96: int, decimals0: int, decimals1: int) -> PriceRatio:
    """Convert a Q64.96 square-root price into a decimal-adjusted price ratio.

    price(token1 per token0) = (sqrt_price_x96 / 2^96)^2 * 10^(decimals0 - decimals1)

    Args:
        sqrt_price_x96: Pool square-root price
        decimals0: Decimals of token0
        decimals1: Decimals of token1

    Returns:
        The price in both directions

    Raises:
        InvalidReservesError: If the square-root price is outside TickMath bounds
    """
    _check_sqrt_price(sqrt_price_x96)
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        raw = Decimal(sqrt_price_x96 * sqrt_price_x96) / Decimal(Q192)
        price = raw.scaleb(decimals0 - decimals1)
        return PriceRatio(token1_per_token0=price, token0_per_token1=1 / price)


def cl_price_impact_bps(
    sqrt_price_x96: int,
    amount_in: int,
    amount_out: int,
    zero_for_one: bool,
) -> int:
    """Deviation of a realized swap from the pool's pre-trade spot price.

    Includes the pool fee; clamped at zero.

    Raises:
        InvalidReservesError: If amount_in is not positive or the price is invalid
    """
    _check_sqrt_price(sqrt_price_x96)
    if amount_in <= 0:
        raise InvalidReservesError(f"Input amount must be positive: {amount_in}")

    price_sq = sqrt_price_x96 * sqrt_price_x96
    if zero_for_one:
        # spot out = amount_in * price_sq / Q192
        realized = amount_out * Q192 * BPS // (amount_in * price_sq)
    else:
        # spot out = amount_in * Q192 / price_sq
        realized = amount_out * price_sq * BPS // (amount_in * Q192)
    return max(0, BPS - realized)


def _next_sqrt_price_from_amount0(sqrt_price_x96: int, liquidity: int, amount: int) -> int:
    # getNextSqrtPriceFromAmount0RoundingUp, adding token0
    numerator = liquidity << 96
    denominator = numerator + amount * sqrt_price_x96
    return -(-numerator * sqrt_price_x96 // denominator)


def _next_sqrt_price_from_amount1(sqrt_price_x96: int, liquidity: int, amount: int) -> int:
    # getNextSqrtPriceFromAmount1RoundingDown, adding token1
    return sqrt_price_x96 + (amount << 96) // liquidity


def _amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return ((liquidity << 96) * (sqrt_b - sqrt_a) // sqrt_b) // sqrt_a


def _amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int) -> int:
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    return liquidity * (sqrt_b - sqrt_a) // Q96


def cl_output_single_tick(
    liquidity: int,
    sqrt_price_x96: int,
    amount_in: int,
    fee_pips: int,
    zero_for_one: bool,
) -> tuple[int, int]:
    """Exact-input swap assuming the active liquidity covers the whole trade.

    Follows SwapMath.computeSwapStep for a single step with no price limit.
    Initialized ticks that would be crossed are not consulted, so results
    for trades that leave the current range overstate the output.

    Args:
        liquidity: Active in-range liquidity
        sqrt_price_x96: Current square-root price
        amount_in: Input amount including fee
        fee_pips: Pool fee in pips (3000 = 0.3%)
        zero_for_one: True when selling token0 for token1

    Returns:
        Tuple of (amount_out, sqrt_price_after)

    Raises:
        InvalidReservesError: If amount_in is not positive or the price is invalid
        InsufficientLiquidityError: If the pool has no active liquidity or the
            trade would push the price past TickMath bounds
    """
    _check_sqrt_price(sqrt_price_x96)
    if amount_in <= 0:
        raise InvalidReservesError(f"Input amount must be positive: {amount_in}")
    if liquidity <= 0:
        raise InsufficientLiquidityError("Pool has no active liquidity")
    if not 0 <= fee_pips < PIPS:
        raise ValueError(f"Fee must be in [0, {PIPS}) pips, got {fee_pips}")

    amount_less_fee = amount_in * (PIPS - fee_pips) // PIPS
    if zero_for_one:
        sqrt_next = _next_sqrt_price_from_amount0(sqrt_price_x96, liquidity, amount_less_fee)
        if sqrt_next <= MIN_SQRT_RATIO:
            raise InsufficientLiquidityError("Swap exceeds available liquidity")
        amount_out = _amount1_delta(sqrt_next, sqrt_price_x96, liquidity)
    else:
        sqrt_next = _next_sqrt_price_from_amount1(sqrt_price_x96, liquidity, amount_less_fee)
        if sqrt_next >= MAX_SQRT_RATIO:
            raise InsufficientLiquidityError("Swap exceeds available liquidity")
        amount_out = _amount0_delta(sqrt_price_x96, sqrt_next, liquidity)

    return amount_out, sqrt_next


def tick_to_sqrt_price_x96(tick: int) -> int:
    """Approximate square-root price at a tick, for diagnostics and tests."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return int((Decimal("1.0001") ** tick).sqrt() * Q96)
