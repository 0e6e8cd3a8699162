"""Constant-product pricing, price impact and slippage bounds.

All functions are pure and operate on Python ints, reproducing the integer
arithmetic of the on-chain contracts. Fees here are in basis points
(30 = 0.3%); concentrated-liquidity helpers in concentrated.py take fees in
pips (hundredths of a bip) as the pools store them.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, localcontext
from enum import Enum
from fractions import Fraction
from typing import overload

from swapquote.constants import MAX_SLIPPAGE_BPS, V2_FEE_BPS
from swapquote.errors import InsufficientLiquidityError, InvalidReservesError, ValidationError
from swapquote.models.types import DECIMAL_INTEGER

BPS = 10_000

# Enough significant digits to represent any uint256 ratio exactly
DECIMAL_PRECISION = 80


class SlippageDirection(str, Enum):
    """Which bound apply_slippage computes."""

    MIN = "min"  # minimum acceptable output
    MAX = "max"  # maximum acceptable input


@dataclass(frozen=True)
class PriceRatio:
    """Decimal-adjusted price of a pair in both directions.

    Attributes:
        token1_per_token0: Units of token1 for one whole token0
        token0_per_token1: Units of token0 for one whole token1
    """

    token1_per_token0: Decimal
    token0_per_token1: Decimal


def _check_fee_bps(fee_bps: int) -> None:
    if not 0 <= fee_bps < BPS:
        raise ValueError(f"Fee must be in [0, {BPS}) bps, got {fee_bps}")


def cp_output(reserve_in: int, reserve_out: int, amount_in: int, fee_bps: int = V2_FEE_BPS) -> int:
    """Output amount of a constant-product swap.

    Formula:
        amount_in_with_fee = amount_in * (10000 - fee_bps) // 10000
        amount_out = reserve_out * amount_in_with_fee // (reserve_in + amount_in_with_fee)

    Args:
        reserve_in: Pool reserve of the input token
        reserve_out: Pool reserve of the output token
        amount_in: Input amount
        fee_bps: Pool fee in basis points (default: 30)

    Returns:
        Output amount, rounded down

    Raises:
        InvalidReservesError: If a reserve or amount_in is not positive
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise InvalidReservesError(f"Reserves must be positive: {reserve_in}, {reserve_out}")
    if amount_in <= 0:
        raise InvalidReservesError(f"Input amount must be positive: {amount_in}")
    _check_fee_bps(fee_bps)

    amount_in_with_fee = amount_in * (BPS - fee_bps) // BPS
    return reserve_out * amount_in_with_fee // (reserve_in + amount_in_with_fee)


def cp_input(reserve_in: int, reserve_out: int, amount_out: int, fee_bps: int = V2_FEE_BPS) -> int:
    """Input amount required to receive amount_out from a constant-product pool.

    Formula:
        amount_in = reserve_in * amount_out * 10000 // ((reserve_out - amount_out) * (10000 - fee_bps)) + 1

    The result is raised where needed so that cp_output(amount_in) >= amount_out,
    since cp_output floors the fee-adjusted input.

    Raises:
        InvalidReservesError: If a reserve or amount_out is not positive
        InsufficientLiquidityError: If amount_out >= reserve_out
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise InvalidReservesError(f"Reserves must be positive: {reserve_in}, {reserve_out}")
    if amount_out <= 0:
        raise InvalidReservesError(f"Output amount must be positive: {amount_out}")
    if amount_out >= reserve_out:
        raise InsufficientLiquidityError(
            f"Requested {amount_out} but pool only holds {reserve_out}"
        )
    _check_fee_bps(fee_bps)

    numerator = reserve_in * amount_out * BPS
    denominator = (reserve_out - amount_out) * (BPS - fee_bps)
    amount_in = numerator // denominator + 1

    needed_with_fee = -(-reserve_in * amount_out // (reserve_out - amount_out))
    return max(amount_in, -(-needed_with_fee * BPS // (BPS - fee_bps)))


def cp_output_no_fee(reserve_in: int, reserve_out: int, amount_in: int) -> int:
    """Theoretical constant-product output without fees, rounded down."""
    return cp_output(reserve_in, reserve_out, amount_in, fee_bps=0)


def price_impact_bps(
    reserve_in: int,
    reserve_out: int,
    amount_in: int,
    amount_out: int,
    fee_bps: int = V2_FEE_BPS,
) -> int:
    """Deviation of the execution price from the pre-trade spot price.

    Spot price is reserve_out / reserve_in; execution price is
    amount_out / amount_in. The result includes the pool fee and is clamped
    at zero.

    The realized impact is capped by the impact of the exact fee-adjusted
    curve for the same input:

        curve = 1 - reserve_in * (10000 - fee) / (reserve_in * 10000 + amount_in * (10000 - fee))

    rounded up. Integer rounding of amount_out therefore never makes impact
    fall as amount_in grows.

    Raises:
        InvalidReservesError: If a reserve or amount_in is not positive
    """
    if reserve_in <= 0 or reserve_out <= 0 or amount_in <= 0:
        raise InvalidReservesError("Reserves and input amount must be positive")
    if amount_out < 0:
        raise InvalidReservesError(f"Output amount cannot be negative: {amount_out}")
    _check_fee_bps(fee_bps)

    realized = BPS - amount_out * reserve_in * BPS // (amount_in * reserve_out)
    retained = Fraction(reserve_in * (BPS - fee_bps), reserve_in * BPS + amount_in * (BPS - fee_bps))
    curve = BPS - math.floor(retained * BPS)
    return max(0, min(realized, curve))


def v2_spot_price(reserve0: int, reserve1: int, decimals0: int, decimals1: int) -> PriceRatio:
    """Decimal-adjusted spot price of a constant-product pool.

    Raises:
        InvalidReservesError: If either reserve is not positive
    """
    if reserve0 <= 0 or reserve1 <= 0:
        raise InvalidReservesError(f"Reserves must be positive: {reserve0}, {reserve1}")
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        price = (Decimal(reserve1) / Decimal(reserve0)).scaleb(decimals0 - decimals1)
        return PriceRatio(token1_per_token0=+price, token0_per_token1=1 / price)


def execution_price(amount_in: int, amount_out: int, decimals_in: int, decimals_out: int) -> Decimal:
    """Whole units of the output token received per whole unit of input."""
    if amount_in <= 0:
        raise InvalidReservesError(f"Input amount must be positive: {amount_in}")
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        return (Decimal(amount_out) / Decimal(amount_in)).scaleb(decimals_in - decimals_out)


def validate_slippage_bps(slippage_bps: object) -> int:
    """Check that slippage is an integer number of bps in [0, 5000].

    Raises:
        ValidationError: If slippage is not an int or is out of range
    """
    if isinstance(slippage_bps, bool) or not isinstance(slippage_bps, int):
        raise ValidationError(f"Slippage must be an integer number of bps, got {slippage_bps!r}")
    if not 0 <= slippage_bps <= MAX_SLIPPAGE_BPS:
        raise ValidationError(
            f"Slippage must be between 0 and {MAX_SLIPPAGE_BPS} bps, got {slippage_bps}"
        )
    return slippage_bps


@overload
def apply_slippage(amount: int, slippage_bps: int, direction: SlippageDirection | str = ...) -> int: ...


@overload
def apply_slippage(amount: str, slippage_bps: int, direction: SlippageDirection | str = ...) -> str: ...


def apply_slippage(
    amount: int | str,
    slippage_bps: int,
    direction: SlippageDirection | str = SlippageDirection.MIN,
) -> int | str:
    """Bound an amount by a slippage tolerance.

    MIN rounds down amount * (10000 - slippage) / 10000; MAX rounds up
    amount * (10000 + slippage) / 10000. A decimal string in gives a decimal
    string out.

    Examples:
        >>> apply_slippage("1000000000000000000", 50, "min")
        '995000000000000000'

    Raises:
        ValidationError: If slippage is outside [0, 5000] bps, the direction
            is unknown, or amount is not a non-negative integer
    """
    validate_slippage_bps(slippage_bps)
    try:
        direction = SlippageDirection(direction)
    except ValueError as err:
        raise ValidationError(f"Unknown slippage direction: {direction}") from err

    as_string = isinstance(amount, str)
    if as_string:
        if not DECIMAL_INTEGER.fullmatch(amount):
            raise ValidationError(f"Amount must be a decimal integer string: '{amount}'")
        value = int(amount)
    else:
        value = amount
    if value < 0:
        raise ValidationError(f"Amount cannot be negative: {amount}")

    if direction is SlippageDirection.MIN:
        bounded = value * (BPS - slippage_bps) // BPS
    else:
        bounded = -(-value * (BPS + slippage_bps) // BPS)

    return str(bounded) if as_string else bounded


def apply_multiplier(value: int, multiplier: float) -> int:
    """value * multiplier rounded up, computed exactly from the decimal form of multiplier."""
    return math.ceil(value * Fraction(str(multiplier)))
