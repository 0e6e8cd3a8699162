"""Severity classification of price impact and trade size.

Both checks are advisory: they describe a trade, they never reject one.
Callers that want a hard limit use RouteConstraints.max_price_impact_bps.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from swapquote.errors import InvalidReservesError


class ImpactLevel(str, Enum):
    """Price impact severity, from negligible to trade-breaking."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"
    CRITICAL = "CRITICAL"


# Lower bounds in bps, exclusive: impact must exceed the bound to reach the level
IMPACT_THRESHOLDS_BPS: tuple[tuple[int, ImpactLevel], ...] = (
    (2000, ImpactLevel.CRITICAL),
    (1500, ImpactLevel.VERY_HIGH),
    (500, ImpactLevel.HIGH),
    (100, ImpactLevel.MODERATE),
)

IMPACT_WARNINGS: dict[ImpactLevel, str] = {
    ImpactLevel.CRITICAL: (
        "CRITICAL: Extremely high price impact (>20%). "
        "This trade will significantly affect the token price."
    ),
    ImpactLevel.VERY_HIGH: (
        "WARNING: Very high price impact (>15%). Consider reducing trade size significantly."
    ),
    ImpactLevel.HIGH: "CAUTION: High price impact (>5%). Trade will noticeably affect price.",
    ImpactLevel.MODERATE: "INFO: Moderate price impact (>1%). Price will be slightly affected.",
}

# Share of the input reserve, in percent
MAX_UTILIZATION_PCT = 50
LARGE_UTILIZATION_PCT = 25
MODERATE_UTILIZATION_PCT = 10


@dataclass(frozen=True)
class ImpactAnalysis:
    """Classification of one price impact value.

    Attributes:
        impact_bps: The classified impact
        level: Severity bucket
        warning: Human-readable warning, None for LOW
        should_warn: HIGH and VERY_HIGH; the caller should confirm with the user
        should_block: CRITICAL; the trade is very likely a mistake
    """

    impact_bps: int
    level: ImpactLevel
    warning: str | None
    should_warn: bool
    should_block: bool


def analyze_price_impact(impact_bps: int) -> ImpactAnalysis:
    """Classify a price impact in bps.

    Examples:
        >>> analyze_price_impact(40).level
        <ImpactLevel.LOW: 'LOW'>
        >>> analyze_price_impact(2001).should_block
        True
    """
    if impact_bps < 0:
        raise ValueError(f"Price impact cannot be negative: {impact_bps}")
    level = ImpactLevel.LOW
    for bound, candidate in IMPACT_THRESHOLDS_BPS:
        if impact_bps > bound:
            level = candidate
            break
    return ImpactAnalysis(
        impact_bps=impact_bps,
        level=level,
        warning=IMPACT_WARNINGS.get(level),
        should_warn=level in (ImpactLevel.HIGH, ImpactLevel.VERY_HIGH),
        should_block=level is ImpactLevel.CRITICAL,
    )


@dataclass(frozen=True)
class LiquidityCheck:
    """How a trade compares to the pool's input reserve.

    Attributes:
        sufficient: False when the trade exceeds half the input reserve
        utilization_pct: amount_in as a whole percentage of reserve_in, rounded down
        warning: Human-readable warning above 10% utilization
        max_trade_size: Recommended ceiling, 10% of reserve_in
    """

    sufficient: bool
    utilization_pct: int
    warning: str | None
    max_trade_size: int


def check_liquidity(reserve_in: int, reserve_out: int, amount_in: int) -> LiquidityCheck:
    """Compare a constant-product trade with the pool's reserves.

    Raises:
        InvalidReservesError: If a reserve is not positive or amount_in is negative
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise InvalidReservesError(f"Reserves must be positive: {reserve_in}, {reserve_out}")
    if amount_in < 0:
        raise InvalidReservesError(f"Input amount cannot be negative: {amount_in}")

    utilization = amount_in * 100 // reserve_in
    warning = None
    if utilization > MAX_UTILIZATION_PCT:
        warning = "Trade size exceeds 50% of pool reserves. This will cause extreme price impact."
    elif utilization > LARGE_UTILIZATION_PCT:
        warning = "Large trade relative to pool size (>25% of reserves). Expect high price impact."
    elif utilization > MODERATE_UTILIZATION_PCT:
        warning = "Moderate trade size relative to pool (>10% of reserves). Some price impact expected."

    return LiquidityCheck(
        sufficient=utilization <= MAX_UTILIZATION_PCT,
        utilization_pct=utilization,
        warning=warning,
        max_trade_size=reserve_in // 10,
    )
