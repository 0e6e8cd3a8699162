"""AMM math engine: pure pricing functions for V2, V3 and V4 pools."""

from swapquote.amm.concentrated import (
    Q96,
    cl_output_single_tick,
    cl_price,
    cl_price_impact_bps,
    tick_to_sqrt_price_x96,
)
from swapquote.amm.impact import (
    ImpactAnalysis,
    ImpactLevel,
    LiquidityCheck,
    analyze_price_impact,
    check_liquidity,
)
from swapquote.amm.math import (
    BPS,
    PriceRatio,
    SlippageDirection,
    apply_multiplier,
    apply_slippage,
    cp_input,
    cp_output,
    cp_output_no_fee,
    execution_price,
    price_impact_bps,
    v2_spot_price,
    validate_slippage_bps,
)

__all__ = [
    # Constant product
    "cp_output",
    "cp_input",
    "cp_output_no_fee",
    "price_impact_bps",
    "v2_spot_price",
    # Concentrated liquidity
    "cl_price",
    "cl_price_impact_bps",
    "cl_output_single_tick",
    "tick_to_sqrt_price_x96",
    "Q96",
    # Severity
    "analyze_price_impact",
    "check_liquidity",
    "ImpactAnalysis",
    "ImpactLevel",
    "LiquidityCheck",
    # Bounds
    "apply_slippage",
    "validate_slippage_bps",
    "execution_price",
    "SlippageDirection",
    "PriceRatio",
    "apply_multiplier",
    "BPS",
]
