"""Quote request and response models.

Quote and QuoteFailure are the wire format of the HTTP API. Integer amounts
are held as ints and serialize to decimal strings in JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from swapquote.amm.impact import ImpactLevel, analyze_price_impact
from swapquote.constants import Network
from swapquote.errors import ErrorCode
from swapquote.models.pool import PoolRef, PoolVersion
from swapquote.models.types import Address, Uint256


class QuoteStage(str, Enum):
    """Stages of the quote state machine."""

    VALIDATING = "validating"
    RESOLVING_POOLS = "resolving_pools"
    PRICING = "pricing"
    SELECTING = "selecting"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


class RouteHop(BaseModel):
    """One pool traversal in a route."""

    hop_index: int = Field(alias="hopIndex", ge=0)
    version: PoolVersion
    pool_address: str = Field(alias="poolAddress", description="Pool address or V4 pool id")
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    fee_tier: int = Field(alias="feeTier")
    tick_spacing: int | None = Field(default=None, alias="tickSpacing")

    model_config = {"populate_by_name": True, "frozen": True}

    @classmethod
    def from_pool(cls, pool: PoolRef, token_in: str, hop_index: int = 0) -> RouteHop:
        token_in = token_in.lower()
        token_out = pool.token1 if pool.zero_for_one(token_in) else pool.token0
        return cls(
            hop_index=hop_index,
            version=pool.version,
            pool_address=pool.pool_address,
            token_in=token_in,
            token_out=token_out,
            fee_tier=pool.fee_tier,
            tick_spacing=pool.tick_spacing,
        )


class Quote(BaseModel):
    """A priced, executable swap proposal.

    Invariants: amount_out_min <= amount_out, price_impact_bps >= 0 and
    created_at + 60 <= deadline <= created_at + 3600.

    route lists the hops in execution order; version and fee_tier describe
    the first hop. price_impact_level and price_impact_warning are derived
    from price_impact_bps and appear in serialized output.
    """

    network: Network
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: Uint256 = Field(alias="amountIn")
    amount_out: Uint256 = Field(alias="amountOut")
    amount_out_min: Uint256 = Field(alias="amountOutMin")
    price_impact_bps: int = Field(alias="priceImpactBps", ge=0)
    route: tuple[RouteHop, ...]
    version: PoolVersion
    fee_tier: int = Field(alias="feeTier")
    gas_estimate: int = Field(alias="gasEstimate", ge=0, description="Gas limit incl. buffer")
    gas_price_wei: Uint256 = Field(alias="gasPriceWei")
    execution_price: str = Field(
        alias="executionPrice",
        description="Decimal-adjusted token_out received per token_in",
    )
    slippage_bps: int = Field(alias="slippageBps", ge=0)
    deadline: int = Field(description="Unix timestamp in seconds")
    created_at: int = Field(alias="createdAt", description="Unix timestamp in seconds")

    model_config = {"populate_by_name": True, "frozen": True}

    @computed_field(alias="priceImpactLevel")  # type: ignore[prop-decorator]
    @property
    def price_impact_level(self) -> ImpactLevel:
        return analyze_price_impact(self.price_impact_bps).level

    @computed_field(alias="priceImpactWarning")  # type: ignore[prop-decorator]
    @property
    def price_impact_warning(self) -> str | None:
        return analyze_price_impact(self.price_impact_bps).warning

    @property
    def hops(self) -> int:
        return len(self.route)

    @property
    def gas_cost_wei(self) -> int:
        return self.gas_estimate * self.gas_price_wei


class QuoteFailure(BaseModel):
    """Why a quote could not be produced."""

    code: ErrorCode
    message: str
    retryable: bool
    stage: QuoteStage

    model_config = {"frozen": True}


@dataclass(frozen=True)
class QuoteResult:
    """Outcome of a quote request: exactly one of quote or error is set.

    Examples:
        result = await orchestrator.quote(...)
        if result.is_ok:
            print(result.quote.amount_out)
        else:
            print(result.error.code, result.error.retryable)
    """

    quote: Quote | None = None
    error: QuoteFailure | None = None

    def __post_init__(self) -> None:
        if (self.quote is None) == (self.error is None):
            raise ValueError("QuoteResult needs exactly one of quote or error")

    @property
    def is_ok(self) -> bool:
        return self.quote is not None

    @classmethod
    def ok(cls, quote: Quote) -> QuoteResult:
        return cls(quote=quote)

    @classmethod
    def failed(
        cls,
        code: ErrorCode,
        message: str,
        *,
        retryable: bool,
        stage: QuoteStage,
    ) -> QuoteResult:
        return cls(error=QuoteFailure(code=code, message=message, retryable=retryable, stage=stage))
