"""Quote request validation.

Validation happens before any network access. Failures are reported as
swapquote.errors.ValidationError regardless of which check failed.
"""

from __future__ import annotations

from typing import Annotated, Any

import pydantic
from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator

from swapquote.constants import (
    DEFAULT_DEADLINE_SECONDS,
    MAX_DEADLINE_SECONDS,
    MAX_SLIPPAGE_BPS,
    MIN_DEADLINE_SECONDS,
    TICK_SPACING,
    ZERO_ADDRESS,
    Network,
)
from swapquote.errors import ValidationError
from swapquote.models.pool import PoolVersion
from swapquote.models.types import Address, Uint256, normalize_address


def _parse_network(value: Any) -> Any:
    if isinstance(value, str):
        return Network.parse(value)
    return value


NetworkName = Annotated[Network, BeforeValidator(_parse_network)]


class QuoteRequest(BaseModel):
    """Validated quote inputs."""

    network: NetworkName
    token_in: Address = Field(alias="tokenIn")
    token_out: Address = Field(alias="tokenOut")
    amount_in: Uint256 = Field(alias="amountIn")
    slippage_bps: int = Field(alias="slippageBps", ge=0, le=MAX_SLIPPAGE_BPS, strict=True)
    deadline: int | None = Field(default=None, description="Unix timestamp in seconds")
    sender: Address | None = Field(default=None, description="Account used for gas estimation")

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("token_in", "token_out", "sender")
    @classmethod
    def _lowercase(cls, value: str | None) -> str | None:
        return None if value is None else normalize_address(value)

    @field_validator("amount_in")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value == 0:
            raise ValueError("amountIn must be greater than zero")
        return value

    @model_validator(mode="after")
    def _distinct_tokens(self) -> QuoteRequest:
        if self.token_in == ZERO_ADDRESS or self.token_out == ZERO_ADDRESS:
            raise ValueError("Zero address is not a token")
        if self.token_in == self.token_out:
            raise ValueError("tokenIn and tokenOut must differ")
        return self


def check_deadline(
    deadline: int | None, now: int, default_seconds: int = DEFAULT_DEADLINE_SECONDS
) -> int:
    """Resolve and validate an absolute deadline.

    Returns:
        The deadline, or now + default_seconds when none is given

    Raises:
        ValidationError: If the deadline is outside [now + 60s, now + 3600s]
    """
    if deadline is None:
        return now + default_seconds
    if deadline < now + MIN_DEADLINE_SECONDS:
        raise ValidationError(f"Deadline must be at least {MIN_DEADLINE_SECONDS}s in the future")
    if deadline > now + MAX_DEADLINE_SECONDS:
        raise ValidationError(f"Deadline must be within {MAX_DEADLINE_SECONDS}s from now")
    return deadline


class PoolQuery(BaseModel):
    """Validated pool inspection inputs."""

    network: NetworkName
    token_a: Address = Field(alias="tokenA")
    token_b: Address = Field(alias="tokenB")
    fee_tier: int | None = Field(default=None, alias="feeTier")
    version: PoolVersion | None = None

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("token_a", "token_b")
    @classmethod
    def _lowercase(cls, value: str) -> str:
        return normalize_address(value)

    @field_validator("version", mode="before")
    @classmethod
    def _upper_version(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("fee_tier")
    @classmethod
    def _known_tier(cls, value: int | None) -> int | None:
        if value is not None and value not in TICK_SPACING:
            raise ValueError(f"Unsupported fee tier: {value}")
        return value

    @model_validator(mode="after")
    def _distinct_tokens(self) -> PoolQuery:
        if self.token_a == self.token_b:
            raise ValueError("tokenA and tokenB must differ")
        return self


def _validation_error(err: pydantic.ValidationError) -> ValidationError:
    details = "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'request'}: {e['msg']}" for e in err.errors()
    )
    return ValidationError(details)


def validate_request(data: dict[str, Any]) -> QuoteRequest:
    """Build a QuoteRequest, converting pydantic errors to ValidationError."""
    try:
        return QuoteRequest.model_validate(data)
    except pydantic.ValidationError as err:
        raise _validation_error(err) from err


def validate_pool_query(data: dict[str, Any]) -> PoolQuery:
    """Build a PoolQuery, converting pydantic errors to ValidationError."""
    try:
        return PoolQuery.model_validate(data)
    except pydantic.ValidationError as err:
        raise _validation_error(err) from err
