"""API endpoints for the swap quoter."""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from swapquote.constants import DEFAULT_SLIPPAGE_BPS, KNOWN_TOKENS, NETWORKS, Network
from swapquote.errors import ErrorCode, SwapQuoteError
from swapquote.models.types import checksum
from swapquote.quote.orchestrator import QuoteOrchestrator, get_default_orchestrator

logger = structlog.get_logger()

router = APIRouter()

# HTTP status for each failure code; anything unlisted is a 500
ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_TOKEN: 400,
    ErrorCode.POOL_NOT_FOUND: 404,
    ErrorCode.NO_VIABLE_ROUTE: 404,
    ErrorCode.INSUFFICIENT_LIQUIDITY: 422,
    ErrorCode.INVALID_RESERVES: 422,
    ErrorCode.RATE_LIMIT_ERROR: 429,
    ErrorCode.NETWORK_ERROR: 502,
    ErrorCode.RPC_ERROR: 502,
    ErrorCode.TIMEOUT_ERROR: 504,
}


class QuoteBody(BaseModel):
    """Quote request body. Values are checked by the orchestrator."""

    token_in: str = Field(alias="tokenIn")
    token_out: str = Field(alias="tokenOut")
    amount_in: str | int = Field(alias="amountIn", description="Raw amount, decimal string")
    slippage_bps: int = Field(default=DEFAULT_SLIPPAGE_BPS, alias="slippageBps")
    deadline: int | None = None
    sender: str | None = Field(default=None, description="Address used for gas estimation")

    model_config = {"populate_by_name": True}


def get_orchestrator() -> QuoteOrchestrator:
    """Dependency provider for the orchestrator.

    Override this in tests to inject an orchestrator wired to a fake node:
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    """
    return get_default_orchestrator()


@router.post("/quote/{network}")
async def quote(
    network: str,
    body: QuoteBody,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Quote an exact-input swap on one network.

    Returns the quote with camelCase fields and amounts as decimal strings.
    Failures return {"error": {code, message, retryable, stage}} with a
    status derived from the error code.
    """
    logger.info(
        "received_quote_request",
        network=network,
        token_in=body.token_in,
        token_out=body.token_out,
        amount_in=str(body.amount_in),
    )
    result = await orchestrator.quote(
        network,
        body.token_in,
        body.token_out,
        body.amount_in,
        body.slippage_bps,
        body.deadline,
        sender=body.sender,
    )
    if result.quote is not None:
        return JSONResponse(content=result.quote.model_dump(mode="json", by_alias=True))

    assert result.error is not None
    status = ERROR_STATUS.get(result.error.code, 500)
    return JSONResponse(status_code=status, content={"error": result.error.model_dump(mode="json")})


@router.get("/networks")
async def networks() -> list[dict[str, Any]]:
    """Supported networks and the protocol versions deployed on each."""
    return [
        {
            "network": info.network.value,
            "chainId": info.chain_id,
            "v2": info.v2_factory is not None,
            "v3": True,
            "v4": info.v4_state_view is not None,
        }
        for info in NETWORKS.values()
    ]


def _error_response(error: SwapQuoteError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(error.code, 500),
        content={
            "error": {
                "code": error.code.value,
                "message": error.message,
                "retryable": error.retryable,
            }
        },
    )


@router.get("/pools/{network}")
async def pools(
    network: str,
    token_a: str = Query(alias="tokenA"),
    token_b: str = Query(alias="tokenB"),
    fee_tier: int | None = Query(default=None, alias="feeTier"),
    version: str | None = None,
    orchestrator: QuoteOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Existing pools of a pair with reserves or liquidity and spot prices."""
    try:
        infos = await orchestrator.list_pools(
            network, token_a, token_b, fee_tier=fee_tier, version=version
        )
    except SwapQuoteError as e:
        logger.info("pool_lookup_failed", network=network, code=e.code.value, error=e.message)
        return _error_response(e)
    return JSONResponse(
        content={"pools": [info.model_dump(mode="json", by_alias=True) for info in infos]}
    )


@router.get("/tokens/{network}")
async def tokens(network: str) -> JSONResponse:
    """Commonly traded tokens on a network, with checksummed addresses."""
    try:
        parsed = Network.parse(network)
    except ValueError as e:
        return JSONResponse(
            status_code=400,
            content={
                "error": {
                    "code": ErrorCode.VALIDATION_ERROR.value,
                    "message": str(e),
                    "retryable": False,
                }
            },
        )
    return JSONResponse(
        content={
            "network": parsed.value,
            "tokens": [
                {"symbol": t.symbol, "address": checksum(t.address), "decimals": t.decimals}
                for t in KNOWN_TOKENS[parsed]
            ],
        }
    )
