"""Quote orchestration: validation, gas and the quote state machine."""

from swapquote.quote.gas import GasEstimator
from swapquote.quote.orchestrator import QuoteOrchestrator, get_default_orchestrator
from swapquote.quote.validation import (
    PoolQuery,
    QuoteRequest,
    check_deadline,
    validate_pool_query,
    validate_request,
)

__all__ = [
    "QuoteOrchestrator",
    "get_default_orchestrator",
    "GasEstimator",
    "PoolQuery",
    "QuoteRequest",
    "check_deadline",
    "validate_pool_query",
    "validate_request",
]
