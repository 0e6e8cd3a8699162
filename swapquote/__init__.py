"""Multi-AMM swap quoter for Uniswap-style pools."""

from swapquote.models.quote import Quote, QuoteResult
from swapquote.quote.orchestrator import QuoteOrchestrator, get_default_orchestrator

__version__ = "0.1.0"
__all__ = ["Quote", "QuoteOrchestrator", "QuoteResult", "get_default_orchestrator", "__version__"]
