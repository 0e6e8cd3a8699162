"""Error classes for the swap quoter.

Every error carries a stable ErrorCode and a retryable flag so callers can
decide whether to try again without inspecting exception types. Transient
transport failures are classified once, at the RPC gateway, into
NetworkError, RpcTimeoutError or RateLimitError.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error codes reported in quote failures."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    RPC_ERROR = "RPC_ERROR"
    POOL_NOT_FOUND = "POOL_NOT_FOUND"
    NO_VIABLE_ROUTE = "NO_VIABLE_ROUTE"
    INSUFFICIENT_LIQUIDITY = "INSUFFICIENT_LIQUIDITY"
    INVALID_RESERVES = "INVALID_RESERVES"
    INVALID_TOKEN = "INVALID_TOKEN"
    GAS_ESTIMATION_FAILED = "GAS_ESTIMATION_FAILED"
    BROADCAST_FAILED = "BROADCAST_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SwapQuoteError(Exception):
    """Base error for quoting operations."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.code.value


class ValidationError(SwapQuoteError):
    """Request parameters are malformed or out of range."""

    code = ErrorCode.VALIDATION_ERROR


class TransientError(SwapQuoteError):
    """Failure that may succeed if the request is repeated."""

    retryable = True


class NetworkError(TransientError):
    """Transport failure, HTTP 5xx, or an unreadable node response."""

    code = ErrorCode.NETWORK_ERROR


class RpcTimeoutError(TransientError):
    """The node did not answer within the configured timeout."""

    code = ErrorCode.TIMEOUT_ERROR


class RateLimitError(TransientError):
    """The node rejected the request for exceeding its rate limit."""

    code = ErrorCode.RATE_LIMIT_ERROR

    def __init__(self, message: str = "", retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RpcError(SwapQuoteError):
    """The node returned a JSON-RPC error object."""

    code = ErrorCode.RPC_ERROR

    def __init__(self, rpc_code: int, message: str, data: object = None) -> None:
        super().__init__(f"RPC error {rpc_code}: {message}")
        self.rpc_code = rpc_code
        self.rpc_message = message
        self.data = data

    @property
    def is_revert(self) -> bool:
        """True if the error reports an EVM revert."""
        return self.rpc_code == 3 or "revert" in self.rpc_message.lower()


class PoolNotFoundError(SwapQuoteError):
    """No deployed, non-empty pool exists for the requested pair."""

    code = ErrorCode.POOL_NOT_FOUND


class NoViableRouteError(SwapQuoteError):
    """No candidate route passed the selection constraints."""

    code = ErrorCode.NO_VIABLE_ROUTE


class InsufficientLiquidityError(SwapQuoteError):
    """The pool cannot provide the requested amount."""

    code = ErrorCode.INSUFFICIENT_LIQUIDITY


class InvalidReservesError(SwapQuoteError):
    """Reserves or amounts passed to AMM math are not positive."""

    code = ErrorCode.INVALID_RESERVES


class InvalidTokenError(SwapQuoteError):
    """The address is not a readable ERC-20 token."""

    code = ErrorCode.INVALID_TOKEN


class GasEstimationFailedError(SwapQuoteError):
    """Gas estimation failed; callers fall back to a default limit."""

    code = ErrorCode.GAS_ESTIMATION_FAILED


class BroadcastError(SwapQuoteError):
    """The node rejected or mangled a raw transaction submission."""

    code = ErrorCode.BROADCAST_FAILED


def is_retryable(error: BaseException) -> bool:
    """Default retry classifier: only transient quoter errors are retried."""
    return isinstance(error, SwapQuoteError) and error.retryable
