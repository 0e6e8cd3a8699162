"""JSON-RPC 2.0 gateway over a pool of interchangeable endpoints.

The gateway sends one HTTP request per call (or per batch) to a single
endpoint chosen by its selector. It never fails over within a call; the
retry controller one layer up decides whether to try again. Every failure is
classified here, once, into the errors defined in swapquote.errors.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from swapquote.config import GatewayConfig
from swapquote.constants import Network
from swapquote.errors import (
    NetworkError,
    RateLimitError,
    RpcError,
    RpcTimeoutError,
    SwapQuoteError,
    ValidationError,
)
from swapquote.rpc.selection import EndpointSelector, make_selector

logger = structlog.get_logger()

# JSON-RPC error code several providers use for request limits
RATE_LIMIT_RPC_CODE = -32005
_RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "request limit")


@dataclass
class EndpointStats:
    """Request counters for one endpoint."""

    url: str
    requests: int = 0
    failures: int = 0
    total_latency_ms: int = 0
    last_error: str | None = None

    @property
    def avg_latency_ms(self) -> int:
        succeeded = self.requests - self.failures
        if succeeded <= 0:
            return 0
        return self.total_latency_ms // succeeded


@dataclass(frozen=True)
class RpcCall:
    """One method invocation inside a batch."""

    method: str
    params: Sequence[Any]


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def classify_rpc_error(error: Any) -> SwapQuoteError:
    """Turn a JSON-RPC error object into a quoter error.

    Rate-limit responses become RateLimitError so they are retried; all other
    error objects pass through as RpcError.
    """
    if not isinstance(error, dict):
        return RpcError(-32603, str(error))
    code = error.get("code", -32603)
    message = str(error.get("message", ""))
    if code == RATE_LIMIT_RPC_CODE or any(m in message.lower() for m in _RATE_LIMIT_MARKERS):
        return RateLimitError(message or "Rate limited by node")
    return RpcError(int(code) if isinstance(code, int) else -32603, message, error.get("data"))


class RpcGateway:
    """Sends JSON-RPC requests to the configured endpoints of each network.

    Construct one per process (or per test) and close it with aclose() or by
    using it as an async context manager.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        *,
        selector: EndpointSelector | None = None,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            config: Endpoints, timeout and selection strategy
            selector: Endpoint selection strategy, overriding config.strategy
            client: Pre-built HTTP client; the gateway will not close it
            transport: HTTP transport for the internally built client (tests
                pass httpx.MockTransport here)
        """
        self.config = config or GatewayConfig()
        self.selector = selector or make_selector(self.config.strategy)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.timeout),
            transport=transport,
        )
        self._ids = itertools.count(1)
        self.stats: dict[str, EndpointStats] = {}
        self.batches_sent = 0

    async def __aenter__(self) -> RpcGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def endpoints(self, network: Network | str) -> tuple[str, ...]:
        """Endpoints configured for a network.

        Raises:
            ValidationError: If the network is unknown or has no endpoints
        """
        try:
            parsed = Network.parse(network)
        except ValueError as err:
            raise ValidationError(str(err)) from err
        endpoints = self.config.endpoints_for(parsed)
        if not endpoints:
            raise ValidationError(f"No RPC endpoints configured for {parsed.value}")
        return endpoints

    def supports_batching(self, network: Network | str) -> bool:
        return self.config.supports_batching(Network.parse(network))

    async def call(self, network: Network | str, method: str, params: Sequence[Any] = ()) -> Any:
        """Invoke one JSON-RPC method.

        Returns:
            The response's result field

        Raises:
            ValidationError: Unknown network
            RpcTimeoutError: No response within the configured timeout
            RateLimitError: HTTP 429 or a rate-limit error object
            NetworkError: Transport failure, HTTP error status, or malformed body
            RpcError: Any other JSON-RPC error object
        """
        payload = self._request(method, params)
        body = await self._post(network, payload)
        if not isinstance(body, dict):
            raise NetworkError(f"Expected a JSON object from {method}, got {type(body).__name__}")
        if body.get("error") is not None:
            raise classify_rpc_error(body["error"])
        if "result" not in body:
            raise NetworkError(f"Response to {method} has neither result nor error")
        return body["result"]

    async def call_batch(
        self,
        network: Network | str,
        calls: Sequence[RpcCall],
    ) -> list[Any | SwapQuoteError]:
        """Invoke several methods in one JSON-RPC batch request.

        Request ids are assigned in order and responses are matched back by
        id, whatever order the node returns them in.

        Returns:
            One entry per call: the result, or the classified error for that call

        Raises:
            The same transport-level errors as call(); these fail every call
            in the batch.
        """
        if not calls:
            return []
        payload = [self._request(c.method, c.params) for c in calls]
        body = await self._post(network, payload)
        self.batches_sent += 1

        if isinstance(body, dict) and body.get("error") is not None:
            # Some nodes answer a rejected batch with a single error object
            raise classify_rpc_error(body["error"])
        if not isinstance(body, list):
            raise NetworkError(f"Expected a JSON array for batch, got {type(body).__name__}")

        by_id = {item.get("id"): item for item in body if isinstance(item, dict)}
        results: list[Any | SwapQuoteError] = []
        for request in payload:
            item = by_id.get(request["id"])
            if item is None:
                results.append(RpcError(-32603, f"No response for {request['method']} in batch"))
            elif item.get("error") is not None:
                results.append(classify_rpc_error(item["error"]))
            else:
                results.append(item.get("result"))
        return results

    def _request(self, method: str, params: Sequence[Any]) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "method": method, "params": list(params), "id": next(self._ids)}

    async def _post(self, network: Network | str, payload: Any) -> Any:
        endpoints = self.endpoints(network)
        url = self.selector.select(str(Network.parse(network).value), endpoints)
        stats = self.stats.setdefault(url, EndpointStats(url=url))
        stats.requests += 1
        started = time.monotonic()

        try:
            # httpx applies its timeout to each phase; this bounds the whole exchange
            async with asyncio.timeout(self.config.timeout):
                response = await self._client.post(url, json=payload)
        except (httpx.TimeoutException, TimeoutError) as e:
            raise self._failed(url, stats, RpcTimeoutError(f"Timed out calling {url}")) from e
        except httpx.HTTPError as e:
            raise self._failed(url, stats, NetworkError(f"Transport error calling {url}: {e}")) from e

        if response.status_code == 429:
            retry_after = _parse_retry_after(response.headers.get("retry-after"))
            raise self._failed(
                url, stats, RateLimitError(f"HTTP 429 from {url}", retry_after=retry_after)
            )
        if response.status_code >= 500:
            raise self._failed(
                url, stats, NetworkError(f"HTTP {response.status_code} from {url}")
            )

        try:
            body = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise RpcError(-32600, f"HTTP {response.status_code} from {url}") from e
            raise self._failed(url, stats, NetworkError(f"Malformed JSON from {url}")) from e

        stats.total_latency_ms += int((time.monotonic() - started) * 1000)
        return body

    def _failed(self, url: str, stats: EndpointStats, error: SwapQuoteError) -> SwapQuoteError:
        stats.failures += 1
        stats.last_error = error.message
        self.selector.mark_failed(url)
        logger.warning("rpc_endpoint_failed", endpoint=url, error=error.message, code=error.code.value)
        return error
