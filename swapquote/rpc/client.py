"""Resilient RPC access used by everything above the network layer.

A call passes through, in order: the coalescer (identical concurrent calls
share one outcome), the retry controller (transient failures are retried
with backoff), the batcher (calls within the window share one HTTP request)
and finally the gateway.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from swapquote.config import Settings
from swapquote.constants import Network
from swapquote.errors import GasEstimationFailedError, RpcError, ValidationError
from swapquote.rpc.batcher import RequestBatcher
from swapquote.rpc.coalescer import RequestCoalescer, dedup_key
from swapquote.rpc.gateway import RpcGateway
from swapquote.rpc.retry import RetryController

logger = structlog.get_logger()


def parse_quantity(value: Any) -> int:
    """Parse a JSON-RPC hex quantity.

    Raises:
        ValueError: If value is not a hex string
    """
    if not isinstance(value, str) or not value.startswith("0x"):
        raise ValueError(f"Expected hex quantity, got {value!r}")
    return int(value, 16) if len(value) > 2 else 0


class RpcClient:
    """Coalescing, retrying, batching JSON-RPC client."""

    def __init__(
        self,
        gateway: RpcGateway,
        *,
        batcher: RequestBatcher | None = None,
        coalescer: RequestCoalescer | None = None,
        retry: RetryController | None = None,
    ) -> None:
        self.gateway = gateway
        self.batcher = batcher or RequestBatcher(gateway)
        self.coalescer = coalescer or RequestCoalescer()
        self.retry = retry or RetryController()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RpcClient:
        gateway = RpcGateway(settings.gateway, transport=transport)
        return cls(
            gateway,
            batcher=RequestBatcher(gateway, settings.batch),
            retry=RetryController(settings.retry),
        )

    async def aclose(self) -> None:
        await self.batcher.drain()
        await self.gateway.aclose()

    async def call(
        self,
        network: Network | str,
        method: str,
        params: Sequence[Any] = (),
        *,
        retry: bool = True,
        coalesce: bool = True,
    ) -> Any:
        """Invoke a JSON-RPC method.

        Args:
            network: Target network
            method: JSON-RPC method name
            params: Method parameters
            retry: Retry transient failures
            coalesce: Share the outcome with identical concurrent calls

        Raises:
            ValidationError: Unknown network
            SwapQuoteError: The classified failure of the final attempt
        """
        try:
            network = Network.parse(network)
        except ValueError as err:
            raise ValidationError(str(err)) from err
        params = tuple(params)

        async def attempt() -> Any:
            return await self.batcher.submit(network, method, params)

        async def with_retry() -> Any:
            if not retry:
                return await attempt()
            return await self.retry.run(attempt, name=method)

        if not coalesce:
            return await with_retry()
        return await self.coalescer.run(dedup_key(network, method, params), with_retry)

    async def eth_call(
        self,
        network: Network | str,
        to: str,
        data: str,
        block: str = "latest",
    ) -> str:
        """Execute a read-only contract call and return the raw hex result."""
        result = await self.call(network, "eth_call", [{"to": to.lower(), "data": data}, block])
        if not isinstance(result, str):
            raise RpcError(-32603, f"eth_call returned {type(result).__name__}")
        return result

    async def get_code(self, network: Network | str, address: str) -> str:
        return await self.call(network, "eth_getCode", [address.lower(), "latest"])

    async def gas_price(self, network: Network | str) -> int:
        return parse_quantity(await self.call(network, "eth_gasPrice"))

    async def transaction_count(self, network: Network | str, address: str) -> int:
        """Pending nonce of an account."""
        return parse_quantity(
            await self.call(network, "eth_getTransactionCount", [address.lower(), "pending"])
        )

    async def estimate_gas(self, network: Network | str, tx: dict[str, Any]) -> int:
        """Estimate gas for a transaction.

        Raises:
            GasEstimationFailedError: If the node rejects the estimate
        """
        try:
            return parse_quantity(await self.call(network, "eth_estimateGas", [tx]))
        except (RpcError, ValueError) as err:
            raise GasEstimationFailedError(str(err)) from err

    async def send_raw_transaction(self, network: Network | str, raw_tx: str) -> Any:
        """Broadcast a signed transaction; never retried or coalesced."""
        return await self.call(
            network, "eth_sendRawTransaction", [raw_tx], retry=False, coalesce=False
        )
