"""Time-window batching of independent RPC calls.

Calls submitted for the same network within the collection window are sent
as one JSON-RPC batch. A full batch is flushed at once. A lone call, or a
call on a network whose endpoints do not accept batches, goes out as a
plain request.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from swapquote.config import BatchConfig
from swapquote.constants import Network
from swapquote.errors import SwapQuoteError
from swapquote.rpc.gateway import RpcCall, RpcGateway

logger = structlog.get_logger()


@dataclass
class _Pending:
    call: RpcCall
    future: asyncio.Future[Any]


class RequestBatcher:
    """Collects calls per network and dispatches them through the gateway."""

    def __init__(self, gateway: RpcGateway, config: BatchConfig | None = None) -> None:
        self.gateway = gateway
        self.config = config or BatchConfig()
        self._queues: dict[Network, list[_Pending]] = {}
        self._timers: dict[Network, asyncio.TimerHandle] = {}
        self._dispatches: set[asyncio.Task[None]] = set()

    def pending(self, network: Network | str) -> int:
        """Number of calls queued and not yet flushed for a network."""
        return len(self._queues.get(Network.parse(network), ()))

    async def submit(self, network: Network | str, method: str, params: Sequence[Any] = ()) -> Any:
        """Queue a call and await its individual result.

        Raises:
            Whatever the gateway raised for this call or its batch
        """
        self.gateway.endpoints(network)
        network = Network.parse(network)
        if not self.config.enabled or not self.gateway.supports_batching(network):
            return await self.gateway.call(network, method, params)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        queue = self._queues.setdefault(network, [])
        queue.append(_Pending(RpcCall(method, tuple(params)), future))

        if len(queue) >= self.config.max_batch_size:
            self._flush(network)
        elif network not in self._timers:
            self._timers[network] = loop.call_later(
                self.config.window_seconds, self._flush, network
            )
        return await future

    async def drain(self) -> None:
        """Flush every queue and wait for all dispatches to finish."""
        for network in list(self._queues):
            self._flush(network)
        if self._dispatches:
            await asyncio.gather(*self._dispatches, return_exceptions=True)

    def _flush(self, network: Network) -> None:
        timer = self._timers.pop(network, None)
        if timer is not None:
            timer.cancel()
        batch = self._queues.pop(network, [])
        if not batch:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(network, batch))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _dispatch(self, network: Network, batch: list[_Pending]) -> None:
        if len(batch) == 1:
            pending = batch[0]
            try:
                result = await self.gateway.call(network, pending.call.method, pending.call.params)
            except Exception as e:
                _reject(pending.future, e)
            else:
                _resolve(pending.future, result)
            return

        logger.debug("rpc_batch_dispatched", network=network.value, size=len(batch))
        try:
            results = await self.gateway.call_batch(network, [p.call for p in batch])
        except Exception as e:
            for pending in batch:
                _reject(pending.future, e)
            return

        for pending, result in zip(batch, results, strict=True):
            if isinstance(result, SwapQuoteError):
                _reject(pending.future, result)
            else:
                _resolve(pending.future, result)


def _resolve(future: asyncio.Future[Any], value: Any) -> None:
    if not future.done():
        future.set_result(value)


def _reject(future: asyncio.Future[Any], error: BaseException) -> None:
    if not future.done():
        future.set_exception(error)
