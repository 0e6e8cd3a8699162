"""De-duplication of concurrent identical RPC calls."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog
from eth_utils import keccak

from swapquote.constants import Network

logger = structlog.get_logger()

T = TypeVar("T")


def _canonical(value: Any) -> Any:
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        return value.lower()
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [_canonical(v) for v in value]
    return value


def dedup_key(network: Network | str, method: str, params: Sequence[Any]) -> str:
    """Endpoint-independent identity of an RPC call.

    Hex strings are lowercased and object keys sorted before hashing, so
    calls that differ only in address case or key order share a key.
    """
    canonical = json.dumps(
        [Network.parse(network).value, method, _canonical(list(params))],
        sort_keys=True,
        separators=(",", ":"),
    )
    return "0x" + keccak(text=canonical).hex()


@dataclass
class InFlightRequest(Generic[T]):
    """A call that has been dispatched and not yet settled."""

    key: str
    task: asyncio.Task[T]
    subscribers: int = 1


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Subscribers see the exception through their own awaits
    if not task.cancelled():
        task.exception()


class RequestCoalescer:
    """Joins concurrent calls with the same key onto one underlying task.

    Every subscriber receives the same result or the same exception. The
    in-flight entry is removed by the task itself just before it settles, so
    a call arriving after settlement starts a fresh request. Cancelling one
    subscriber does not cancel the shared task.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, InFlightRequest[Any]] = {}
        self.dispatched = 0
        self.deduplicated = 0

    def __len__(self) -> int:
        return len(self._in_flight)

    def in_flight(self, key: str) -> InFlightRequest[Any] | None:
        return self._in_flight.get(key)

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        """Await factory(), or join an identical call already in flight."""
        entry = self._in_flight.get(key)
        if entry is None:
            task = asyncio.get_running_loop().create_task(self._settle(key, factory))
            task.add_done_callback(_consume_exception)
            entry = InFlightRequest(key=key, task=task)
            self._in_flight[key] = entry
            self.dispatched += 1
        else:
            entry.subscribers += 1
            self.deduplicated += 1
            logger.debug("rpc_call_coalesced", key=key, subscribers=entry.subscribers)
        return await asyncio.shield(entry.task)

    async def _settle(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            self._in_flight.pop(key, None)
