"""Endpoint selection strategies for the RPC gateway.

A selector picks one endpoint per call. Endpoints that recently failed are
skipped for a cooldown period so a retry lands elsewhere; when every
endpoint is cooling down the full list is used again.
"""

from __future__ import annotations

import random
import time
from collections.abc import Callable, Sequence
from typing import Protocol

from swapquote.config import SelectionStrategy

# Failed endpoints are skipped for this long (seconds)
FAILED_ENDPOINT_COOLDOWN = 5 * 60


class EndpointSelector(Protocol):
    """Picks the endpoint for the next call on a network."""

    def select(self, network: str, endpoints: Sequence[str]) -> str:
        """Return one of endpoints."""
        ...

    def mark_failed(self, endpoint: str) -> None:
        """Record a transient failure of an endpoint."""
        ...


class _CooldownSelector:
    def __init__(
        self,
        cooldown: float = FAILED_ENDPOINT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cooldown = cooldown
        self._clock = clock
        self._failed_at: dict[str, float] = {}

    def mark_failed(self, endpoint: str) -> None:
        self._failed_at[endpoint] = self._clock()

    def healthy(self, endpoints: Sequence[str]) -> list[str]:
        """Endpoints not cooling down, or all of them if none qualify."""
        if not endpoints:
            raise ValueError("No endpoints configured")
        now = self._clock()
        usable = [
            e for e in endpoints if now - self._failed_at.get(e, -self.cooldown) >= self.cooldown
        ]
        return usable or list(endpoints)


class RoundRobinSelector(_CooldownSelector):
    """Cycles through healthy endpoints per network, deterministically."""

    def __init__(
        self,
        cooldown: float = FAILED_ENDPOINT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(cooldown, clock)
        self._counters: dict[str, int] = {}

    def select(self, network: str, endpoints: Sequence[str]) -> str:
        candidates = self.healthy(endpoints)
        index = self._counters.get(network, 0)
        self._counters[network] = index + 1
        return candidates[index % len(candidates)]


class RandomSelector(_CooldownSelector):
    """Picks a healthy endpoint uniformly at random.

    Pass a seeded random.Random to make choices reproducible.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        cooldown: float = FAILED_ENDPOINT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(cooldown, clock)
        self._rng = rng or random.Random()

    def select(self, network: str, endpoints: Sequence[str]) -> str:
        return self._rng.choice(self.healthy(endpoints))


def make_selector(strategy: SelectionStrategy) -> EndpointSelector:
    """Build the selector for a configured strategy."""
    if strategy is SelectionStrategy.RANDOM:
        return RandomSelector()
    return RoundRobinSelector()
