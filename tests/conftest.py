"""Pytest configuration and fixtures."""

import pytest

from swapquote.cache import CacheManager
from tests.helpers import (
    TOKEN_DECIMALS,
    TOKEN_SYMBOLS,
    FakeNode,
    RecordingSleep,
    make_client,
)


class ManualClock:
    """Controllable monotonic clock for cache and selector tests.

    Usage:
        clock = ManualClock()
        cache = CacheManager(clock=clock)
        clock.advance(31)
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    """A manual clock starting at t=1000."""
    return ManualClock()


@pytest.fixture
def cache(clock: ManualClock) -> CacheManager:
    """A cache driven by the manual clock."""
    return CacheManager(clock=clock)


@pytest.fixture
def node() -> FakeNode:
    """A fake Ethereum node that knows the common test tokens."""
    fake = FakeNode()
    for address, decimals in TOKEN_DECIMALS.items():
        fake.add_token(address, TOKEN_SYMBOLS[address], decimals)
    return fake


@pytest.fixture
def sleep() -> RecordingSleep:
    """Records retry backoff delays instead of sleeping."""
    return RecordingSleep()


@pytest.fixture
async def client(node: FakeNode, sleep: RecordingSleep):
    """An unbatched RpcClient talking to the fake node."""
    rpc = make_client(node, sleep=sleep)
    yield rpc
    await rpc.aclose()


@pytest.fixture
async def batching_client(node: FakeNode, sleep: RecordingSleep):
    """A batching RpcClient talking to the fake node."""
    rpc = make_client(node, batching=True, sleep=sleep)
    yield rpc
    await rpc.aclose()
