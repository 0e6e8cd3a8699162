"""Tests for endpoint selection strategies."""

import random

import pytest

from swapquote.config import SelectionStrategy
from swapquote.rpc import RandomSelector, RoundRobinSelector, make_selector
from swapquote.rpc.selection import FAILED_ENDPOINT_COOLDOWN

URLS = ("https://a", "https://b", "https://c")


class TestRoundRobin:
    """Tests for RoundRobinSelector."""

    def test_cycles_in_order(self, clock):
        selector = RoundRobinSelector(clock=clock)

        picks = [selector.select("ETHEREUM", URLS) for _ in range(4)]

        assert picks == ["https://a", "https://b", "https://c", "https://a"]

    def test_counters_per_network(self, clock):
        selector = RoundRobinSelector(clock=clock)
        selector.select("ETHEREUM", URLS)

        assert selector.select("BASE", URLS) == "https://a"

    def test_failed_endpoint_cools_down(self, clock):
        selector = RoundRobinSelector(clock=clock)
        selector.mark_failed("https://a")

        picks = {selector.select("ETHEREUM", URLS) for _ in range(6)}
        assert picks == {"https://b", "https://c"}

        clock.advance(FAILED_ENDPOINT_COOLDOWN)
        picks = {selector.select("ETHEREUM", URLS) for _ in range(6)}
        assert "https://a" in picks

    def test_all_failed_uses_full_list(self, clock):
        selector = RoundRobinSelector(clock=clock)
        for url in URLS:
            selector.mark_failed(url)

        assert selector.select("ETHEREUM", URLS) == "https://a"

    def test_no_endpoints(self, clock):
        with pytest.raises(ValueError):
            RoundRobinSelector(clock=clock).select("ETHEREUM", ())


class TestRandom:
    """Tests for RandomSelector."""

    def test_seeded_choices_are_reproducible(self, clock):
        first = RandomSelector(random.Random(7), clock=clock)
        second = RandomSelector(random.Random(7), clock=clock)

        assert [first.select("ETHEREUM", URLS) for _ in range(10)] == [
            second.select("ETHEREUM", URLS) for _ in range(10)
        ]

    def test_skips_failed(self, clock):
        selector = RandomSelector(random.Random(1), clock=clock)
        selector.mark_failed("https://b")

        assert "https://b" not in {selector.select("ETHEREUM", URLS) for _ in range(20)}


def test_make_selector():
    assert isinstance(make_selector(SelectionStrategy.ROUND_ROBIN), RoundRobinSelector)
    assert isinstance(make_selector(SelectionStrategy.RANDOM), RandomSelector)
