"""Tests for the quote orchestrator against a fake node."""

import asyncio
import math

import httpx
import pytest

from swapquote.amm.math import cp_output, price_impact_bps
from swapquote.config import QuoterSettings
from swapquote.constants import NETWORKS, Network
from swapquote.errors import ErrorCode, PoolNotFoundError, ValidationError
from swapquote.models.pool import PoolVersion
from swapquote.models.quote import QuoteStage
from swapquote.quote import orchestrator as orchestrator_module
from swapquote.quote import get_default_orchestrator
from swapquote.routing import RouteConstraints
from swapquote.rpc import abi
from tests.helpers import (
    DAI,
    NOW,
    SENDER,
    STATE_VIEW,
    USDC,
    USDT,
    WETH,
    Revert,
    RpcFault,
    make_orchestrator,
    sqrt_price_x96,
)

RESERVE_USDC = 2_000_000 * 10**6
RESERVE_WETH = 1_000 * 10**18
SQRT_PRICE = sqrt_price_x96(RESERVE_USDC, RESERVE_WETH)
LIQUIDITY = math.isqrt(RESERVE_USDC * RESERVE_WETH)


def seed_weth_usdc(node):
    """V2 pair plus V3 pools at 0.05% and 0.3%; the 0.05% pool quotes best."""
    node.add_v2_pair(WETH, USDC, RESERVE_WETH, RESERVE_USDC)
    node.add_v3_pool(WETH, USDC, 500, SQRT_PRICE, LIQUIDITY)
    node.add_v3_pool(WETH, USDC, 3000, SQRT_PRICE, LIQUIDITY)
    node.set_v3_quote(WETH, USDC, 500, lambda amount: amount * 1_995 // 10**12)
    node.set_v3_quote(WETH, USDC, 3000, lambda amount: amount * 1_990 // 10**12)


@pytest.fixture
async def orchestrator(node):
    orch = make_orchestrator(node)
    yield orch
    await orch.aclose()


class TestHappyPath:
    """Tests for successful quotes."""

    async def test_best_pool_selected(self, orchestrator, node):
        seed_weth_usdc(node)

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18, slippage_bps=50)

        assert result.is_ok
        assert result.error is None
        quote = result.quote
        assert quote.version is PoolVersion.V3
        assert quote.fee_tier == 500
        assert quote.amount_out == 1_995 * 10**6
        assert quote.amount_out_min == 1_985_025_000
        assert quote.route[0].token_in == WETH
        assert quote.route[0].token_out == USDC
        assert quote.execution_price == "1995"
        assert quote.gas_estimate == 132_000
        assert quote.gas_price_wei == node.gas_price

    async def test_deadline_and_timestamps(self, orchestrator, node):
        seed_weth_usdc(node)

        quote = (await orchestrator.quote("ethereum", WETH, USDC, 10**18)).quote

        assert quote.created_at == NOW
        assert quote.deadline == NOW + 1200
        assert quote.slippage_bps == 50

    async def test_explicit_deadline(self, orchestrator, node):
        seed_weth_usdc(node)

        quote = (await orchestrator.quote("ethereum", WETH, USDC, 10**18, deadline=NOW + 90)).quote

        assert quote.deadline == NOW + 90

    @pytest.mark.parametrize("slippage", [0, 1, 50, 500, 5000])
    async def test_min_output_bound(self, orchestrator, node, slippage):
        seed_weth_usdc(node)

        quote = (await orchestrator.quote("ethereum", WETH, USDC, 10**18, slippage)).quote

        assert quote.amount_out_min <= quote.amount_out
        assert quote.amount_out_min == quote.amount_out * (10_000 - slippage) // 10_000
        assert quote.price_impact_bps >= 0

    async def test_v2_wins_when_v3_pools_revert(self, orchestrator, node):
        node.add_v2_pair(WETH, USDC, RESERVE_WETH, RESERVE_USDC)
        node.add_v3_pool(WETH, USDC, 3000, SQRT_PRICE, LIQUIDITY)
        node.set_v3_quote(WETH, USDC, 3000, Revert("SPL"))

        quote = (await orchestrator.quote("ethereum", WETH, USDC, 10**18)).quote

        assert quote.version is PoolVersion.V2
        assert 1_990 * 10**6 < quote.amount_out < 1_995 * 10**6

    async def test_decimal_string_amount(self, orchestrator, node):
        seed_weth_usdc(node)

        result = await orchestrator.quote("ETHEREUM", WETH, USDC, "1000000000000000000")

        assert result.quote.amount_in == 10**18

    async def test_v4_pool_when_configured(self, node):
        node.add_v4_pool(STATE_VIEW, WETH, USDC, 3000, SQRT_PRICE, LIQUIDITY)
        orch = make_orchestrator(
            node, settings=QuoterSettings(v4_state_view={Network.ETHEREUM: STATE_VIEW})
        )

        result = await orch.quote("ethereum", WETH, USDC, 10**18)
        await orch.aclose()

        assert result.quote.version is PoolVersion.V4
        assert result.quote.route[0].pool_address.startswith("0x")
        assert len(result.quote.route[0].pool_address) == 66


class TestCaching:
    """Tests for quote and route caching."""

    async def test_identical_requests_are_idempotent(self, orchestrator, node):
        seed_weth_usdc(node)

        first = await orchestrator.quote("ethereum", WETH, USDC, 10**18)
        calls = len(node.calls)
        second = await orchestrator.quote("ethereum", WETH, USDC, 10**18)

        assert second.quote == first.quote
        assert len(node.calls) == calls

    async def test_route_reused_for_new_amount(self, orchestrator, node):
        seed_weth_usdc(node)
        pool_500 = orchestrator.resolver.candidates("ethereum", WETH, USDC, PoolVersion.V3, 500)[0]

        await orchestrator.quote("ethereum", WETH, USDC, 10**18)
        slot0_reads = node.eth_calls_to(pool_500.pool_address, abi.SLOT0_SELECTOR)
        quoter_calls = node.eth_calls_to(NETWORKS[Network.ETHEREUM].v3_quoter)
        result = await orchestrator.quote("ethereum", WETH, USDC, 2 * 10**18)

        assert result.quote.amount_out == 3_990 * 10**6
        assert node.eth_calls_to(pool_500.pool_address, abi.SLOT0_SELECTOR) == slot0_reads
        assert node.eth_calls_to(NETWORKS[Network.ETHEREUM].v3_quoter) > quoter_calls


class TestFailures:
    """Tests for failure reporting; quote() never raises."""

    async def test_validation_makes_no_calls(self, orchestrator, node):
        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18, slippage_bps=6000)

        assert not result.is_ok
        assert result.quote is None
        assert result.error.code is ErrorCode.VALIDATION_ERROR
        assert result.error.stage is QuoteStage.VALIDATING
        assert not result.error.retryable
        assert node.calls == []

    @pytest.mark.parametrize(
        ("network", "token_out", "amount", "deadline"),
        [
            ("solana", USDC, 10**18, None),
            ("ethereum", WETH, 10**18, None),
            ("ethereum", USDC, 0, None),
            ("ethereum", USDC, 10**18, NOW + 30),
            ("ethereum", USDC, 10**18, NOW + 7200),
        ],
        ids=["network", "same-token", "zero-amount", "deadline-soon", "deadline-far"],
    )
    async def test_invalid_requests(self, orchestrator, node, network, token_out, amount, deadline):
        result = await orchestrator.quote(network, WETH, token_out, amount, deadline=deadline)

        assert result.error.code is ErrorCode.VALIDATION_ERROR
        assert node.calls == []

    async def test_malformed_sender_is_validation_error(self, orchestrator, node):
        seed_weth_usdc(node)

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18, sender="not-an-address")

        assert result.error.code is ErrorCode.VALIDATION_ERROR
        assert result.error.stage is QuoteStage.VALIDATING
        assert "sender" in result.error.message
        assert node.calls == []

    async def test_no_pools(self, orchestrator):
        result = await orchestrator.quote("ethereum", WETH, DAI, 10**18)

        assert result.error.code is ErrorCode.POOL_NOT_FOUND
        assert result.error.stage is QuoteStage.RESOLVING_POOLS
        assert not result.error.retryable

    async def test_unknown_token(self, orchestrator):
        result = await orchestrator.quote("ethereum", WETH, "0x" + "44" * 20, 10**18)

        assert result.error.code is ErrorCode.INVALID_TOKEN

    async def test_insufficient_liquidity(self, orchestrator, node):
        node.add_v3_pool(WETH, USDC, 3000, SQRT_PRICE, LIQUIDITY)
        node.set_v3_quote(WETH, USDC, 3000, Revert("SPL"))

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**24)

        assert result.error.code is ErrorCode.INSUFFICIENT_LIQUIDITY
        assert result.error.stage is QuoteStage.PRICING

    async def test_all_routes_filtered(self, orchestrator, node):
        seed_weth_usdc(node)

        result = await orchestrator.quote(
            "ethereum", WETH, USDC, 10**18, constraints=RouteConstraints(max_gas=1)
        )

        assert result.error.code is ErrorCode.NO_VIABLE_ROUTE
        assert result.error.stage is QuoteStage.SELECTING

    async def test_transport_failure_is_retryable(self, orchestrator, node):
        seed_weth_usdc(node)
        node.fail_next(*(httpx.Response(503) for _ in range(40)))

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18)

        assert result.error.code is ErrorCode.NETWORK_ERROR
        assert result.error.retryable

    async def test_timeout(self, orchestrator, node):
        seed_weth_usdc(node)
        node.latency = 0.2

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18, timeout=0.05)

        assert result.error.code is ErrorCode.TIMEOUT_ERROR
        assert result.error.retryable
        assert result.error.stage is QuoteStage.RESOLVING_POOLS
        # Let shared in-flight calls finish before the loop closes
        await asyncio.sleep(0.3)

    async def test_failures_not_cached(self, orchestrator, node):
        first = await orchestrator.quote("ethereum", WETH, USDC, 10**18)
        seed_weth_usdc(node)
        orchestrator.cache.clear()

        second = await orchestrator.quote("ethereum", WETH, USDC, 10**18)

        assert first.error.code is ErrorCode.POOL_NOT_FOUND
        assert second.is_ok


class TestSenderGasEstimation:
    """Quotes for a known sender are estimated by the node."""

    async def test_estimated_gas_used(self, orchestrator, node):
        seed_weth_usdc(node)

        quote = (await orchestrator.quote("ethereum", WETH, USDC, 10**18, sender=SENDER)).quote

        assert quote.gas_estimate == 180_000
        estimate = next(c for c in node.calls if c["method"] == "eth_estimateGas")
        tx = estimate["params"][0]
        assert tx["from"] == SENDER
        assert tx["to"] == NETWORKS[Network.ETHEREUM].v3_router
        assert "gas" not in tx

    async def test_fallback_when_estimate_fails(self, orchestrator, node):
        seed_weth_usdc(node)
        node.gas_estimate = RpcFault(3, "execution reverted: STF")

        result = await orchestrator.quote("ethereum", WETH, USDC, 10**18, sender=SENDER)

        assert result.is_ok
        assert result.quote.gas_estimate == 300_000


class TestDefaultOrchestrator:
    """Tests for the process-wide orchestrator."""

    async def test_created_once(self, monkeypatch):
        monkeypatch.setattr(orchestrator_module, "_default_orchestrator", None)
        monkeypatch.setenv("SWAPQUOTE_QUOTE_TIMEOUT", "12")

        first = get_default_orchestrator()
        second = get_default_orchestrator()

        assert first is second
        assert first.settings.quote_timeout == 12
        await first.aclose()


RESERVE_DAI = 2_000_000 * 10**18


class TestTwoHop:
    """Pairs without a direct pool are routed through the wrapped native token."""

    async def test_routes_through_weth(self, node):
        usdc_weth = node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        weth_dai = node.add_v2_pair(WETH, DAI, RESERVE_WETH, RESERVE_DAI)
        orch = make_orchestrator(node, versions=(PoolVersion.V2,))

        result = await orch.quote("ethereum", USDC, DAI, 1_000 * 10**6)
        await orch.aclose()

        quote = result.quote
        mid = cp_output(RESERVE_USDC, RESERVE_WETH, 1_000 * 10**6)
        assert quote.amount_out == cp_output(RESERVE_WETH, RESERVE_DAI, mid)
        assert quote.hops == 2
        assert [(h.hop_index, h.token_in, h.token_out) for h in quote.route] == [
            (0, USDC, WETH),
            (1, WETH, DAI),
        ]
        assert [h.pool_address for h in quote.route] == [usdc_weth.lower(), weth_dai.lower()]
        assert quote.version is PoolVersion.V2
        first = price_impact_bps(RESERVE_USDC, RESERVE_WETH, 1_000 * 10**6, mid)
        second = price_impact_bps(RESERVE_WETH, RESERVE_DAI, mid, quote.amount_out)
        assert quote.price_impact_bps == 10_000 - (10_000 - first) * (10_000 - second) // 10_000

    async def test_gas_covers_both_legs(self, node):
        node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        node.add_v2_pair(WETH, DAI, RESERVE_WETH, RESERVE_DAI)
        node.add_v2_pair(USDC, USDT, RESERVE_USDC, RESERVE_USDC)
        orch = make_orchestrator(node, versions=(PoolVersion.V2,))

        direct = (await orch.quote("ethereum", USDC, USDT, 10**6)).quote
        routed = (await orch.quote("ethereum", USDC, DAI, 10**6)).quote
        await orch.aclose()

        assert routed.gas_estimate == 2 * direct.gas_estimate

    async def test_direct_pool_preferred(self, node):
        node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        node.add_v2_pair(WETH, DAI, RESERVE_WETH, RESERVE_DAI)
        node.add_v2_pair(USDC, DAI, RESERVE_USDC, RESERVE_DAI)
        orch = make_orchestrator(node, versions=(PoolVersion.V2,))

        quote = (await orch.quote("ethereum", USDC, DAI, 1_000 * 10**6)).quote
        await orch.aclose()

        assert quote.hops == 1

    async def test_disabled_with_one_hop(self, node):
        node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        node.add_v2_pair(WETH, DAI, RESERVE_WETH, RESERVE_DAI)
        orch = make_orchestrator(node, settings=QuoterSettings(max_hops=1), versions=(PoolVersion.V2,))

        result = await orch.quote("ethereum", USDC, DAI, 1_000 * 10**6)
        await orch.aclose()

        assert result.error.code is ErrorCode.POOL_NOT_FOUND

    async def test_missing_second_leg(self, node):
        node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        orch = make_orchestrator(node, versions=(PoolVersion.V2,))

        result = await orch.quote("ethereum", USDC, DAI, 1_000 * 10**6)
        await orch.aclose()

        assert result.error.code is ErrorCode.POOL_NOT_FOUND
        assert result.error.stage is QuoteStage.RESOLVING_POOLS
        assert "via" in result.error.message

    async def test_routed_swap_estimated_through_v2_router(self, node):
        node.add_v2_pair(USDC, WETH, RESERVE_USDC, RESERVE_WETH)
        node.add_v2_pair(WETH, DAI, RESERVE_WETH, RESERVE_DAI)
        orch = make_orchestrator(node, versions=(PoolVersion.V2,))

        result = await orch.quote("ethereum", USDC, DAI, 1_000 * 10**6, sender=SENDER)
        await orch.aclose()

        assert result.quote.gas_estimate == 180_000
        estimate = next(c for c in node.calls if c["method"] == "eth_estimateGas")
        assert estimate["params"][0]["to"] == NETWORKS[Network.ETHEREUM].v2_router


class TestListPools:
    """Tests for pool inspection."""

    async def test_all_versions(self, orchestrator, node):
        seed_weth_usdc(node)

        pools = await orchestrator.list_pools("ethereum", WETH, USDC)

        assert [(p.version, p.fee_tier) for p in pools] == [
            (PoolVersion.V2, 3000),
            (PoolVersion.V3, 500),
            (PoolVersion.V3, 3000),
        ]
        v2 = pools[0]
        assert (v2.token0, v2.token1) == (USDC, WETH)
        assert (v2.symbol0, v2.symbol1) == ("USDC", "WETH")
        assert (v2.reserve0, v2.reserve1) == (RESERVE_USDC, RESERVE_WETH)
        assert v2.token0_per_token1 == "2000"
        assert v2.token1_per_token0 == "0.0005"
        assert v2.liquidity is None
        assert pools[1].liquidity == LIQUIDITY
        assert pools[1].sqrt_price_x96 == SQRT_PRICE
        assert pools[1].reserve0 is None

    async def test_filters(self, orchestrator, node):
        seed_weth_usdc(node)

        v3 = await orchestrator.list_pools("ethereum", USDC, WETH, version="v3")
        tier = await orchestrator.list_pools("ethereum", USDC, WETH, fee_tier=500)

        assert [p.fee_tier for p in v3] == [500, 3000]
        assert [(p.version, p.fee_tier) for p in tier] == [(PoolVersion.V3, 500)]

    async def test_no_pools(self, orchestrator):
        with pytest.raises(PoolNotFoundError):
            await orchestrator.list_pools("ethereum", WETH, DAI)

    @pytest.mark.parametrize(
        "kwargs",
        [{"fee_tier": 123}, {"version": "v9"}, {"token_b": WETH}, {"token_b": "0x1234"}],
        ids=["fee-tier", "version", "same-token", "bad-address"],
    )
    async def test_invalid_query(self, orchestrator, node, kwargs):
        args = {"token_b": USDC, **kwargs}
        token_b = args.pop("token_b")

        with pytest.raises(ValidationError):
            await orchestrator.list_pools("ethereum", WETH, token_b, **args)
        assert node.calls == []

    async def test_json_uses_camel_case(self, orchestrator, node):
        seed_weth_usdc(node)

        (v2, *_) = await orchestrator.list_pools("ethereum", WETH, USDC)
        body = v2.model_dump(mode="json", by_alias=True)

        assert body["poolAddress"] == v2.pool_address
        assert body["token0PerToken1"] == "2000"
        assert body["reserve0"] == str(RESERVE_USDC)
        assert body["fetchedAt"] == v2.fetched_at
