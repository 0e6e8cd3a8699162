"""Tests for quote, pool and type models."""

import pydantic
import pytest

from swapquote.amm import ImpactLevel
from swapquote.constants import Network
from swapquote.errors import ErrorCode
from swapquote.models.pool import PoolRef, PoolVersion
from swapquote.models.quote import Quote, QuoteResult, QuoteStage, RouteHop
from swapquote.models.types import UINT256_MAX, checksum, sort_tokens, validate_uint256
from tests.helpers import DAI, USDC, WETH, make_pool_ref, make_quote


class TestQuoteResult:
    """Exactly one of quote or error is present."""

    def test_ok(self):
        result = QuoteResult.ok(make_quote())

        assert result.is_ok
        assert result.error is None

    def test_failed(self):
        result = QuoteResult.failed(
            ErrorCode.POOL_NOT_FOUND, "none", retryable=False, stage=QuoteStage.RESOLVING_POOLS
        )

        assert not result.is_ok
        assert result.quote is None
        assert result.error.stage is QuoteStage.RESOLVING_POOLS

    def test_neither_rejected(self):
        with pytest.raises(ValueError):
            QuoteResult()


class TestQuote:
    """Tests for the Quote wire model."""

    def test_serializes_amounts_as_strings(self):
        data = make_quote().model_dump(mode="json", by_alias=True)

        assert data["amountIn"] == "1000000000000000000"
        assert data["gasPriceWei"] == "20000000000"
        assert data["priceImpactBps"] == 5

    def test_round_trips_from_json(self):
        quote = make_quote()

        assert Quote.model_validate_json(quote.model_dump_json(by_alias=True)) == quote

    def test_impact_level_serialized(self):
        low = make_quote().model_dump(mode="json", by_alias=True)
        high = make_quote().model_copy(update={"price_impact_bps": 800})

        assert low["priceImpactLevel"] == "LOW"
        assert low["priceImpactWarning"] is None
        assert high.price_impact_level is ImpactLevel.HIGH
        assert high.model_dump(mode="json", by_alias=True)["priceImpactWarning"].startswith("CAUTION")

    def test_two_hop_route(self):
        quote = make_quote(token_in=USDC, token_out=DAI, via=WETH)

        assert quote.hops == 2
        assert [h.hop_index for h in quote.route] == [0, 1]
        assert quote.route[0].token_out == quote.route[1].token_in == WETH

    def test_frozen(self):
        quote = make_quote()

        with pytest.raises(pydantic.ValidationError):
            quote.amount_out = 1

    def test_gas_cost(self):
        assert make_quote().gas_cost_wei == 180_000 * 20 * 10**9


class TestPoolRef:
    """Tests for pool identity."""

    def test_token_order_enforced(self):
        with pytest.raises(ValueError):
            PoolRef(Network.ETHEREUM, PoolVersion.V2, "0x" + "01" * 20, WETH, USDC, 3000)

    def test_direction(self):
        pool = make_pool_ref()

        assert pool.zero_for_one(USDC)
        assert not pool.zero_for_one(WETH.upper().replace("0X", "0x"))

    def test_route_hop(self):
        hop = RouteHop.from_pool(make_pool_ref(PoolVersion.V3, 500), WETH)

        assert hop.token_out == USDC
        assert hop.tick_spacing == 10
        assert hop.hop_index == 0

    def test_concentrated_versions(self):
        assert not PoolVersion.V2.is_concentrated
        assert PoolVersion.V3.is_concentrated
        assert PoolVersion.V4.is_concentrated


class TestTypes:
    """Tests for shared type helpers."""

    def test_uint256_bounds(self):
        assert validate_uint256("0") == 0
        assert validate_uint256(UINT256_MAX) == UINT256_MAX
        with pytest.raises(ValueError):
            validate_uint256(True)

    @pytest.mark.parametrize("value", ["²", "١٠", "１", " 1", "+1"])
    def test_uint256_rejects_non_ascii_digits(self, value):
        """Only ASCII 0-9 count as digits; superscripts and other scripts do not."""
        with pytest.raises(ValueError, match="decimal integer"):
            validate_uint256(value)

    def test_sort_tokens(self):
        assert sort_tokens(WETH, USDC) == (USDC, WETH)

    def test_checksum(self):
        assert checksum(WETH) == "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

    @pytest.mark.parametrize("name", ["ethereum", "Ethereum", " ETHEREUM "])
    def test_network_parse(self, name):
        assert Network.parse(name) is Network.ETHEREUM

    def test_network_parse_unknown(self):
        with pytest.raises(ValueError, match="Unsupported network"):
            Network.parse("solana")
