"""Tests for quote request validation."""

import pytest

from swapquote.constants import Network
from swapquote.errors import ValidationError
from swapquote.models.pool import PoolVersion
from swapquote.quote import check_deadline, validate_pool_query, validate_request
from tests.helpers import NOW, USDC, WETH


def request(**overrides):
    data = {
        "network": "ethereum",
        "token_in": WETH,
        "token_out": USDC,
        "amount_in": 10**18,
        "slippage_bps": 50,
        "deadline": None,
    }
    data.update(overrides)
    return data


class TestValidateRequest:
    """Tests for validate_request."""

    def test_valid_request(self):
        parsed = validate_request(request(token_in=WETH.upper().replace("0X", "0x")))

        assert parsed.network is Network.ETHEREUM
        assert parsed.token_in == WETH
        assert parsed.amount_in == 10**18

    def test_camel_case_aliases(self):
        parsed = validate_request(
            {
                "network": "BASE",
                "tokenIn": WETH,
                "tokenOut": USDC,
                "amountIn": "2500",
                "slippageBps": 0,
            }
        )

        assert parsed.network is Network.BASE
        assert parsed.amount_in == 2500

    @pytest.mark.parametrize(
        "overrides",
        [
            {"network": "solana"},
            {"token_in": "0x1234"},
            {"token_out": "not-an-address"},
            {"token_out": WETH},
            {"token_in": "0x" + "00" * 20},
            {"amount_in": 0},
            {"amount_in": -5},
            {"amount_in": "1.5"},
            {"amount_in": 2**256},
            {"amount_in": "\u00b2"},
            {"sender": "not-an-address"},
            {"sender": "0x1234"},
            {"slippage_bps": -1},
            {"slippage_bps": 5001},
            {"slippage_bps": 0.5},
        ],
        ids=[
            "network",
            "token-in",
            "token-out",
            "same-token",
            "zero-address",
            "zero-amount",
            "negative-amount",
            "fractional-amount",
            "overflow",
            "unicode-digit-amount",
            "sender-not-hex",
            "sender-too-short",
            "negative-slippage",
            "slippage-too-high",
            "float-slippage",
        ],
    )
    def test_rejected(self, overrides):
        with pytest.raises(ValidationError):
            validate_request(request(**overrides))

    def test_error_names_field(self):
        with pytest.raises(ValidationError, match="slippage"):
            validate_request(request(slippage_bps=9000))

    def test_sender_optional_and_lowercased(self):
        assert validate_request(request()).sender is None
        assert validate_request(request(sender="0x" + "Ab" * 20)).sender == "0x" + "ab" * 20


class TestValidatePoolQuery:
    """Tests for pool inspection inputs."""

    def test_valid(self):
        query = validate_pool_query(
            {"network": "base", "tokenA": USDC, "tokenB": WETH.upper().replace("0X", "0x"), "version": "v3"}
        )

        assert query.network is Network.BASE
        assert query.token_b == WETH
        assert query.version is PoolVersion.V3
        assert query.fee_tier is None

    @pytest.mark.parametrize(
        "overrides",
        [{"fee_tier": 123}, {"version": "v1"}, {"token_b": WETH}, {"network": "solana"}],
        ids=["fee-tier", "version", "same-token", "network"],
    )
    def test_rejected(self, overrides):
        data = {"network": "ethereum", "token_a": WETH, "token_b": USDC, **overrides}

        with pytest.raises(ValidationError):
            validate_pool_query(data)


class TestCheckDeadline:
    """Tests for deadline resolution."""

    def test_default_is_twenty_minutes(self):
        assert check_deadline(None, NOW) == NOW + 1200

    def test_custom_default(self):
        assert check_deadline(None, NOW, default_seconds=300) == NOW + 300

    @pytest.mark.parametrize("offset", [60, 600, 3600])
    def test_accepted(self, offset):
        assert check_deadline(NOW + offset, NOW) == NOW + offset

    @pytest.mark.parametrize("offset", [-10, 0, 59, 3601])
    def test_rejected(self, offset):
        with pytest.raises(ValidationError):
            check_deadline(NOW + offset, NOW)
