"""Tests for deterministic pool address and id derivation."""

import pytest

from swapquote.constants import NETWORKS, Network
from swapquote.pools import create2_address, v2_pair_address, v3_pool_address, v4_pool_id
from tests.helpers import DAI, USDC, WETH, WETH_USDC_V2, WETH_USDC_V3_500, WETH_USDC_V3_3000

MAINNET = NETWORKS[Network.ETHEREUM]


class TestV2PairAddress:
    """Tests for CREATE2 pair derivation."""

    def test_weth_usdc(self):
        assert v2_pair_address(MAINNET.v2_factory, WETH, USDC) == WETH_USDC_V2

    def test_token_order_irrelevant(self):
        assert v2_pair_address(MAINNET.v2_factory, USDC, WETH) == WETH_USDC_V2

    def test_checksummed_input(self):
        assert (
            v2_pair_address(MAINNET.v2_factory, "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", USDC)
            == WETH_USDC_V2
        )

    def test_distinct_pairs(self):
        assert v2_pair_address(MAINNET.v2_factory, WETH, DAI) != WETH_USDC_V2


class TestV3PoolAddress:
    """Tests for CREATE2 pool derivation."""

    @pytest.mark.parametrize(
        ("fee", "expected"), [(500, WETH_USDC_V3_500), (3000, WETH_USDC_V3_3000)]
    )
    def test_weth_usdc(self, fee, expected):
        assert v3_pool_address(MAINNET.v3_factory, WETH, USDC, fee) == expected
        assert v3_pool_address(MAINNET.v3_factory, USDC, WETH, fee) == expected

    def test_fee_changes_address(self):
        addresses = {v3_pool_address(MAINNET.v3_factory, WETH, USDC, fee) for fee in (100, 500, 3000, 10000)}

        assert len(addresses) == 4

    def test_create2_shape(self):
        address = create2_address(MAINNET.v3_factory, b"\x00" * 32, "0x" + "11" * 32)

        assert address.startswith("0x")
        assert len(address) == 42
        assert address == address.lower()


class TestV4PoolId:
    """Tests for V4 pool key hashing."""

    def test_is_32_bytes(self):
        pool_id = v4_pool_id(WETH, USDC, 3000)

        assert pool_id.startswith("0x")
        assert len(pool_id) == 66

    def test_deterministic_and_order_independent(self):
        assert v4_pool_id(WETH, USDC, 500) == v4_pool_id(USDC, WETH, 500)

    def test_key_fields_change_id(self):
        base = v4_pool_id(WETH, USDC, 3000)

        assert base != v4_pool_id(WETH, USDC, 500)
        assert base != v4_pool_id(WETH, USDC, 3000, tick_spacing=10)
        assert base != v4_pool_id(WETH, USDC, 3000, hooks="0x" + "12" * 20)

    def test_default_spacing(self):
        assert v4_pool_id(WETH, USDC, 3000) == v4_pool_id(WETH, USDC, 3000, tick_spacing=60)
