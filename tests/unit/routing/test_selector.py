"""Tests for route ranking."""

import itertools
from dataclasses import replace

import pytest

from swapquote.errors import NoViableRouteError
from swapquote.models.pool import PoolVersion
from swapquote.routing import RouteCandidate, RouteConstraints, fee_tier_bonus, select_best
from tests.helpers import make_pool_ref


def candidate(
    version: PoolVersion = PoolVersion.V3,
    fee_tier: int = 3000,
    amount_out: int = 1_000_000,
    gas: int = 106_000,
    impact: int = 10,
    bonus: int = 0,
) -> RouteCandidate:
    return RouteCandidate(
        pool=make_pool_ref(version, fee_tier),
        amount_out=amount_out,
        price_impact_bps=impact,
        gas_estimate=gas,
        fee_tier_bonus_bps=bonus,
    )


class TestSelectBest:
    """Tests for select_best ranking rules."""

    def test_highest_output_wins(self):
        v2 = candidate(PoolVersion.V2, amount_out=1_000_000, gas=60_000)
        v3 = candidate(PoolVersion.V3, amount_out=1_100_000)

        assert select_best([v2, v3]) is v3

    def test_near_tie_prefers_lower_gas(self):
        """Outputs within 1 bp are tied and the cheaper route wins."""
        v2 = candidate(PoolVersion.V2, amount_out=999_950, gas=60_000)
        v3 = candidate(PoolVersion.V3, amount_out=1_000_000, gas=106_000)

        assert select_best([v3, v2]) is v2

    def test_clear_winner_beats_cheaper_route(self):
        v2 = candidate(PoolVersion.V2, amount_out=999_800, gas=60_000)
        v3 = candidate(PoolVersion.V3, amount_out=1_000_000, gas=106_000)

        assert select_best([v2, v3]) is v3

    def test_custom_tie_band(self):
        v2 = candidate(PoolVersion.V2, amount_out=999_000, gas=60_000)
        v3 = candidate(PoolVersion.V3, amount_out=1_000_000, gas=106_000)

        assert select_best([v2, v3], RouteConstraints(near_tie_bps=10)) is v2
        assert select_best([v2, v3], RouteConstraints(near_tie_bps=0)) is v3

    def test_order_independent(self):
        pool = [
            candidate(PoolVersion.V2, amount_out=1_000_000, gas=60_000),
            candidate(PoolVersion.V3, 500, amount_out=1_000_000, gas=106_000),
            candidate(PoolVersion.V3, 3000, amount_out=1_000_000, gas=106_000),
            candidate(PoolVersion.V4, 500, amount_out=990_000, gas=130_000),
        ]

        winners = {select_best(order).pool for order in itertools.permutations(pool)}

        assert winners == {pool[0].pool}

    def test_full_tie_broken_by_pool_identity(self):
        low = candidate(PoolVersion.V3, 500)
        medium = candidate(PoolVersion.V3, 3000)

        assert select_best([medium, low]) is low
        assert select_best([low, medium]) is low

    def test_full_tie_between_routes_broken_by_later_pools(self):
        first = make_pool_ref(PoolVersion.V3, 500)
        via_low = replace(
            candidate(PoolVersion.V3, 500),
            next_pools=(make_pool_ref(PoolVersion.V3, 500, "0x" + "01" * 20),),
        )
        via_high = replace(via_low, next_pools=(make_pool_ref(PoolVersion.V3, 500, "0x" + "02" * 20),))

        assert via_low.pool == via_high.pool == first
        assert select_best([via_high, via_low]) is via_low
        assert select_best([via_low, via_high]) is via_low

    def test_fee_tier_bonus_can_decide(self):
        preferred = candidate(PoolVersion.V3, 3000, amount_out=2_000_000, bonus=1)
        other = candidate(PoolVersion.V3, 500, amount_out=2_000_100)
        constraints = RouteConstraints(near_tie_bps=0)

        assert select_best([other, preferred], constraints) is preferred

    def test_price_impact_constraint(self):
        steep = candidate(PoolVersion.V2, amount_out=1_100_000, impact=300, gas=60_000)
        shallow = candidate(PoolVersion.V3, amount_out=1_000_000, impact=20)

        assert select_best([steep, shallow], RouteConstraints(max_price_impact_bps=100)) is shallow

    def test_gas_constraint(self):
        heavy = candidate(PoolVersion.V4, amount_out=1_100_000, gas=300_000)
        light = candidate(PoolVersion.V2, amount_out=1_000_000, gas=60_000)

        assert select_best([heavy, light], RouteConstraints(max_gas=200_000)) is light

    def test_zero_output_never_selected(self):
        with pytest.raises(NoViableRouteError):
            select_best([candidate(amount_out=0)])

    def test_no_candidates(self):
        with pytest.raises(NoViableRouteError, match="No candidate routes"):
            select_best([])

    def test_all_filtered(self):
        with pytest.raises(NoViableRouteError, match="filtered"):
            select_best([candidate(impact=500)], RouteConstraints(max_price_impact_bps=100))


class TestScore:
    """Tests for fee-tier bonus scoring."""

    def test_bonus_raises_score(self):
        assert candidate(amount_out=1_000_000, bonus=1).score == 1_000_100
        assert candidate(amount_out=1_000_000).score == 1_000_000

    @pytest.mark.parametrize(("fee", "expected"), [(3000, 1), (500, 0), (100, 0), (10000, 0)])
    def test_fee_tier_bonus(self, fee, expected):
        assert fee_tier_bonus(fee, preferred_fee_tier=3000, bonus_bps=1) == expected
