"""Route ranking.

select_best() is a pure function: the same candidate set, in any order,
always yields the same winner.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from swapquote.amm.math import BPS
from swapquote.errors import NoViableRouteError
from swapquote.models.pool import PoolRef


@dataclass(frozen=True)
class RouteCandidate:
    """A priced route through one pool, or through consecutive pools.

    Attributes:
        pool: First pool the swap goes through
        amount_out: Output for the requested input
        price_impact_bps: Execution price deviation from spot, fee included
        gas_estimate: Gas units for the swap, before buffering
        fee_tier_bonus_bps: Ranking bonus in bps of amount_out
        next_pools: Pools after the first, in execution order
    """

    pool: PoolRef
    amount_out: int
    price_impact_bps: int
    gas_estimate: int
    fee_tier_bonus_bps: int = 0
    next_pools: tuple[PoolRef, ...] = ()

    @property
    def pools(self) -> tuple[PoolRef, ...]:
        return (self.pool, *self.next_pools)

    @property
    def hops(self) -> int:
        return 1 + len(self.next_pools)

    @property
    def score(self) -> int:
        """Output adjusted by the fee-tier bonus, used for ranking."""
        return self.amount_out * (BPS + self.fee_tier_bonus_bps) // BPS


@dataclass(frozen=True)
class RouteConstraints:
    """Caller limits applied before ranking.

    Attributes:
        max_price_impact_bps: Drop candidates with more impact than this
        max_gas: Drop candidates whose gas estimate exceeds this
        near_tie_bps: Scores within this many bps of the best are tied and
            broken by lowest gas
    """

    max_price_impact_bps: int | None = None
    max_gas: int | None = None
    near_tie_bps: int = 1


def fee_tier_bonus(fee_tier: int, preferred_fee_tier: int, bonus_bps: int) -> int:
    """Ranking bonus for a fee tier: bonus_bps for the preferred tier, else 0."""
    return bonus_bps if fee_tier == preferred_fee_tier else 0


def _admissible(candidate: RouteCandidate, constraints: RouteConstraints) -> bool:
    if candidate.amount_out <= 0:
        return False
    if (
        constraints.max_price_impact_bps is not None
        and candidate.price_impact_bps > constraints.max_price_impact_bps
    ):
        return False
    if constraints.max_gas is not None and candidate.gas_estimate > constraints.max_gas:
        return False
    return True


def select_best(
    candidates: Iterable[RouteCandidate],
    constraints: RouteConstraints | None = None,
) -> RouteCandidate:
    """Pick the best candidate.

    Candidates failing the constraints are removed first. The highest score
    (amount_out plus fee-tier bonus) wins; candidates within near_tie_bps of
    it are tied and the lowest gas estimate wins among them, then the lowest
    (version, fee tier, pool address) of each pool along the route.

    Raises:
        NoViableRouteError: If there are no candidates left after filtering
    """
    constraints = constraints or RouteConstraints()
    pool = list(candidates)
    viable = [c for c in pool if _admissible(c, constraints)]
    if not viable:
        if pool:
            raise NoViableRouteError(f"All {len(pool)} candidate routes were filtered out")
        raise NoViableRouteError("No candidate routes")

    best_score = max(c.score for c in viable)
    threshold = best_score * (BPS - constraints.near_tie_bps)
    tied = [c for c in viable if c.score * BPS >= threshold]
    return min(tied, key=lambda c: (c.gas_estimate, tuple(p.sort_key for p in c.pools)))
