"""Two-hop routes through an intermediate token.

When a pair has no direct pool, the quoter routes through the network's
wrapped native token (WETH, WMATIC), which pairs with nearly every listed
token. Each leg is priced with the single-pool pricer; the second leg's
input is the first leg's output. Both legs use the same pool version so the
route executes as one router call.
"""

from __future__ import annotations

from collections.abc import Sequence

from swapquote.amm.math import BPS
from swapquote.constants import NETWORKS, Network
from swapquote.models.pool import PoolRef, PoolVersion
from swapquote.models.quote import RouteHop
from swapquote.routing.selector import RouteCandidate


def connector_tokens(network: Network, token_in: str, token_out: str) -> list[str]:
    """Intermediate tokens to try for a pair without a direct pool.

    Returns:
        The wrapped native token, or nothing if it is one of the pair
    """
    wrapped = NETWORKS[network].wrapped_native
    if wrapped in (token_in.lower(), token_out.lower()):
        return []
    return [wrapped]


def chain_legs(first: RouteCandidate, second: RouteCandidate) -> RouteCandidate:
    """Join two consecutive priced legs into one route.

    The second leg must have been priced with the first leg's output as its
    input. Impacts compound: 1 - (1 - a)(1 - b), rounded up. Gas adds up and
    the fee-tier bonus only applies if both legs earn it.

    Raises:
        ValueError: If the legs do not connect or use different pool versions
    """
    last = first.pools[-1]
    if not {last.token0, last.token1} & {second.pool.token0, second.pool.token1}:
        raise ValueError(f"Pools {last.pool_address} and {second.pool.pool_address} share no token")
    if second.pool.version is not first.pool.version:
        raise ValueError(
            f"Cannot chain {first.pool.version.value} and {second.pool.version.value} legs"
        )

    retained = (BPS - first.price_impact_bps) * (BPS - second.price_impact_bps)
    return RouteCandidate(
        pool=first.pool,
        amount_out=second.amount_out,
        price_impact_bps=max(0, BPS - retained // BPS),
        gas_estimate=first.gas_estimate + second.gas_estimate,
        fee_tier_bonus_bps=min(first.fee_tier_bonus_bps, second.fee_tier_bonus_bps),
        next_pools=(*first.next_pools, *second.pools),
    )


def route_hops(pools: tuple[PoolRef, ...], token_in: str) -> tuple[RouteHop, ...]:
    """RouteHops for consecutive pools, starting from token_in."""
    hops = []
    current = token_in.lower()
    for index, pool in enumerate(pools):
        hop = RouteHop.from_pool(pool, current, hop_index=index)
        hops.append(hop)
        current = hop.token_out
    return tuple(hops)


def pair_legs(
    first: Sequence[PoolRef],
    second: Sequence[PoolRef],
) -> list[tuple[list[PoolRef], list[PoolRef]]]:
    """Group the pools of two legs by version, keeping versions present in both.

    Returns:
        (first-leg pools, second-leg pools) per shared version, in
        PoolVersion order
    """
    pairs = []
    for version in PoolVersion:
        first_pools = [p for p in first if p.version is version]
        second_pools = [p for p in second if p.version is version]
        if first_pools and second_pools:
            pairs.append((first_pools, second_pools))
    return pairs
