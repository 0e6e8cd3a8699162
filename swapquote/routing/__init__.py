"""Candidate pricing and route selection."""

from swapquote.routing.multihop import chain_legs, connector_tokens, pair_legs, route_hops
from swapquote.routing.pricing import CandidatePricer, encode_quote_exact_input_single
from swapquote.routing.selector import (
    RouteCandidate,
    RouteConstraints,
    fee_tier_bonus,
    select_best,
)

__all__ = [
    "CandidatePricer",
    "RouteCandidate",
    "RouteConstraints",
    "chain_legs",
    "connector_tokens",
    "encode_quote_exact_input_single",
    "pair_legs",
    "fee_tier_bonus",
    "route_hops",
    "select_best",
]
