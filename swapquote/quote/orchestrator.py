"""Quote orchestration: the public entry point of the quoter.

A quote request moves through the stages

    VALIDATING -> RESOLVING_POOLS -> PRICING -> SELECTING -> FINALIZING -> DONE

and ends in FAILED if any stage raises. The orchestrator never raises past
quote(); every failure becomes a QuoteResult carrying a QuoteFailure with
the stage it happened in. Retries happen below, in the RPC client.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from swapquote.amm.impact import analyze_price_impact
from swapquote.amm.math import SlippageDirection, apply_slippage, execution_price
from swapquote.cache import MISS, CacheManager, CacheNamespace, cache_key
from swapquote.config import QuoterSettings, Settings
from swapquote.constants import DEFAULT_SLIPPAGE_BPS, Network
from swapquote.errors import (
    ErrorCode,
    InsufficientLiquidityError,
    NoViableRouteError,
    PoolNotFoundError,
    SwapQuoteError,
    TransientError,
)
from swapquote.execution import build_swap_transaction
from swapquote.models.pool import PoolRef, PoolVersion
from swapquote.models.quote import Quote, QuoteResult, QuoteStage
from swapquote.models.types import sort_tokens
from swapquote.pools.info import PoolInfo, describe_pool
from swapquote.pools.resolver import PoolResolver
from swapquote.quote.gas import GasEstimator
from swapquote.quote.validation import (
    QuoteRequest,
    check_deadline,
    validate_pool_query,
    validate_request,
)
from swapquote.routing.multihop import chain_legs, connector_tokens, pair_legs, route_hops
from swapquote.routing.pricing import CandidatePricer
from swapquote.routing.selector import RouteCandidate, RouteConstraints, select_best
from swapquote.rpc.client import RpcClient
from swapquote.tokens import TokenRegistry

logger = structlog.get_logger()

ALL_VERSIONS = (PoolVersion.V2, PoolVersion.V3, PoolVersion.V4)


@dataclass
class _QuoteRun:
    """Mutable progress of one quote request."""

    stage: QuoteStage = QuoteStage.VALIDATING

    def advance(self, stage: QuoteStage, **context: Any) -> None:
        self.stage = stage
        logger.debug("quote_stage", stage=stage.value, **context)


class QuoteOrchestrator:
    """Builds quotes from pool resolution, pricing and route selection.

    Each instance owns its collaborators; independent instances share no
    state, so tests can build as many as they need.
    """

    def __init__(
        self,
        client: RpcClient,
        cache: CacheManager,
        *,
        settings: QuoterSettings | None = None,
        resolver: PoolResolver | None = None,
        tokens: TokenRegistry | None = None,
        pricer: CandidatePricer | None = None,
        gas: GasEstimator | None = None,
        versions: Sequence[PoolVersion] = ALL_VERSIONS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: RPC client for all network access
            cache: Shared cache
            settings: Quote construction parameters
            resolver: Pool resolver (built from client and cache if omitted)
            tokens: Token registry (built from client and cache if omitted)
            pricer: Candidate pricer (built from client if omitted)
            gas: Gas estimator (built from client and cache if omitted)
            versions: Pool versions to search
            clock: Wall-clock source in unix seconds
        """
        self.client = client
        self.cache = cache
        self.settings = settings or QuoterSettings()
        self.resolver = resolver or PoolResolver(
            client, cache, v4_state_views=self.settings.v4_state_view
        )
        self.tokens = tokens or TokenRegistry(client, cache)
        self.pricer = pricer or CandidatePricer(client, self.settings)
        self.gas = gas or GasEstimator(client, cache, self.settings)
        self.versions = tuple(versions)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> QuoteOrchestrator:
        """Build a fully wired orchestrator from configuration."""
        client = RpcClient.from_settings(settings, transport=transport)
        return cls(client, CacheManager(settings.cache), settings=settings.quoter)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def quote(
        self,
        network: Network | str,
        token_in: str,
        token_out: str,
        amount_in: int | str,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        deadline: int | None = None,
        *,
        sender: str | None = None,
        constraints: RouteConstraints | None = None,
        timeout: float | None = None,
    ) -> QuoteResult:
        """Quote an exact-input swap.

        Args:
            network: Network name
            token_in: Token to sell
            token_out: Token to buy
            amount_in: Amount of token_in in raw units
            slippage_bps: Tolerated slippage in bps, 0 to 5000
            deadline: Absolute unix deadline; now + 20 minutes if omitted
            sender: If given, the node estimates gas for the assembled swap
            constraints: Price impact and gas limits for route selection
            timeout: Overall budget in seconds; defaults to settings.quote_timeout

        Returns:
            QuoteResult holding either the Quote or a QuoteFailure
        """
        run = _QuoteRun()
        constraints = constraints or RouteConstraints(near_tie_bps=self.settings.near_tie_bps)
        try:
            request = validate_request(
                {
                    "network": network,
                    "token_in": token_in,
                    "token_out": token_out,
                    "amount_in": amount_in,
                    "slippage_bps": slippage_bps,
                    "deadline": deadline,
                    "sender": sender,
                }
            )
            now = int(self._clock())
            resolved_deadline = check_deadline(
                request.deadline, now, self.settings.default_deadline_seconds
            )
        except SwapQuoteError as e:
            return self._failure(run, e)

        key = cache_key(
            request.network,
            request.token_in,
            request.token_out,
            request.amount_in,
            request.slippage_bps,
            request.deadline,
            request.sender or "-",
            constraints,
        )
        cached = self.cache.get(CacheNamespace.QUOTE, key)
        if cached is not MISS:
            logger.debug("quote_cache_hit", network=request.network.value)
            return QuoteResult.ok(cached)

        budget = self.settings.quote_timeout if timeout is None else timeout
        try:
            async with asyncio.timeout(budget):
                quote = await self._build(run, request, resolved_deadline, now, constraints)
        except TimeoutError:
            logger.warning("quote_timed_out", stage=run.stage.value, timeout=budget)
            return QuoteResult.failed(
                ErrorCode.TIMEOUT_ERROR,
                f"Quote not completed within {budget}s",
                retryable=True,
                stage=run.stage,
            )
        except SwapQuoteError as e:
            return self._failure(run, e)
        except Exception as e:
            logger.exception("quote_internal_error", stage=run.stage.value, error=str(e))
            return QuoteResult.failed(
                ErrorCode.INTERNAL_ERROR,
                f"Internal error: {type(e).__name__}",
                retryable=False,
                stage=run.stage,
            )

        run.advance(QuoteStage.DONE)
        self.cache.set(CacheNamespace.QUOTE, key, quote)
        return QuoteResult.ok(quote)

    @staticmethod
    def _failure(run: _QuoteRun, error: SwapQuoteError) -> QuoteResult:
        logger.info(
            "quote_failed",
            stage=run.stage.value,
            code=error.code.value,
            retryable=error.retryable,
            error=error.message,
        )
        return QuoteResult.failed(
            error.code, error.message, retryable=error.retryable, stage=run.stage
        )

    async def _build(
        self,
        run: _QuoteRun,
        request: QuoteRequest,
        deadline: int,
        now: int,
        constraints: RouteConstraints,
    ) -> Quote:
        network = request.network

        run.advance(QuoteStage.RESOLVING_POOLS, network=network.value)
        meta_in, meta_out = await asyncio.gather(
            self.tokens.metadata(network, request.token_in),
            self.tokens.metadata(network, request.token_out),
        )
        try:
            pools = await self.resolve_pools(network, request.token_in, request.token_out)
        except PoolNotFoundError:
            if self.settings.max_hops < 2:
                raise
            best = await self._best_via_connector(run, request, constraints)
        else:
            run.advance(QuoteStage.PRICING, pools=len(pools))
            candidates = await self.price_pools(pools, request.token_in, request.amount_in)

            run.advance(QuoteStage.SELECTING, candidates=len(candidates))
            best = select_best(candidates, constraints)

        run.advance(
            QuoteStage.FINALIZING,
            version=best.pool.version.value,
            fee_tier=best.pool.fee_tier,
            hops=best.hops,
        )
        gas_price = await self.gas.gas_price(network)
        quote = Quote(
            network=network,
            token_in=request.token_in,
            token_out=request.token_out,
            amount_in=request.amount_in,
            amount_out=best.amount_out,
            amount_out_min=apply_slippage(best.amount_out, request.slippage_bps, SlippageDirection.MIN),
            price_impact_bps=best.price_impact_bps,
            route=route_hops(best.pools, request.token_in),
            version=best.pool.version,
            fee_tier=best.pool.fee_tier,
            gas_estimate=await self.gas.gas_limit(network, best.gas_estimate),
            gas_price_wei=gas_price,
            execution_price=format(
                execution_price(
                    request.amount_in, best.amount_out, meta_in.decimals, meta_out.decimals
                ).normalize(),
                "f",
            ),
            slippage_bps=request.slippage_bps,
            deadline=deadline,
            created_at=now,
        )

        sender = request.sender
        if sender is not None and quote.version is not PoolVersion.V4:
            nonce = await self.client.transaction_count(network, sender)
            tx = build_swap_transaction(quote, sender, nonce, gas_price).to_rpc(sender)
            del tx["gas"]
            gas_limit = await self.gas.gas_limit(network, best.gas_estimate, tx, hops=best.hops)
            quote = quote.model_copy(update={"gas_estimate": gas_limit})

        impact = analyze_price_impact(quote.price_impact_bps)
        if impact.should_warn or impact.should_block:
            logger.warning(
                "high_price_impact",
                network=network.value,
                level=impact.level.value,
                price_impact_bps=impact.impact_bps,
            )
        logger.info(
            "quote_created",
            network=network.value,
            token_in=quote.token_in,
            token_out=quote.token_out,
            amount_in=quote.amount_in,
            amount_out=quote.amount_out,
            version=quote.version.value,
            fee_tier=quote.fee_tier,
            hops=quote.hops,
            price_impact_bps=quote.price_impact_bps,
        )
        return quote

    async def _best_via_connector(
        self,
        run: _QuoteRun,
        request: QuoteRequest,
        constraints: RouteConstraints,
    ) -> RouteCandidate:
        """Best two-hop route through a connector token, for pairs without a direct pool."""
        network = request.network
        connectors = connector_tokens(network, request.token_in, request.token_out)
        if not connectors:
            raise PoolNotFoundError(
                f"No pool with liquidity for {request.token_in}/{request.token_out}"
            )

        legs: list[tuple[str, list[PoolRef], list[PoolRef]]] = []
        for mid in connectors:
            outcomes = await asyncio.gather(
                self.resolve_pools(network, request.token_in, mid),
                self.resolve_pools(network, mid, request.token_out),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException) and not isinstance(outcome, PoolNotFoundError):
                    raise outcome
            first, second = outcomes
            if isinstance(first, BaseException) or isinstance(second, BaseException):
                continue
            legs.extend((mid, a, b) for a, b in pair_legs(first, second))

        if not legs:
            raise PoolNotFoundError(
                f"No pool with liquidity for {request.token_in}/{request.token_out}, "
                f"directly or via {', '.join(connectors)}"
            )

        run.advance(QuoteStage.PRICING, routes=len(legs), via=[mid for mid, _, _ in legs])
        candidates = await self.price_two_hop(legs, request.token_in, request.amount_in, constraints)

        run.advance(QuoteStage.SELECTING, candidates=len(candidates))
        return select_best(candidates, constraints)

    async def price_two_hop(
        self,
        legs: Sequence[tuple[str, Sequence[PoolRef], Sequence[PoolRef]]],
        token_in: str,
        amount_in: int,
        constraints: RouteConstraints | None = None,
    ) -> list[RouteCandidate]:
        """Price two-hop routes, one per (connector, first-leg pools, second-leg pools).

        Each leg picks its best pool; the second leg is priced with the first
        leg's output.

        Raises:
            InsufficientLiquidityError: If no route can fill the swap
            NoViableRouteError: If no route could be priced for other reasons
            TransientError: If pricing failed transiently and nothing was priced
        """
        near_tie_bps = (constraints or RouteConstraints()).near_tie_bps
        leg_constraints = RouteConstraints(near_tie_bps=near_tie_bps)

        async def price_route(
            mid: str, first_pools: Sequence[PoolRef], second_pools: Sequence[PoolRef]
        ) -> RouteCandidate:
            first = select_best(
                await self.price_pools(first_pools, token_in, amount_in), leg_constraints
            )
            second = select_best(
                await self.price_pools(second_pools, mid, first.amount_out), leg_constraints
            )
            return chain_legs(first, second)

        outcomes = await asyncio.gather(
            *(price_route(mid, a, b) for mid, a, b in legs), return_exceptions=True
        )
        candidates: list[RouteCandidate] = []
        skipped: list[SwapQuoteError] = []
        for (mid, _, _), outcome in zip(legs, outcomes, strict=True):
            if isinstance(outcome, InsufficientLiquidityError | NoViableRouteError | TransientError):
                skipped.append(outcome)
                logger.debug("two_hop_route_skipped", via=mid, code=outcome.code.value)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                candidates.append(outcome)

        if candidates:
            return candidates
        for error in skipped:
            if isinstance(error, TransientError):
                raise error
        if skipped and all(isinstance(e, InsufficientLiquidityError) for e in skipped):
            raise InsufficientLiquidityError(f"No two-hop route can fill {amount_in} of {token_in}")
        raise NoViableRouteError(f"None of {len(legs)} two-hop routes could be priced")

    async def _gather_pools(
        self,
        network: Network,
        token_a: str,
        token_b: str,
        versions: Sequence[PoolVersion],
        fee_tier: int | None = None,
    ) -> tuple[list[PoolRef], bool]:
        """Resolve a pair across versions.

        Returns:
            The pools found, and whether any lookup failed transiently

        Raises:
            PoolNotFoundError: If no version has a usable pool
            TransientError: If nothing was found and a lookup failed transiently
        """
        outcomes = await asyncio.gather(
            *(self.resolver.resolve(network, token_a, token_b, v, fee_tier) for v in versions),
            return_exceptions=True,
        )
        pools: list[PoolRef] = []
        transient: list[TransientError] = []
        for version, outcome in zip(versions, outcomes, strict=True):
            if isinstance(outcome, PoolNotFoundError):
                logger.debug("no_pools_for_version", network=network.value, version=version.value)
            elif isinstance(outcome, TransientError):
                transient.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                pools.extend(outcome)

        if not pools:
            if transient:
                raise transient[0]
            raise PoolNotFoundError(f"No pool with liquidity for {token_a}/{token_b}")
        return pools, bool(transient)

    async def resolve_pools(self, network: Network, token_in: str, token_out: str) -> list[PoolRef]:
        """Existing, non-empty pools for a pair across all searched versions.

        Cached in the ROUTE namespace.

        Raises:
            PoolNotFoundError: If no version has a usable pool
            TransientError: If nothing was found and a lookup failed transiently
        """
        key = cache_key(network, *sorted((token_in, token_out)))
        cached = self.cache.get(CacheNamespace.ROUTE, key)
        if cached is not MISS:
            return list(cached)

        pools, had_transient = await self._gather_pools(network, token_in, token_out, self.versions)
        if not had_transient:
            self.cache.set(CacheNamespace.ROUTE, key, tuple(pools))
        return pools

    async def list_pools(
        self,
        network: Network | str,
        token_a: str,
        token_b: str,
        *,
        fee_tier: int | None = None,
        version: PoolVersion | str | None = None,
    ) -> list[PoolInfo]:
        """Describe the existing pools of a pair with their current state.

        Args:
            network: Network name
            token_a: One token of the pair
            token_b: The other token
            fee_tier: Only this fee tier; all tiers if omitted
            version: Only this pool version; all searched versions if omitted

        Returns:
            One PoolInfo per pool holding liquidity, ordered by (version,
            fee tier, pool address)

        Raises:
            ValidationError: For malformed inputs
            PoolNotFoundError: If the pair has no pool with liquidity
            TransientError: If nothing was found and a lookup failed transiently
        """
        query = validate_pool_query(
            {
                "network": network,
                "token_a": token_a,
                "token_b": token_b,
                "fee_tier": fee_tier,
                "version": version,
            }
        )
        versions = self.versions if query.version is None else (query.version,)
        pools, _ = await self._gather_pools(
            query.network, query.token_a, query.token_b, versions, query.fee_tier
        )
        token0, token1 = sort_tokens(query.token_a, query.token_b)
        meta0, meta1, *states = await asyncio.gather(
            self.tokens.metadata(query.network, token0),
            self.tokens.metadata(query.network, token1),
            *(self.resolver.fetch_state(p) for p in pools),
        )
        infos = [describe_pool(p, s, meta0, meta1) for p, s in zip(pools, states, strict=True)]
        logger.debug("pools_listed", network=query.network.value, pools=len(infos))
        return sorted(infos, key=lambda i: (i.version.value, i.fee_tier, i.pool_address))

    async def price_pools(
        self,
        pools: Sequence[PoolRef],
        token_in: str,
        amount_in: int,
    ) -> list[RouteCandidate]:
        """Price every pool; pools that cannot fill the swap are skipped.

        Raises:
            InsufficientLiquidityError: If no pool can fill the swap
            NoViableRouteError: If no pool could be priced for other reasons
            TransientError: If pricing failed transiently and nothing was priced
        """

        async def price_one(pool: PoolRef) -> RouteCandidate:
            state = await self.resolver.fetch_state(pool)
            return await self.pricer.price(pool, state, token_in, amount_in)

        outcomes = await asyncio.gather(*(price_one(p) for p in pools), return_exceptions=True)
        candidates: list[RouteCandidate] = []
        skipped: list[SwapQuoteError] = []
        for pool, outcome in zip(pools, outcomes, strict=True):
            if isinstance(outcome, InsufficientLiquidityError | PoolNotFoundError | TransientError):
                skipped.append(outcome)
                logger.debug(
                    "candidate_skipped",
                    pool=pool.pool_address,
                    version=pool.version.value,
                    fee_tier=pool.fee_tier,
                    code=outcome.code.value,
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                candidates.append(outcome)

        if candidates:
            return candidates
        for error in skipped:
            if isinstance(error, TransientError):
                raise error
        if skipped and all(isinstance(e, InsufficientLiquidityError) for e in skipped):
            raise InsufficientLiquidityError(f"No pool can fill {amount_in} of {token_in}")
        raise NoViableRouteError(f"None of {len(pools)} pools could be priced")


_default_orchestrator: QuoteOrchestrator | None = None


def get_default_orchestrator() -> QuoteOrchestrator:
    """Process-wide orchestrator configured from SWAPQUOTE_* environment variables.

    Created on first use so that importing the package opens no connections.
    """
    global _default_orchestrator
    if _default_orchestrator is None:
        settings = Settings.from_env()
        _default_orchestrator = QuoteOrchestrator.from_settings(settings)
        logger.info(
            "orchestrator_created",
            networks=[n.value for n in Network],
            quote_timeout=settings.quoter.quote_timeout,
        )
    return _default_orchestrator
