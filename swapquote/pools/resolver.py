"""Pool discovery and state fetching.

The resolver derives candidate pool identifiers for a token pair, checks
their on-chain state through the RPC client, and keeps only pools that exist
and hold liquidity. State is cached in the POOL_STATE namespace; the
resolver decides freshness through the namespace TTL and an optional
max_age on fetch_state().
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping

import structlog

from swapquote.cache import MISS, CacheManager, CacheNamespace, cache_key
from swapquote.constants import (
    NETWORKS,
    TICK_SPACING,
    V2_FEE_TIER,
    V3_FEE_TIERS,
    Network,
)
from swapquote.errors import PoolNotFoundError, RpcError, TransientError, ValidationError
from swapquote.models.pool import ConcentratedState, ConstantProductState, PoolRef, PoolState, PoolVersion
from swapquote.models.types import is_valid_address, sort_tokens
from swapquote.pools.addresses import v2_pair_address, v3_pool_address, v4_pool_id
from swapquote.rpc import abi
from swapquote.rpc.client import RpcClient

logger = structlog.get_logger()


class PoolResolver:
    """Locates pools for a token pair and reads their state."""

    def __init__(
        self,
        client: RpcClient,
        cache: CacheManager,
        *,
        v4_state_views: Mapping[Network, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the resolver.

        Args:
            client: RPC client used for all reads
            cache: Shared cache
            v4_state_views: StateView lens per network, overriding constants
            clock: Wall-clock source for PoolState.fetched_at
        """
        self.client = client
        self.cache = cache
        self._v4_state_views = dict(v4_state_views or {})
        self._clock = clock

    def state_view(self, network: Network) -> str | None:
        return self._v4_state_views.get(network) or NETWORKS[network].v4_state_view

    def candidates(
        self,
        network: Network | str,
        token_a: str,
        token_b: str,
        version: PoolVersion,
        fee_tier: int | None = None,
    ) -> list[PoolRef]:
        """Derive pool identifiers without touching the network.

        Returns:
            One PoolRef per fee tier to check; empty if the version is not
            deployed on the network

        Raises:
            ValidationError: For malformed or identical tokens, or an unknown fee tier
        """
        try:
            network = Network.parse(network)
        except ValueError as err:
            raise ValidationError(str(err)) from err
        if not (is_valid_address(token_a) and is_valid_address(token_b)):
            raise ValidationError(f"Invalid token address: {token_a}, {token_b}")
        token0, token1 = sort_tokens(token_a, token_b)
        if token0 == token1:
            raise ValidationError("Cannot resolve a pool for identical tokens")

        info = NETWORKS[network]
        match version:
            case PoolVersion.V2:
                if info.v2_factory is None or fee_tier not in (None, V2_FEE_TIER):
                    return []
                address = v2_pair_address(info.v2_factory, token0, token1)
                return [PoolRef(network, version, address, token0, token1, V2_FEE_TIER)]
            case PoolVersion.V3:
                return [
                    PoolRef(
                        network,
                        version,
                        v3_pool_address(info.v3_factory, token0, token1, fee),
                        token0,
                        token1,
                        fee,
                        TICK_SPACING[fee],
                    )
                    for fee in self._tiers(fee_tier)
                ]
            case PoolVersion.V4:
                if self.state_view(network) is None:
                    return []
                return [
                    PoolRef(
                        network,
                        version,
                        v4_pool_id(token0, token1, fee),
                        token0,
                        token1,
                        fee,
                        TICK_SPACING[fee],
                    )
                    for fee in self._tiers(fee_tier)
                ]

    @staticmethod
    def _tiers(fee_tier: int | None) -> tuple[int, ...]:
        if fee_tier is None:
            return V3_FEE_TIERS
        if fee_tier not in TICK_SPACING:
            raise ValidationError(f"Unsupported fee tier: {fee_tier}")
        return (fee_tier,)

    async def resolve(
        self,
        network: Network | str,
        token_a: str,
        token_b: str,
        version: PoolVersion,
        fee_tier: int | None = None,
    ) -> list[PoolRef]:
        """Find existing, non-empty pools for a pair.

        Args:
            network: Network to search
            token_a: One token of the pair
            token_b: The other token
            version: Pool design to search
            fee_tier: Restrict to one fee tier; all tiers when None

        Returns:
            PoolRefs in fee-tier order

        Raises:
            PoolNotFoundError: If no candidate exists and holds liquidity
            TransientError: If no candidate could be read and at least one
                read failed transiently
        """
        refs = self.candidates(network, token_a, token_b, version, fee_tier)
        if not refs:
            raise PoolNotFoundError(f"{version.value} is not deployed on {Network.parse(network).value}")

        outcomes = await asyncio.gather(*(self._exists(ref) for ref in refs), return_exceptions=True)
        found: list[PoolRef] = []
        transient: list[TransientError] = []
        for ref, outcome in zip(refs, outcomes, strict=True):
            if isinstance(outcome, TransientError):
                transient.append(outcome)
                logger.warning(
                    "pool_check_failed",
                    network=ref.network.value,
                    version=ref.version.value,
                    fee_tier=ref.fee_tier,
                    error=outcome.message,
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome:
                found.append(ref)

        if found:
            return found
        if transient:
            raise transient[0]
        token0, token1 = sort_tokens(token_a, token_b)
        raise PoolNotFoundError(f"No {version.value} pool with liquidity for {token0}/{token1}")

    async def _exists(self, ref: PoolRef) -> bool:
        existence_key = cache_key(ref.network, ref.version, ref.pool_address)
        if self.cache.get(CacheNamespace.POOL_EXISTENCE, existence_key) is False:
            return False
        try:
            state = await self.fetch_state(ref)
        except PoolNotFoundError:
            self.cache.set(CacheNamespace.POOL_EXISTENCE, existence_key, False)
            return False
        self.cache.set(CacheNamespace.POOL_EXISTENCE, existence_key, True)
        return not state.is_empty

    async def fetch_state(self, ref: PoolRef, *, max_age: float | None = None) -> PoolState:
        """Current state of a pool, from cache when fresh enough.

        Args:
            ref: Pool to read
            max_age: Re-fetch if the cached state is older than this many seconds

        Raises:
            PoolNotFoundError: If the pool has no code or returns unreadable data
        """
        key = cache_key(ref.network, ref.version, ref.pool_address)
        cached = self.cache.get(CacheNamespace.POOL_STATE, key)
        if cached is not MISS and (max_age is None or self._clock() - cached.fetched_at <= max_age):
            return cached

        try:
            state = await self._read_state(ref)
        except RpcError as err:
            raise PoolNotFoundError(f"Cannot read {ref.version.value} pool {ref.pool_address}: {err.message}") from err
        except ValueError as err:
            raise PoolNotFoundError(f"Malformed state from pool {ref.pool_address}: {err}") from err

        self.cache.set(CacheNamespace.POOL_STATE, key, state)
        logger.debug(
            "pool_state_fetched",
            network=ref.network.value,
            version=ref.version.value,
            pool=ref.pool_address,
        )
        return state

    async def _read_state(self, ref: PoolRef) -> PoolState:
        network = ref.network
        match ref.version:
            case PoolVersion.V2:
                data = await self.client.eth_call(
                    network, ref.pool_address, "0x" + abi.GET_RESERVES_SELECTOR.hex()
                )
                reserve0, reserve1, _ = abi.decode_result(["uint112", "uint112", "uint32"], data)
                return ConstantProductState(reserve0, reserve1, fetched_at=self._clock())
            case PoolVersion.V3:
                slot0_hex, liquidity_hex = await asyncio.gather(
                    self.client.eth_call(network, ref.pool_address, "0x" + abi.SLOT0_SELECTOR.hex()),
                    self.client.eth_call(
                        network, ref.pool_address, "0x" + abi.LIQUIDITY_SELECTOR.hex()
                    ),
                )
            case PoolVersion.V4:
                state_view = self.state_view(network)
                if state_view is None:
                    raise PoolNotFoundError(f"V4 is not deployed on {network.value}")
                pool_id = bytes.fromhex(ref.pool_address[2:])
                slot0_hex, liquidity_hex = await asyncio.gather(
                    self.client.eth_call(
                        network,
                        state_view,
                        abi.encode_call(abi.V4_GET_SLOT0_SELECTOR, ["bytes32"], [pool_id]),
                    ),
                    self.client.eth_call(
                        network,
                        state_view,
                        abi.encode_call(abi.V4_GET_LIQUIDITY_SELECTOR, ["bytes32"], [pool_id]),
                    ),
                )

        raw_slot0 = abi.hex_to_bytes(slot0_hex)
        sqrt_price_x96, tick = abi.decode_result(["uint160", "int24"], raw_slot0[:64])
        (liquidity,) = abi.decode_result(["uint128"], liquidity_hex)
        return ConcentratedState(
            liquidity=liquidity,
            sqrt_price_x96=sqrt_price_x96,
            tick=tick,
            fetched_at=self._clock(),
        )
