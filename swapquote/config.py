"""Configuration for the swap quoter.

All settings are frozen dataclasses with defaults. Settings.from_env() builds
a full configuration from SWAPQUOTE_* environment variables, which is what
the API server uses; tests construct the dataclasses directly.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum

from swapquote.constants import (
    DEFAULT_DEADLINE_SECONDS,
    FALLBACK_GAS_PER_HOP,
    FALLBACK_GAS_PRICE_WEI,
    FALLBACK_SWAP_GAS,
    FEE_TIER_MEDIUM,
    GAS_LIMIT_BUFFER,
    GAS_PRICE_MULTIPLIER,
    MAX_HOPS,
    NETWORKS,
    Network,
)


class SelectionStrategy(str, Enum):
    """How the gateway picks an endpoint for each call."""

    ROUND_ROBIN = "round_robin"
    RANDOM = "random"


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy.

    Attributes:
        max_attempts: Total attempts including the first (default: 3)
        base_delay: Delay before the first retry in seconds (default: 0.5)
        multiplier: Growth factor between retries (default: 2.0)
        max_delay: Upper bound on a single delay in seconds (default: 8.0)
    """

    max_attempts: int = 3
    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 8.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the given zero-based failed attempt."""
        return min(self.base_delay * self.multiplier**attempt, self.max_delay)


@dataclass(frozen=True)
class BatchConfig:
    """Request batching parameters.

    Attributes:
        window_seconds: How long to collect calls before flushing (default: 0.1)
        max_batch_size: Flush immediately at this many queued calls (default: 10)
        enabled: If False, every call is sent on its own
    """

    window_seconds: float = 0.1
    max_batch_size: int = 10
    enabled: bool = True


@dataclass(frozen=True)
class CacheConfig:
    """Cache sizing and TTL overrides.

    Attributes:
        max_entries: Entry bound per namespace
        ttl_overrides: Namespace name -> TTL in seconds, replacing the default
    """

    max_entries: int = 1000
    ttl_overrides: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayConfig:
    """RPC gateway parameters.

    Attributes:
        endpoints: Network -> endpoint URLs. Networks not listed use the
            public endpoints from constants.NETWORKS.
        timeout: Per-call timeout in seconds (default: 10)
        strategy: Endpoint selection strategy
        batch_networks: Networks whose endpoints accept JSON-RPC batches.
            None means all networks.
    """

    endpoints: Mapping[Network, tuple[str, ...]] = field(default_factory=dict)
    timeout: float = 10.0
    strategy: SelectionStrategy = SelectionStrategy.ROUND_ROBIN
    batch_networks: frozenset[Network] | None = None

    def endpoints_for(self, network: Network) -> tuple[str, ...]:
        """Configured endpoints for a network, falling back to public ones."""
        configured = self.endpoints.get(network)
        if configured:
            return tuple(configured)
        return NETWORKS[network].rpc_endpoints

    def supports_batching(self, network: Network) -> bool:
        return self.batch_networks is None or network in self.batch_networks


@dataclass(frozen=True)
class QuoterSettings:
    """Quote construction parameters.

    Attributes:
        quote_timeout: Overall budget for one quote in seconds (default: 30)
        default_deadline_seconds: Deadline offset when none is given
        preferred_fee_tier: Fee tier that receives the ranking bonus
        fee_tier_bonus_bps: Ranking bonus for the preferred tier, in bps of output
        near_tie_bps: Outputs within this many bps of the best are tied
        gas_limit_buffer: Multiplier applied to estimated gas
        fallback_gas_limit: Gas limit used when estimation fails
        fallback_gas_per_hop: Extra fallback gas for each hop after the first
        fallback_gas_price_wei: Gas price used when the node cannot provide one
        gas_price_multiplier: Bump applied to gas price when submitting
        v4_state_view: Network -> StateView address, overriding constants
        max_hops: Longest route searched; 2 enables routing through the
            wrapped native token when no direct pool exists
    """

    quote_timeout: float = 30.0
    default_deadline_seconds: int = DEFAULT_DEADLINE_SECONDS
    preferred_fee_tier: int = FEE_TIER_MEDIUM
    fee_tier_bonus_bps: int = 1
    near_tie_bps: int = 1
    gas_limit_buffer: float = GAS_LIMIT_BUFFER
    fallback_gas_limit: int = FALLBACK_SWAP_GAS
    fallback_gas_per_hop: int = FALLBACK_GAS_PER_HOP
    fallback_gas_price_wei: int = FALLBACK_GAS_PRICE_WEI
    gas_price_multiplier: float = GAS_PRICE_MULTIPLIER
    v4_state_view: Mapping[Network, str] = field(default_factory=dict)
    max_hops: int = MAX_HOPS


@dataclass(frozen=True)
class Settings:
    """Complete quoter configuration."""

    gateway: GatewayConfig = field(default_factory=GatewayConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    batch: BatchConfig = field(default_factory=BatchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    quoter: QuoterSettings = field(default_factory=QuoterSettings)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from SWAPQUOTE_* environment variables.

        Recognized variables:
        - SWAPQUOTE_RPC_<NETWORK>: comma-separated endpoint URLs
        - SWAPQUOTE_RPC_TIMEOUT: per-call timeout in seconds
        - SWAPQUOTE_RPC_STRATEGY: round_robin or random
        - SWAPQUOTE_BATCH_NETWORKS: comma-separated networks that accept batches
        - SWAPQUOTE_BATCH_WINDOW_MS / SWAPQUOTE_BATCH_MAX_SIZE / SWAPQUOTE_BATCH_ENABLED
        - SWAPQUOTE_RETRY_ATTEMPTS / SWAPQUOTE_RETRY_BASE_DELAY / SWAPQUOTE_RETRY_MULTIPLIER
        - SWAPQUOTE_RETRY_MAX_DELAY
        - SWAPQUOTE_CACHE_MAX_ENTRIES
        - SWAPQUOTE_CACHE_TTL_<NAMESPACE>: TTL override in seconds
        - SWAPQUOTE_QUOTE_TIMEOUT
        - SWAPQUOTE_MAX_HOPS: 1 for direct pools only, 2 to allow one intermediate token
        - SWAPQUOTE_V4_STATE_VIEW_<NETWORK>: V4 StateView address
        - SWAPQUOTE_LOG_LEVEL / SWAPQUOTE_LOG_JSON

        Raises:
            ValueError: If a variable holds an unparsable value
        """
        env = os.environ if environ is None else environ
        settings = cls()

        endpoints: dict[Network, tuple[str, ...]] = {}
        state_views: dict[Network, str] = {}
        for network in Network:
            urls = env.get(f"SWAPQUOTE_RPC_{network.value}")
            if urls:
                endpoints[network] = tuple(u.strip() for u in urls.split(",") if u.strip())
            view = env.get(f"SWAPQUOTE_V4_STATE_VIEW_{network.value}")
            if view:
                state_views[network] = view.strip().lower()

        batch_networks = None
        if env.get("SWAPQUOTE_BATCH_NETWORKS"):
            batch_networks = frozenset(
                Network.parse(n) for n in env["SWAPQUOTE_BATCH_NETWORKS"].split(",") if n.strip()
            )

        gateway = GatewayConfig(
            endpoints=endpoints,
            timeout=float(env.get("SWAPQUOTE_RPC_TIMEOUT", settings.gateway.timeout)),
            strategy=SelectionStrategy(
                env.get("SWAPQUOTE_RPC_STRATEGY", settings.gateway.strategy.value).lower()
            ),
            batch_networks=batch_networks,
        )

        batch = BatchConfig(
            window_seconds=float(env.get("SWAPQUOTE_BATCH_WINDOW_MS", 100)) / 1000,
            max_batch_size=int(env.get("SWAPQUOTE_BATCH_MAX_SIZE", settings.batch.max_batch_size)),
            enabled=_env_flag(env.get("SWAPQUOTE_BATCH_ENABLED"), default=True),
        )

        retry = RetryPolicy(
            max_attempts=int(env.get("SWAPQUOTE_RETRY_ATTEMPTS", settings.retry.max_attempts)),
            base_delay=float(env.get("SWAPQUOTE_RETRY_BASE_DELAY", settings.retry.base_delay)),
            multiplier=float(env.get("SWAPQUOTE_RETRY_MULTIPLIER", settings.retry.multiplier)),
            max_delay=float(env.get("SWAPQUOTE_RETRY_MAX_DELAY", settings.retry.max_delay)),
        )

        ttl_overrides = {
            key.removeprefix("SWAPQUOTE_CACHE_TTL_").lower(): float(value)
            for key, value in env.items()
            if key.startswith("SWAPQUOTE_CACHE_TTL_")
        }
        cache = CacheConfig(
            max_entries=int(env.get("SWAPQUOTE_CACHE_MAX_ENTRIES", settings.cache.max_entries)),
            ttl_overrides=ttl_overrides,
        )

        quoter = replace(
            settings.quoter,
            quote_timeout=float(env.get("SWAPQUOTE_QUOTE_TIMEOUT", settings.quoter.quote_timeout)),
            max_hops=int(env.get("SWAPQUOTE_MAX_HOPS", settings.quoter.max_hops)),
            v4_state_view=state_views,
        )

        return cls(
            gateway=gateway,
            retry=retry,
            batch=batch,
            cache=cache,
            quoter=quoter,
            log_level=env.get("SWAPQUOTE_LOG_LEVEL", settings.log_level).upper(),
            log_json=_env_flag(env.get("SWAPQUOTE_LOG_JSON"), default=False),
        )


def _env_flag(value: str | None, *, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes")


# Default configuration instance
DEFAULT_SETTINGS = Settings()
