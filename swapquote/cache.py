"""In-memory TTL cache with independently configured namespaces.

Each namespace has its own default TTL and entry bound. Expired entries are
indistinguishable from misses. Keys are built with cache_key(), which
normalizes network names and hex strings so that case never splits entries.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Final, TypeVar

import structlog

from swapquote.config import CacheConfig
from swapquote.constants import Network

logger = structlog.get_logger()

T = TypeVar("T")


class CacheNamespace(str, Enum):
    """Classes of cached data."""

    TOKEN_METADATA = "token_metadata"
    POOL_STATE = "pool_state"
    POOL_EXISTENCE = "pool_existence"
    GAS_PRICE = "gas_price"
    ROUTE = "route"
    QUOTE = "quote"
    APPROVAL = "approval"


DEFAULT_TTLS: Final[dict[CacheNamespace, float]] = {
    CacheNamespace.TOKEN_METADATA: 24 * 60 * 60,
    CacheNamespace.POOL_STATE: 5 * 60,
    CacheNamespace.POOL_EXISTENCE: 10 * 60,
    CacheNamespace.GAS_PRICE: 30,
    CacheNamespace.ROUTE: 60,
    CacheNamespace.QUOTE: 30,
    CacheNamespace.APPROVAL: 10 * 60,
}

# Fraction of a full namespace evicted at once, oldest first
EVICTION_FRACTION = 0.1


class _Miss:
    __slots__ = ()

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS: Final = _Miss()


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and its absolute expiry on the cache clock."""

    value: Any
    expires_at: float
    stored_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass
class NamespaceStats:
    hits: int = 0
    misses: int = 0
    expirations: int = 0
    evictions: int = 0


@dataclass
class _Namespace:
    ttl: float
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    stats: NamespaceStats = field(default_factory=NamespaceStats)


def _normalize_part(part: object) -> str:
    if isinstance(part, Network):
        return part.value
    if isinstance(part, Enum):
        return str(part.value)
    if isinstance(part, str):
        if part.startswith(("0x", "0X")):
            return part.lower()
        if part.upper() in Network.__members__:
            return part.upper()
        return part
    return str(part)


def cache_key(*parts: object) -> str:
    """Build a deterministic cache key from parts.

    Network names are uppercased, 0x-prefixed hex strings lowercased, and
    other values converted with str(); parts are joined with ':'.

    Examples:
        >>> cache_key("ethereum", "0xABC", 3000)
        'ETHEREUM:0xabc:3000'
    """
    return ":".join(_normalize_part(p) for p in parts)


class CacheManager:
    """TTL cache shared by the pool resolver, token registry and orchestrator.

    A single lock guards all namespaces; every operation is a short dict
    update, and entries are immutable replacements.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            config: Entry bound and TTL overrides (keyed by namespace value)
            clock: Monotonic time source in seconds, injectable for tests
        """
        self.config = config or CacheConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._namespaces = {
            ns: _Namespace(ttl=float(self.config.ttl_overrides.get(ns.value, DEFAULT_TTLS[ns])))
            for ns in CacheNamespace
        }

    def ttl(self, namespace: CacheNamespace) -> float:
        """Default TTL in seconds for a namespace."""
        return self._namespaces[namespace].ttl

    def get(self, namespace: CacheNamespace, key: str) -> Any:
        """Return the cached value, or MISS if absent or expired."""
        ns = self._namespaces[namespace]
        with self._lock:
            entry = ns.entries.get(key)
            if entry is None:
                ns.stats.misses += 1
                return MISS
            if entry.is_expired(self._clock()):
                del ns.entries[key]
                ns.stats.expirations += 1
                ns.stats.misses += 1
                return MISS
            ns.stats.hits += 1
            return entry.value

    def set(
        self,
        namespace: CacheNamespace,
        key: str,
        value: Any,
        ttl: float | None = None,
    ) -> None:
        """Store a value, replacing any previous entry for the key.

        Args:
            namespace: Target namespace
            key: Key built with cache_key()
            value: Value to store; should be immutable
            ttl: Lifetime in seconds, defaulting to the namespace TTL
        """
        ns = self._namespaces[namespace]
        lifetime = ns.ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            if key not in ns.entries and len(ns.entries) >= self.config.max_entries:
                self._make_room(namespace, ns, now)
            ns.entries[key] = CacheEntry(value=value, expires_at=now + lifetime, stored_at=now)

    def invalidate(self, namespace: CacheNamespace, key: str | None = None) -> int:
        """Drop one key, or the whole namespace when key is None.

        Returns:
            Number of entries removed
        """
        ns = self._namespaces[namespace]
        with self._lock:
            if key is None:
                removed = len(ns.entries)
                ns.entries.clear()
                return removed
            return 1 if ns.entries.pop(key, None) is not None else 0

    def clear(self) -> None:
        """Drop every entry in every namespace."""
        with self._lock:
            for ns in self._namespaces.values():
                ns.entries.clear()

    async def get_or_create(
        self,
        namespace: CacheNamespace,
        key: str,
        factory: Callable[[], Awaitable[T]],
        ttl: float | None = None,
    ) -> T:
        """Return the cached value, or await factory() and cache its result.

        Exceptions from factory propagate and nothing is cached.
        """
        value = self.get(namespace, key)
        if value is not MISS:
            return value
        value = await factory()
        self.set(namespace, key, value, ttl)
        return value

    def purge_expired(self) -> int:
        """Remove expired entries from all namespaces."""
        with self._lock:
            now = self._clock()
            return sum(self._purge(ns, now) for ns in self._namespaces.values())

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-namespace size and hit/miss counters."""
        with self._lock:
            return {
                namespace.value: {
                    "size": len(ns.entries),
                    "hits": ns.stats.hits,
                    "misses": ns.stats.misses,
                    "expirations": ns.stats.expirations,
                    "evictions": ns.stats.evictions,
                }
                for namespace, ns in self._namespaces.items()
            }

    def __len__(self) -> int:
        with self._lock:
            return sum(len(ns.entries) for ns in self._namespaces.values())

    @staticmethod
    def _purge(ns: _Namespace, now: float) -> int:
        expired = [k for k, entry in ns.entries.items() if entry.is_expired(now)]
        for k in expired:
            del ns.entries[k]
        ns.stats.expirations += len(expired)
        return len(expired)

    def _make_room(self, namespace: CacheNamespace, ns: _Namespace, now: float) -> None:
        # Caller holds the lock
        if self._purge(ns, now) and len(ns.entries) < self.config.max_entries:
            return
        count = max(1, int(len(ns.entries) * EVICTION_FRACTION))
        oldest = sorted(ns.entries.items(), key=lambda item: item[1].stored_at)[:count]
        for k, _ in oldest:
            del ns.entries[k]
        ns.stats.evictions += count
        logger.debug("cache_evicted", namespace=namespace.value, count=count)
