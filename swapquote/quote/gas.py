"""Gas price and gas limit estimation with conservative fallbacks."""

from __future__ import annotations

from typing import Any

import structlog

from swapquote.amm.math import apply_multiplier
from swapquote.cache import CacheManager, CacheNamespace, cache_key
from swapquote.config import QuoterSettings
from swapquote.constants import Network
from swapquote.errors import SwapQuoteError
from swapquote.rpc.client import RpcClient

logger = structlog.get_logger()


class GasEstimator:
    """Estimates gas limits and prices for swaps.

    Failures never fail a quote: a missing gas price falls back to a fixed
    price and a failed estimate falls back to a fixed limit.
    """

    def __init__(
        self,
        client: RpcClient,
        cache: CacheManager,
        settings: QuoterSettings | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.settings = settings or QuoterSettings()

    async def gas_price(self, network: Network) -> int:
        """Current gas price in wei, cached for the GAS_PRICE TTL."""
        key = cache_key(network)
        try:
            return await self.cache.get_or_create(
                CacheNamespace.GAS_PRICE, key, lambda: self.client.gas_price(network)
            )
        except (SwapQuoteError, ValueError) as e:
            logger.warning(
                "gas_price_fallback",
                network=network.value,
                fallback=self.settings.fallback_gas_price_wei,
                error=str(e),
            )
            return self.settings.fallback_gas_price_wei

    async def gas_limit(
        self,
        network: Network,
        swap_gas: int,
        tx: dict[str, Any] | None = None,
        *,
        hops: int = 1,
    ) -> int:
        """Buffered gas limit for a swap.

        Args:
            network: Target network
            swap_gas: Gas estimate of the chosen route
            tx: Assembled transaction; when given the node estimates it
            hops: Pools the route goes through

        Returns:
            Gas limit including the configured buffer, or the fallback limit
            (raised by fallback_gas_per_hop for each extra hop) if the node
            cannot estimate the transaction
        """
        if tx is None:
            return apply_multiplier(swap_gas, self.settings.gas_limit_buffer)
        try:
            estimated = await self.client.estimate_gas(network, tx)
        except SwapQuoteError as e:
            fallback = self.settings.fallback_gas_limit + self.settings.fallback_gas_per_hop * (hops - 1)
            logger.warning(
                "gas_estimate_fallback",
                network=network.value,
                fallback=fallback,
                hops=hops,
                error=str(e),
            )
            return fallback
        return apply_multiplier(estimated, self.settings.gas_limit_buffer)
