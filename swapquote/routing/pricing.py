"""Pricing of candidate pools for an exact-input swap.

V2 pools are priced locally from reserves. V3 pools are priced with the
QuoterV2 contract through eth_call, which walks initialized ticks exactly.
V4 pools have no quoter lens here and are priced locally within the active
tick range.
"""

from __future__ import annotations

from typing import assert_never

import structlog

from swapquote.amm.concentrated import cl_output_single_tick, cl_price_impact_bps
from swapquote.amm.impact import check_liquidity
from swapquote.amm.math import cp_output, price_impact_bps
from swapquote.config import QuoterSettings
from swapquote.constants import NETWORKS, V2_FEE_BPS, V2_SWAP_GAS, V3_SWAP_GAS, V4_SWAP_GAS
from swapquote.errors import InsufficientLiquidityError, PoolNotFoundError, RpcError
from swapquote.models.pool import ConcentratedState, ConstantProductState, PoolRef, PoolState, PoolVersion
from swapquote.rpc import abi
from swapquote.rpc.client import RpcClient
from swapquote.routing.selector import RouteCandidate, fee_tier_bonus

logger = structlog.get_logger()

QUOTER_PARAMS_TYPE = "(address,address,uint256,uint24,uint160)"
QUOTER_RESULT_TYPES = ["uint256", "uint160", "uint32", "uint256"]


def encode_quote_exact_input_single(
    token_in: str,
    token_out: str,
    amount_in: int,
    fee: int,
    sqrt_price_limit_x96: int = 0,
) -> str:
    """Calldata for QuoterV2.quoteExactInputSingle."""
    return abi.encode_call(
        abi.QUOTE_EXACT_INPUT_SINGLE_SELECTOR,
        [QUOTER_PARAMS_TYPE],
        [(token_in.lower(), token_out.lower(), amount_in, fee, sqrt_price_limit_x96)],
    )


class CandidatePricer:
    """Turns (pool, state, input) into a RouteCandidate."""

    def __init__(self, client: RpcClient, settings: QuoterSettings | None = None) -> None:
        self.client = client
        self.settings = settings or QuoterSettings()

    async def price(
        self,
        pool: PoolRef,
        state: PoolState,
        token_in: str,
        amount_in: int,
    ) -> RouteCandidate:
        """Price an exact-input swap through one pool.

        Raises:
            InsufficientLiquidityError: If the pool cannot fill the swap
            PoolNotFoundError: If the quoter returns unreadable data
            TransientError: If the quoter call fails transiently
        """
        zero_for_one = pool.zero_for_one(token_in)
        match pool.version:
            case PoolVersion.V2:
                amount_out, impact, gas = self._price_v2(state, zero_for_one, amount_in)
            case PoolVersion.V3:
                amount_out, impact, gas = await self._price_v3(
                    pool, state, token_in, zero_for_one, amount_in
                )
            case PoolVersion.V4:
                amount_out, impact, gas = self._price_v4(pool, state, zero_for_one, amount_in)
            case _:
                assert_never(pool.version)

        if amount_out <= 0:
            raise InsufficientLiquidityError(f"Pool {pool.pool_address} returns nothing for {amount_in}")

        return RouteCandidate(
            pool=pool,
            amount_out=amount_out,
            price_impact_bps=impact,
            gas_estimate=gas,
            fee_tier_bonus_bps=fee_tier_bonus(
                pool.fee_tier, self.settings.preferred_fee_tier, self.settings.fee_tier_bonus_bps
            ),
        )

    @staticmethod
    def _expect(state: PoolState, kind: type) -> None:
        if not isinstance(state, kind):
            raise TypeError(f"Expected {kind.__name__}, got {type(state).__name__}")

    def _price_v2(self, state: PoolState, zero_for_one: bool, amount_in: int) -> tuple[int, int, int]:
        self._expect(state, ConstantProductState)
        reserve_in, reserve_out = state.reserves_for(zero_for_one)
        amount_out = cp_output(reserve_in, reserve_out, amount_in, V2_FEE_BPS)
        impact = price_impact_bps(reserve_in, reserve_out, amount_in, amount_out, V2_FEE_BPS)
        liquidity = check_liquidity(reserve_in, reserve_out, amount_in)
        if liquidity.warning is not None:
            logger.info(
                "large_trade_for_pool",
                warning=liquidity.warning,
                utilization_pct=liquidity.utilization_pct,
                sufficient=liquidity.sufficient,
                max_trade_size=liquidity.max_trade_size,
            )
        return amount_out, impact, V2_SWAP_GAS

    async def _price_v3(
        self,
        pool: PoolRef,
        state: PoolState,
        token_in: str,
        zero_for_one: bool,
        amount_in: int,
    ) -> tuple[int, int, int]:
        self._expect(state, ConcentratedState)
        token_out = pool.token1 if zero_for_one else pool.token0
        data = encode_quote_exact_input_single(token_in, token_out, amount_in, pool.fee_tier)
        quoter = NETWORKS[pool.network].v3_quoter
        try:
            result = await self.client.eth_call(pool.network, quoter, data)
        except RpcError as err:
            logger.info(
                "v3_quote_reverted",
                pool=pool.pool_address,
                fee_tier=pool.fee_tier,
                amount_in=amount_in,
                error=err.message,
            )
            raise InsufficientLiquidityError(f"Quoter rejected swap through {pool.pool_address}") from err
        try:
            amount_out, _, _, gas_estimate = abi.decode_result(QUOTER_RESULT_TYPES, result)
        except ValueError as err:
            raise PoolNotFoundError(f"Malformed quoter response for {pool.pool_address}") from err

        impact = cl_price_impact_bps(state.sqrt_price_x96, amount_in, amount_out, zero_for_one)
        return amount_out, impact, gas_estimate or V3_SWAP_GAS

    def _price_v4(
        self,
        pool: PoolRef,
        state: PoolState,
        zero_for_one: bool,
        amount_in: int,
    ) -> tuple[int, int, int]:
        self._expect(state, ConcentratedState)
        amount_out, _ = cl_output_single_tick(
            state.liquidity, state.sqrt_price_x96, amount_in, pool.fee_tier, zero_for_one
        )
        impact = cl_price_impact_bps(state.sqrt_price_x96, amount_in, amount_out, zero_for_one)
        return amount_out, impact, V4_SWAP_GAS
