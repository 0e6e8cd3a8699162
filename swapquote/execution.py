"""Transaction assembly and hand-off to external signing and broadcast.

The quoter never holds key material. A SigningService turns an unsigned
transaction plus an opaque credential into a raw signed blob, and a
Broadcaster submits that blob and returns its hash. Confirmation polling is
left to the caller.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from swapquote.amm.math import apply_multiplier
from swapquote.config import QuoterSettings
from swapquote.constants import NETWORKS, Network
from swapquote.errors import BroadcastError, RpcError, ValidationError
from swapquote.models.pool import PoolVersion
from swapquote.models.quote import Quote, RouteHop
from swapquote.rpc import abi
from swapquote.rpc.client import RpcClient
from swapquote.tokens import approve_calldata

logger = structlog.get_logger()

TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")

MULTICALL_DEADLINE_SELECTOR = abi.selector("multicall(uint256,bytes[])")  # 0x5ae401dc


@dataclass(frozen=True)
class UnsignedTransaction:
    """Fully assembled legacy transaction awaiting a signature."""

    nonce: int
    to: str
    value: int
    gas_price: int
    gas_limit: int
    data: str
    network_tag: Network

    @property
    def chain_id(self) -> int:
        return NETWORKS[self.network_tag].chain_id

    def to_rpc(self, sender: str | None = None) -> dict[str, Any]:
        """JSON-RPC transaction object, e.g. for eth_estimateGas."""
        tx: dict[str, Any] = {
            "to": self.to,
            "value": hex(self.value),
            "data": self.data,
            "gasPrice": hex(self.gas_price),
            "gas": hex(self.gas_limit),
            "nonce": hex(self.nonce),
        }
        if sender is not None:
            tx["from"] = sender.lower()
        return tx


class SigningService(Protocol):
    """External signer; the credential is opaque to the quoter."""

    async def sign(self, tx: UnsignedTransaction, credential: Any) -> str:
        """Return the raw signed transaction as 0x-prefixed hex."""
        ...


class Broadcaster(Protocol):
    """Submits signed transactions."""

    async def broadcast(self, network: Network, raw_tx: str) -> str:
        """Return the transaction hash."""
        ...


class RpcBroadcaster:
    """Broadcaster using eth_sendRawTransaction; submissions are never retried."""

    def __init__(self, client: RpcClient) -> None:
        self.client = client

    async def broadcast(self, network: Network, raw_tx: str) -> str:
        """Submit a raw transaction.

        Raises:
            BroadcastError: If the node rejects it or returns a malformed hash
        """
        try:
            tx_hash = await self.client.send_raw_transaction(network, raw_tx)
        except RpcError as err:
            raise BroadcastError(f"Node rejected transaction: {err.rpc_message}") from err
        if not isinstance(tx_hash, str) or not TX_HASH_PATTERN.match(tx_hash):
            raise BroadcastError(f"Malformed transaction hash: {tx_hash!r}")
        return tx_hash


def encode_v3_path(hops: Sequence[RouteHop]) -> bytes:
    """Packed SwapRouter path: token, then (uint24 fee, token) per hop."""
    path = bytes.fromhex(hops[0].token_in[2:])
    for hop in hops:
        path += hop.fee_tier.to_bytes(3, "big") + bytes.fromhex(hop.token_out[2:])
    return path


def build_swap_calldata(quote: Quote, recipient: str) -> tuple[str, str]:
    """Router address and calldata executing a quote.

    V2 routes call Router02.swapExactTokensForTokens with the full token
    path. V3 routes call SwapRouter02.multicall(deadline, [swap]) so the
    deadline is enforced on-chain, where swap is exactInputSingle for one hop
    and exactInput with a packed path for several.

    Returns:
        Tuple of (router address, calldata)

    Raises:
        ValidationError: If the route's pool version has no router here, or
            its hops mix pool versions
    """
    info = NETWORKS[quote.network]
    hops = quote.route
    if any(hop.version is not quote.version for hop in hops):
        raise ValidationError("Routes mixing pool versions cannot be executed in one call")
    match quote.version:
        case PoolVersion.V2:
            if info.v2_router is None:
                raise ValidationError(f"No V2 router on {quote.network.value}")
            data = abi.encode_call(
                abi.SWAP_EXACT_TOKENS_SELECTOR,
                ["uint256", "uint256", "address[]", "address", "uint256"],
                [
                    quote.amount_in,
                    quote.amount_out_min,
                    [hops[0].token_in, *(hop.token_out for hop in hops)],
                    recipient.lower(),
                    quote.deadline,
                ],
            )
            return info.v2_router, data
        case PoolVersion.V3:
            if len(hops) == 1:
                hop = hops[0]
                swap = abi.encode_call(
                    abi.EXACT_INPUT_SINGLE_SELECTOR,
                    ["(address,address,uint24,address,uint256,uint256,uint160)"],
                    [
                        (
                            hop.token_in,
                            hop.token_out,
                            hop.fee_tier,
                            recipient.lower(),
                            quote.amount_in,
                            quote.amount_out_min,
                            0,
                        )
                    ],
                )
            else:
                swap = abi.encode_call(
                    abi.EXACT_INPUT_SELECTOR,
                    ["(bytes,address,uint256,uint256)"],
                    [
                        (
                            encode_v3_path(hops),
                            recipient.lower(),
                            quote.amount_in,
                            quote.amount_out_min,
                        )
                    ],
                )
            data = abi.encode_call(
                MULTICALL_DEADLINE_SELECTOR,
                ["uint256", "bytes[]"],
                [quote.deadline, [bytes.fromhex(swap[2:])]],
            )
            return info.v3_router, data
        case _:
            raise ValidationError(f"Execution of {quote.version.value} routes is not supported")


def build_swap_transaction(
    quote: Quote,
    recipient: str,
    nonce: int,
    gas_price: int,
) -> UnsignedTransaction:
    """Assemble the unsigned transaction for a quote."""
    to, data = build_swap_calldata(quote, recipient)
    return UnsignedTransaction(
        nonce=nonce,
        to=to,
        value=0,
        gas_price=gas_price,
        gas_limit=quote.gas_estimate,
        data=data,
        network_tag=quote.network,
    )


def build_approval_transaction(
    network: Network,
    token: str,
    spender: str,
    amount: int,
    nonce: int,
    gas_price: int,
    gas_limit: int = 60_000,
) -> UnsignedTransaction:
    """Assemble an ERC-20 approve transaction."""
    return UnsignedTransaction(
        nonce=nonce,
        to=token.lower(),
        value=0,
        gas_price=gas_price,
        gas_limit=gas_limit,
        data=approve_calldata(spender, amount),
        network_tag=network,
    )


class SwapSubmitter:
    """Signs and broadcasts the transaction for a quote."""

    def __init__(
        self,
        client: RpcClient,
        signer: SigningService,
        broadcaster: Broadcaster | None = None,
        settings: QuoterSettings | None = None,
    ) -> None:
        self.client = client
        self.signer = signer
        self.broadcaster = broadcaster or RpcBroadcaster(client)
        self.settings = settings or QuoterSettings()

    async def submit(self, quote: Quote, sender: str, credential: Any) -> str:
        """Submit a quote for execution and return the transaction hash.

        Uses the sender's pending nonce and the quote's gas price bumped by
        the configured multiplier.

        Raises:
            ValidationError: If the route cannot be executed
            BroadcastError: If submission fails
        """
        nonce = await self.client.transaction_count(quote.network, sender)
        gas_price = apply_multiplier(quote.gas_price_wei, self.settings.gas_price_multiplier)
        tx = build_swap_transaction(quote, sender, nonce, gas_price)
        raw_tx = await self.signer.sign(tx, credential)
        tx_hash = await self.broadcaster.broadcast(quote.network, raw_tx)
        logger.info(
            "swap_submitted",
            network=quote.network.value,
            tx_hash=tx_hash,
            nonce=nonce,
            amount_in=quote.amount_in,
            amount_out_min=quote.amount_out_min,
        )
        return tx_hash
