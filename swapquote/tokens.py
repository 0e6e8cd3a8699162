"""ERC-20 reads and calldata helpers."""

from __future__ import annotations

import asyncio

import structlog

from swapquote.cache import CacheManager, CacheNamespace, cache_key
from swapquote.constants import MAX_TOKEN_DECIMALS, Network
from swapquote.errors import InvalidTokenError, RpcError
from swapquote.models.pool import TokenMeta
from swapquote.models.types import checksum, normalize_address
from swapquote.rpc import abi
from swapquote.rpc.client import RpcClient

logger = structlog.get_logger()


def approve_calldata(spender: str, amount: int) -> str:
    """Calldata for approve(spender, amount)."""
    return abi.encode_call(abi.APPROVE_SELECTOR, ["address", "uint256"], [spender, amount])


def transfer_calldata(recipient: str, amount: int) -> str:
    """Calldata for transfer(recipient, amount)."""
    return abi.encode_call(abi.TRANSFER_SELECTOR, ["address", "uint256"], [recipient, amount])


class TokenRegistry:
    """Reads token metadata, balances and allowances through the RPC client.

    Metadata is cached for a day, allowances for the APPROVAL namespace TTL.
    Balances are never cached.
    """

    def __init__(self, client: RpcClient, cache: CacheManager) -> None:
        self.client = client
        self.cache = cache

    async def metadata(self, network: Network | str, address: str) -> TokenMeta:
        """Name, symbol and decimals of a token.

        Raises:
            InvalidTokenError: If decimals cannot be read or are out of range
        """
        network = Network.parse(network)
        key = cache_key(network, address)
        return await self.cache.get_or_create(
            CacheNamespace.TOKEN_METADATA, key, lambda: self._fetch_metadata(network, address)
        )

    async def _fetch_metadata(self, network: Network, address: str) -> TokenMeta:
        token = normalize_address(address)
        name_hex, symbol_hex, decimals_hex = await asyncio.gather(
            self._read(network, token, abi.NAME_SELECTOR),
            self._read(network, token, abi.SYMBOL_SELECTOR),
            self._read(network, token, abi.DECIMALS_SELECTOR),
        )

        if decimals_hex is None:
            raise InvalidTokenError(f"{token} does not implement decimals()")
        try:
            (decimals,) = abi.decode_result(["uint256"], decimals_hex)
        except ValueError as err:
            raise InvalidTokenError(f"{token} returned malformed decimals") from err
        if not 0 <= decimals <= MAX_TOKEN_DECIMALS:
            raise InvalidTokenError(f"{token} reports {decimals} decimals")

        meta = TokenMeta(
            network=network,
            address=checksum(token),
            name=self._decode_text(name_hex),
            symbol=self._decode_text(symbol_hex),
            decimals=decimals,
        )
        logger.debug("token_metadata_fetched", network=network.value, token=token, symbol=meta.symbol)
        return meta

    async def _read(self, network: Network, token: str, function_selector: bytes) -> str | None:
        # Reverts and empty results mean the function is missing
        try:
            result = await self.client.eth_call(network, token, "0x" + function_selector.hex())
        except RpcError:
            return None
        return result if result not in ("0x", "") else None

    @staticmethod
    def _decode_text(data: str | None) -> str:
        if data is None:
            return ""
        try:
            return abi.decode_string_or_bytes32(data)
        except ValueError:
            return ""

    async def balance_of(self, network: Network | str, token: str, owner: str) -> int:
        """Token balance of an account.

        Raises:
            InvalidTokenError: If the token does not answer balanceOf
        """
        data = abi.encode_call(abi.BALANCE_OF_SELECTOR, ["address"], [owner])
        return await self._read_uint(network, token, data, "balanceOf")

    async def allowance(self, network: Network | str, token: str, owner: str, spender: str) -> int:
        """Allowance granted by owner to spender, cached briefly."""
        key = cache_key(network, token, owner, spender)
        data = abi.encode_call(abi.ALLOWANCE_SELECTOR, ["address", "address"], [owner, spender])
        return await self.cache.get_or_create(
            CacheNamespace.APPROVAL,
            key,
            lambda: self._read_uint(network, token, data, "allowance"),
        )

    def forget_allowance(self, network: Network | str, token: str, owner: str, spender: str) -> None:
        """Drop a cached allowance, e.g. after submitting an approval."""
        self.cache.invalidate(CacheNamespace.APPROVAL, cache_key(network, token, owner, spender))

    async def _read_uint(self, network: Network | str, token: str, data: str, function: str) -> int:
        try:
            result = await self.client.eth_call(network, token, data)
            (value,) = abi.decode_result(["uint256"], result)
        except (RpcError, ValueError) as err:
            raise InvalidTokenError(f"{normalize_address(token)} failed {function}(): {err}") from err
        return value
