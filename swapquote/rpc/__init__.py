"""Resilient JSON-RPC access: gateway, retry, coalescing and batching."""

from swapquote.rpc.batcher import RequestBatcher
from swapquote.rpc.client import RpcClient, parse_quantity
from swapquote.rpc.coalescer import InFlightRequest, RequestCoalescer, dedup_key
from swapquote.rpc.gateway import EndpointStats, RpcCall, RpcGateway, classify_rpc_error
from swapquote.rpc.retry import RetryController
from swapquote.rpc.selection import (
    EndpointSelector,
    RandomSelector,
    RoundRobinSelector,
    make_selector,
)

__all__ = [
    # Gateway
    "RpcGateway",
    "RpcCall",
    "EndpointStats",
    "classify_rpc_error",
    # Selection
    "EndpointSelector",
    "RoundRobinSelector",
    "RandomSelector",
    "make_selector",
    # Resilience
    "RetryController",
    "RequestCoalescer",
    "InFlightRequest",
    "RequestBatcher",
    "dedup_key",
    # Client
    "RpcClient",
    "parse_quantity",
]
