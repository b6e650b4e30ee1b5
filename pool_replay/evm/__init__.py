"""Adapters for a live development node."""

from pool_replay.evm.rpc import RpcError, RpcNode, RpcPool, decode_pool_logs

__all__ = [
    "RpcError",
    "RpcNode",
    "RpcPool",
    "decode_pool_logs",
]
