"""In-memory pool and node for dry runs, plus recorded-log generation."""

from pool_replay.sim.node import InMemoryNode, MinedBlock
from pool_replay.sim.pool import InMemoryPool, tick_to_sqrt_price_x96
from pool_replay.sim.recorder import generate_recorded_log

__all__ = [
    "InMemoryNode",
    "InMemoryPool",
    "MinedBlock",
    "generate_recorded_log",
    "tick_to_sqrt_price_x96",
]
