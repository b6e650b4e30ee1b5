"""Recorded event replay."""

from pool_replay.replay.engine import ReplayEngine, ReplayReport, prepare_pool, replay

__all__ = [
    "ReplayEngine",
    "ReplayReport",
    "prepare_pool",
    "replay",
]
