"""Test fixtures for pool replay and null-block benchmark tests."""

from tests.fixtures.pool_fixtures import (
    POOL,
    PRICE,
    RECIPIENT,
    TICK_LOWER,
    TICK_UPPER,
    RecordingNode,
    ScriptedPool,
    StepClock,
    collect_receipt,
    liquidity_receipt,
    make_burn,
    make_mint,
    make_swap,
    swap_receipt,
)

__all__ = [
    "POOL",
    "PRICE",
    "RECIPIENT",
    "TICK_LOWER",
    "TICK_UPPER",
    "RecordingNode",
    "ScriptedPool",
    "StepClock",
    "collect_receipt",
    "liquidity_receipt",
    "make_burn",
    "make_mint",
    "make_swap",
    "swap_receipt",
]
