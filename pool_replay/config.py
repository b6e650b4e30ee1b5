"""Shared run defaults and environment resolution."""

import os
from dataclasses import dataclass
from typing import Optional

from pool_replay.bench.driver import BenchmarkPlan, SubmissionMode
from pool_replay.core.errors import ConfigurationError


@dataclass(frozen=True)
class RunSettings:
    null_swaps_per_block: int
    blocks_to_mine: int
    call_gas_limit: int
    start_timestamp: int
    block_interval_seconds: int
    tolerance: float
    submission_mode: SubmissionMode
    verify_price: bool


DEFAULT_SETTINGS = RunSettings(
    null_swaps_per_block=2000,
    blocks_to_mine=10,
    call_gas_limit=1_000_000,
    start_timestamp=1619830000,
    block_interval_seconds=15,
    tolerance=0.001,
    submission_mode=SubmissionMode.MULTICALL,
    verify_price=False,
)


@dataclass(frozen=True)
class GasProfileSettings:
    tick_lower: int
    tick_upper: int
    amount: int


GAS_PROFILE_SETTINGS = GasProfileSettings(
    tick_lower=191150,
    tick_upper=198080,
    amount=1_000_000,
)


@dataclass(frozen=True)
class NodeSettings:
    """Where the live node and the deployed contracts are."""
    url: str
    pool_address: Optional[str]
    callee_address: Optional[str]
    sender_address: Optional[str]

    def require_contracts(self) -> tuple[str, str, str]:
        """Pool, callee and sender addresses, all of which must be set."""
        missing = [
            env for env, value in (
                ("POOL_ADDRESS", self.pool_address),
                ("CALLEE_ADDRESS", self.callee_address),
                ("SENDER_ADDRESS", self.sender_address),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"missing node settings: {', '.join(missing)}")
        return self.pool_address, self.callee_address, self.sender_address


DEFAULT_NODE_URL = "http://127.0.0.1:8545"


def resolve_node_settings(
    *,
    url: Optional[str] = None,
    pool_address: Optional[str] = None,
    callee_address: Optional[str] = None,
    sender_address: Optional[str] = None,
) -> NodeSettings:
    """Resolve node settings from explicit values, then the environment."""
    return NodeSettings(
        url=url or os.environ.get("ANVIL_URL", DEFAULT_NODE_URL),
        pool_address=pool_address or os.environ.get("POOL_ADDRESS"),
        callee_address=callee_address or os.environ.get("CALLEE_ADDRESS"),
        sender_address=sender_address or os.environ.get("SENDER_ADDRESS"),
    )


def build_plan(
    *,
    null_swaps_per_block: Optional[int] = None,
    blocks_to_mine: Optional[int] = None,
    call_gas_limit: Optional[int] = None,
    start_timestamp: Optional[int] = None,
    block_interval_seconds: Optional[int] = None,
    submission_mode: Optional[SubmissionMode] = None,
    verify_price: Optional[bool] = None,
    gas_price: Optional[int] = None,
) -> BenchmarkPlan:
    """Build a BenchmarkPlan, filling unset fields from DEFAULT_SETTINGS."""
    def pick(value, default):
        return default if value is None else value

    return BenchmarkPlan(
        null_swaps_per_block=pick(null_swaps_per_block, DEFAULT_SETTINGS.null_swaps_per_block),
        blocks_to_mine=pick(blocks_to_mine, DEFAULT_SETTINGS.blocks_to_mine),
        call_gas_limit=pick(call_gas_limit, DEFAULT_SETTINGS.call_gas_limit),
        start_timestamp=pick(start_timestamp, DEFAULT_SETTINGS.start_timestamp),
        block_interval_seconds=pick(block_interval_seconds, DEFAULT_SETTINGS.block_interval_seconds),
        submission_mode=pick(submission_mode, DEFAULT_SETTINGS.submission_mode),
        verify_price=pick(verify_price, DEFAULT_SETTINGS.verify_price),
        gas_price=gas_price,
    )
