"""Throughput benchmark: submit null blocks and time their mining."""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from pool_replay.bench.synthesizer import NullBlockBatch
from pool_replay.core.errors import ConfigurationError, MissingResult
from pool_replay.core.interfaces import NodeControl, PoolHandle
from pool_replay.core.tolerance import (
    DEFAULT_TOLERANCE,
    is_within_tolerance,
    relative_difference_ppm,
)

logger = logging.getLogger(__name__)


class SubmissionMode(Enum):
    """How a null block reaches the node."""
    MULTICALL = "multicall"    # One transaction wrapping every call
    INDIVIDUAL = "individual"  # One unsigned transaction per call


@dataclass(frozen=True)
class BenchmarkPlan:
    """Parameters of one benchmark run."""
    null_swaps_per_block: int
    blocks_to_mine: int
    call_gas_limit: int
    start_timestamp: int
    block_interval_seconds: int
    submission_mode: SubmissionMode = SubmissionMode.MULTICALL
    verify_price: bool = False
    gas_price: Optional[int] = None  # None = ask the node

    def __post_init__(self) -> None:
        for name in ("null_swaps_per_block", "blocks_to_mine", "call_gas_limit", "block_interval_seconds"):
            value = getattr(self, name)
            if value < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {value}")
        if self.start_timestamp < 0:
            raise ConfigurationError(f"start_timestamp must be >= 0, got {self.start_timestamp}")
        if self.gas_price is not None and self.gas_price < 0:
            raise ConfigurationError(f"gas_price must be >= 0, got {self.gas_price}")

    def block_timestamp(self, block: int) -> int:
        return self.start_timestamp + block * self.block_interval_seconds

    @property
    def total_transactions(self) -> int:
        # Each null swap is two on-chain swaps
        return self.blocks_to_mine * self.null_swaps_per_block * 2


@dataclass(frozen=True)
class BenchmarkResult:
    """Throughput figures of a completed run."""
    total_transactions: int
    wall_clock_seconds: float
    average_throughput: float   # Transactions per second
    average_latency_ms: float   # Milliseconds per transaction
    block_seconds: tuple[float, ...] = ()
    price_drift_violations: tuple[int, ...] = ()  # Blocks whose price left tolerance
    reverted_blocks: tuple[int, ...] = ()         # Blocks holding reverted transactions
    max_price_drift_ppm: Optional[int] = None     # None when verification was off

    def summary(self) -> dict[str, float]:
        """Per-block timing statistics in seconds."""
        if not self.block_seconds:
            return {}
        samples = np.asarray(self.block_seconds, dtype=float)
        return {
            "mean": float(samples.mean()),
            "p50": float(np.percentile(samples, 50)),
            "p95": float(np.percentile(samples, 95)),
            "max": float(samples.max()),
        }


class BenchmarkDriver:
    """Runs null blocks through a node with manual mining.

    Interval mining is switched off for the whole run so timings measure
    execution, not node scheduling.
    """

    def __init__(
        self,
        pool: PoolHandle,
        node: NodeControl,
        tolerance: float = DEFAULT_TOLERANCE,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.pool = pool
        self.node = node
        self.tolerance = tolerance
        self.clock = clock

    def run(self, plan: BenchmarkPlan, batch: NullBlockBatch) -> BenchmarkResult:
        """Mine ``plan.blocks_to_mine`` blocks, each carrying ``batch``.

        Raises:
            ConfigurationError: If the batch size does not match the plan
            MissingResult: If the node did not acknowledge a submission
        """
        if len(batch) != plan.null_swaps_per_block * 2:
            raise ConfigurationError(
                "batch size does not match plan",
                expected=plan.null_swaps_per_block * 2,
                actual=len(batch),
            )

        self.node.set_interval_mining(0)
        gas_price = plan.gas_price if plan.gas_price is not None else self.node.gas_price()
        initial_price = self.pool.current_price() if plan.verify_price else None

        block_seconds: list[float] = []
        violations: list[int] = []
        reverted_blocks: list[int] = []
        max_drift: Optional[int] = None

        overall_start = self.clock()
        for block in range(plan.blocks_to_mine):
            self.node.set_next_block_timestamp(plan.block_timestamp(block))

            block_start = self.clock()
            self._submit(plan, batch, gas_price, block)
            self.node.mine_block()

            if initial_price is not None:
                price = self.pool.current_price()
                drift = relative_difference_ppm(initial_price, price)
                max_drift = drift if max_drift is None else max(max_drift, drift)
                if not is_within_tolerance(initial_price, price, self.tolerance):
                    logger.warning(
                        "Null block %d moved price: expected %d, got %d (%d ppm)",
                        block,
                        initial_price,
                        price,
                        drift,
                    )
                    violations.append(block)

            elapsed = self.clock() - block_start
            block_seconds.append(elapsed)
            logger.debug("Mined null block %d in %.3fs", block, elapsed)

            reverted = self.node.reverted_in_latest_block()
            if reverted:
                logger.warning("Null block %d: %d transactions reverted", block, reverted)
                reverted_blocks.append(block)
        overall_end = self.clock()

        total = plan.total_transactions
        wall_clock = overall_end - overall_start
        throughput = total / wall_clock if wall_clock > 0 else float("inf")
        latency_ms = 1000 / throughput if throughput > 0 else float("inf")

        return BenchmarkResult(
            total_transactions=total,
            wall_clock_seconds=wall_clock,
            average_throughput=throughput,
            average_latency_ms=latency_ms,
            block_seconds=tuple(block_seconds),
            price_drift_violations=tuple(violations),
            reverted_blocks=tuple(reverted_blocks),
            max_price_drift_ppm=max_drift,
        )

    def _submit(self, plan: BenchmarkPlan, batch: NullBlockBatch, gas_price: int, block: int) -> None:
        if plan.submission_mode is SubmissionMode.MULTICALL:
            receipt = self.node.submit_batch(
                batch.calls, plan.call_gas_limit * len(batch), gas_price
            )
            if receipt is None:
                raise MissingResult(f"multicall for block {block} was not accepted", global_index=block)
            return

        for position, call in enumerate(batch.calls):
            receipt = self.node.submit_unsigned(call, plan.call_gas_limit, gas_price)
            if receipt is None:
                raise MissingResult(
                    f"call {position} of block {block} was not accepted", global_index=block
                )


def run_benchmark(
    plan: BenchmarkPlan,
    batch: NullBlockBatch,
    pool: PoolHandle,
    node: NodeControl,
    tolerance: float = DEFAULT_TOLERANCE,
) -> BenchmarkResult:
    """Convenience wrapper around ``BenchmarkDriver.run``."""
    return BenchmarkDriver(pool, node, tolerance).run(plan, batch)
