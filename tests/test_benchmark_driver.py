"""Tests for the null-block benchmark driver."""

import logging

import pytest

from pool_replay.bench.driver import (
    BenchmarkDriver,
    BenchmarkPlan,
    BenchmarkResult,
    SubmissionMode,
    run_benchmark,
)
from pool_replay.bench.synthesizer import synthesize
from pool_replay.config import DEFAULT_SETTINGS, build_plan
from pool_replay.core.errors import ConfigurationError, MissingResult
from pool_replay.sim.node import InMemoryNode
from pool_replay.sim.pool import InMemoryPool
from tests.fixtures import POOL, PRICE, RECIPIENT, RecordingNode, ScriptedPool, StepClock, make_swap

REFERENCE = make_swap(10).payload
START = 1619830000


def make_plan(**overrides) -> BenchmarkPlan:
    values = dict(
        null_swaps_per_block=1000,
        blocks_to_mine=10,
        call_gas_limit=1_000_000,
        start_timestamp=START,
        block_interval_seconds=15,
    )
    values.update(overrides)
    return BenchmarkPlan(**values)


def make_batch(plan: BenchmarkPlan):
    return synthesize(REFERENCE, PRICE, None, plan.null_swaps_per_block, POOL, RECIPIENT)


class TestPlan:

    def test_total_transactions(self):
        assert make_plan().total_transactions == 20_000

    @pytest.mark.parametrize(
        "field", ["null_swaps_per_block", "blocks_to_mine", "call_gas_limit", "block_interval_seconds"]
    )
    def test_counts_must_be_positive(self, field):
        with pytest.raises(ConfigurationError):
            make_plan(**{field: 0})

    def test_negative_gas_price_rejected(self):
        with pytest.raises(ConfigurationError):
            make_plan(gas_price=-1)

    def test_block_timestamps(self):
        plan = make_plan()
        assert [plan.block_timestamp(i) for i in range(3)] == [START, START + 15, START + 30]

    def test_build_plan_uses_defaults(self):
        plan = build_plan(blocks_to_mine=3)
        assert plan.blocks_to_mine == 3
        assert plan.null_swaps_per_block == DEFAULT_SETTINGS.null_swaps_per_block
        assert plan.submission_mode is SubmissionMode.MULTICALL
        assert plan.verify_price is False


def drive(plan, node=None, pool=None, clock=None):
    node = node or RecordingNode()
    pool = pool or ScriptedPool()
    driver = BenchmarkDriver(pool, node, clock=clock or StepClock())
    return driver.run(plan, make_batch(plan)), node


class TestDriverSequencing:
    """Node control calls in order."""

    def test_interval_mining_disabled_first(self):
        _, node = drive(make_plan(blocks_to_mine=2, null_swaps_per_block=1))
        assert node.interval_settings == [0]

    def test_timestamps_strictly_increase(self):
        _, node = drive(make_plan(blocks_to_mine=5, null_swaps_per_block=1))
        assert node.timestamps == [START + 15 * i for i in range(5)]
        assert node.mined == 5

    def test_multicall_gas_scales_with_batch(self):
        _, node = drive(make_plan(blocks_to_mine=2, null_swaps_per_block=4))
        assert node.batches == [(8, 8_000_000, 7), (8, 8_000_000, 7)]

    def test_explicit_gas_price_wins(self):
        _, node = drive(make_plan(blocks_to_mine=1, null_swaps_per_block=1, gas_price=99))
        assert node.batches[0][2] == 99

    def test_individual_submission(self):
        plan = make_plan(
            blocks_to_mine=3, null_swaps_per_block=2, submission_mode=SubmissionMode.INDIVIDUAL
        )
        _, node = drive(plan)
        assert node.batches == []
        assert len(node.unsigned) == 3 * 4
        assert {gas for _, gas, _ in node.unsigned} == {1_000_000}

    def test_batch_size_must_match_plan(self):
        plan = make_plan(null_swaps_per_block=3)
        batch = synthesize(REFERENCE, PRICE, None, 2, POOL, RECIPIENT)
        with pytest.raises(ConfigurationError):
            BenchmarkDriver(ScriptedPool(), RecordingNode()).run(plan, batch)


class TestThroughput:

    def test_totals_and_rates(self):
        plan = make_plan()
        result, _ = drive(plan, clock=StepClock(0.5))

        # One clock reading before the loop, two per block, one after
        assert result.total_transactions == 20_000
        assert result.wall_clock_seconds == pytest.approx(10.5)
        assert result.average_throughput == pytest.approx(20_000 / 10.5)
        assert result.average_latency_ms == pytest.approx(1000 * 10.5 / 20_000)
        assert result.block_seconds == tuple([0.5] * 10)

    def test_summary_statistics(self):
        result = BenchmarkResult(
            total_transactions=8,
            wall_clock_seconds=4.0,
            average_throughput=2.0,
            average_latency_ms=500.0,
            block_seconds=(1.0, 1.0, 1.0, 1.0),
        )
        assert result.summary() == {"mean": 1.0, "p50": 1.0, "p95": 1.0, "max": 1.0}

    def test_summary_empty_without_blocks(self):
        assert BenchmarkResult(0, 0.0, 0.0, 0.0).summary() == {}

    def test_zero_elapsed_time_is_infinite_throughput(self):
        plan = make_plan(blocks_to_mine=1, null_swaps_per_block=1)
        result, _ = drive(plan, clock=lambda: 0.0)
        assert result.average_throughput == float("inf")
        assert result.average_latency_ms == 0.0


class TestFailures:
    """A failed submission or node call aborts with no result."""

    def test_refused_submission_aborts(self):
        node = RecordingNode(accept_submissions=False)
        plan = make_plan(blocks_to_mine=3, null_swaps_per_block=1)
        with pytest.raises(MissingResult):
            BenchmarkDriver(ScriptedPool(), node).run(plan, make_batch(plan))
        assert node.mined == 0

    def test_refused_individual_submission_aborts(self):
        node = RecordingNode(accept_submissions=False)
        plan = make_plan(null_swaps_per_block=1, submission_mode=SubmissionMode.INDIVIDUAL)
        with pytest.raises(MissingResult):
            run_benchmark(plan, make_batch(plan), ScriptedPool(), node)

    def test_node_error_propagates(self):
        def explode(block):
            raise RuntimeError("node went away")

        node = RecordingNode(on_mine=explode)
        plan = make_plan(null_swaps_per_block=1)
        with pytest.raises(RuntimeError, match="node went away"):
            run_benchmark(plan, make_batch(plan), ScriptedPool(), node)


class TestPriceVerification:

    def test_disabled_by_default(self):
        plan = make_plan(blocks_to_mine=2, null_swaps_per_block=1)
        result = run_benchmark(plan, make_batch(plan), ScriptedPool(), RecordingNode())
        assert result.max_price_drift_ppm is None
        assert result.price_drift_violations == ()

    def test_drift_recorded_without_abort(self, caplog):
        pool = ScriptedPool()

        def drift_on_second_block(block):
            if block == 2:
                pool.price = PRICE * 2

        node = RecordingNode(on_mine=drift_on_second_block)
        plan = make_plan(blocks_to_mine=3, null_swaps_per_block=1, verify_price=True)

        with caplog.at_level(logging.WARNING, logger="pool_replay.bench.driver"):
            result = run_benchmark(plan, make_batch(plan), pool, node)

        assert node.mined == 3
        assert result.price_drift_violations == (1, 2)
        assert result.max_price_drift_ppm == 500_000
        assert any("moved price" in record.message for record in caplog.records)


class TestRevertedTransactions:
    """Blocks whose transactions rolled back are reported even without price checks."""

    def test_reverted_blocks_recorded_without_abort(self, caplog):
        node = RecordingNode(reverting_blocks=(2, 3))
        plan = make_plan(blocks_to_mine=3, null_swaps_per_block=1)

        with caplog.at_level(logging.WARNING, logger="pool_replay.bench.driver"):
            result = run_benchmark(plan, make_batch(plan), ScriptedPool(), node)

        assert node.mined == 3
        assert result.reverted_blocks == (1, 2)
        assert result.max_price_drift_ppm is None
        assert any("reverted" in record.message for record in caplog.records)

    def test_clean_run_has_no_reverted_blocks(self):
        plan = make_plan(blocks_to_mine=2, null_swaps_per_block=1)
        result = run_benchmark(plan, make_batch(plan), ScriptedPool(), RecordingNode())
        assert result.reverted_blocks == ()

    def test_out_of_gas_multicalls_reported(self, replayed_pool):
        pool, report = replayed_pool
        observed = pool.current_price()
        # Below the in-memory pool's per-swap gas, so every multicall runs out
        plan = make_plan(blocks_to_mine=2, null_swaps_per_block=3, call_gas_limit=InMemoryPool.GAS_SWAP // 2)
        batch = synthesize(
            report.reference_swap.payload, observed, None, plan.null_swaps_per_block,
            pool.address, pool.recipient,
        )
        node = InMemoryNode(pool, genesis_timestamp=START - 1)

        result = run_benchmark(plan, batch, pool, node)

        assert result.reverted_blocks == (0, 1)
        assert pool.current_price() == observed


class TestInMemoryBenchmark:

    def test_end_to_end_benchmark_keeps_price(self, replayed_pool):
        pool, report = replayed_pool
        observed = pool.current_price()
        plan = make_plan(blocks_to_mine=4, null_swaps_per_block=25, verify_price=True)
        batch = synthesize(
            report.reference_swap.payload, observed, None, plan.null_swaps_per_block,
            pool.address, pool.recipient,
        )
        node = InMemoryNode(pool, genesis_timestamp=START - 1)

        result = run_benchmark(plan, batch, pool, node)

        assert result.total_transactions == 200
        assert result.price_drift_violations == ()
        assert result.max_price_drift_ppm == 0
        assert [block.timestamp for block in node.blocks] == [START + 15 * i for i in range(4)]
        assert all(block.reverted == () for block in node.blocks)
        assert pool.current_price() == observed
