"""Null-block synthesis and node throughput benchmarking."""

from pool_replay.bench.driver import (
    BenchmarkDriver,
    BenchmarkPlan,
    BenchmarkResult,
    SubmissionMode,
    run_benchmark,
)
from pool_replay.bench.gas import GasProfiler, GasReport
from pool_replay.bench.synthesizer import NullBlockBatch, synthesize

__all__ = [
    "BenchmarkDriver",
    "BenchmarkPlan",
    "BenchmarkResult",
    "GasProfiler",
    "GasReport",
    "NullBlockBatch",
    "SubmissionMode",
    "run_benchmark",
    "synthesize",
]
