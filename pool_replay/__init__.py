"""Replay recorded V3 pool events and benchmark node throughput with null blocks."""

from pool_replay.bench import (
    BenchmarkDriver,
    BenchmarkPlan,
    BenchmarkResult,
    GasProfiler,
    GasReport,
    NullBlockBatch,
    SubmissionMode,
    run_benchmark,
    synthesize,
)
from pool_replay.core import (
    ConfigurationError,
    ExactInvariantViolation,
    MissingResult,
    NodeControl,
    PoolHandle,
    RecordedLog,
    ReplayError,
    ToleranceViolation,
    is_within_tolerance,
)
from pool_replay.replay import ReplayEngine, ReplayReport, prepare_pool, replay

__version__ = "0.1.0"

__all__ = [
    "BenchmarkDriver",
    "BenchmarkPlan",
    "BenchmarkResult",
    "ConfigurationError",
    "ExactInvariantViolation",
    "GasProfiler",
    "GasReport",
    "MissingResult",
    "NodeControl",
    "NullBlockBatch",
    "PoolHandle",
    "RecordedLog",
    "ReplayEngine",
    "ReplayError",
    "ReplayReport",
    "SubmissionMode",
    "ToleranceViolation",
    "is_within_tolerance",
    "prepare_pool",
    "replay",
    "run_benchmark",
    "synthesize",
]
