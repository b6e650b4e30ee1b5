"""Pytest configuration and shared fixtures for replay and benchmark tests.

This module provides:
- Pytest markers for test categorization
- Generated recorded logs (100 events, fixed seed)
- Fresh in-memory pools and nodes
"""

import pytest

from pool_replay.core.events import PoolReferenceMetadata, RecordedLog
from pool_replay.replay.engine import ReplayEngine, ReplayReport, prepare_pool
from pool_replay.sim.node import InMemoryNode
from pool_replay.sim.pool import InMemoryPool
from pool_replay.sim.recorder import generate_recorded_log


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "replay: Recorded event replay and verification tests"
    )
    config.addinivalue_line(
        "markers", "bench: Null-block synthesis and benchmark driver tests"
    )
    config.addinivalue_line(
        "markers", "integration: Tests running the in-memory pool and node end to end"
    )
    config.addinivalue_line(
        "markers", "slow: Tests taking more than 5 seconds to run"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location and name."""
    for item in items:
        if "replay" in item.nodeid:
            item.add_marker(pytest.mark.replay)

        if any(keyword in item.nodeid for keyword in ["synthesizer", "benchmark", "gas"]):
            item.add_marker(pytest.mark.bench)

        if "end_to_end" in item.name or "test_cli" in item.nodeid:
            item.add_marker(pytest.mark.integration)


# ============================================================================
# Recorded Log Fixtures
# ============================================================================


RECORDED_EVENTS = 100
RECORDED_SEED = 7


@pytest.fixture(scope="session")
def recorded() -> tuple[RecordedLog, PoolReferenceMetadata]:
    """A generated 100-event log and its pool metadata.

    Returns:
        (log, metadata) for seed 7; the log starts with a mint and ends
        with the reference swap.
    """
    return generate_recorded_log(RECORDED_EVENTS, seed=RECORDED_SEED)


@pytest.fixture
def recorded_log(recorded) -> RecordedLog:
    return recorded[0]


@pytest.fixture
def pool_metadata(recorded) -> PoolReferenceMetadata:
    return recorded[1]


# ============================================================================
# In-memory Collaborators
# ============================================================================


@pytest.fixture
def fresh_pool(pool_metadata) -> InMemoryPool:
    """Pool initialized at the recorded starting price, with no positions."""
    pool = InMemoryPool(fee=pool_metadata.fee)
    prepare_pool(pool, pool_metadata)
    return pool


@pytest.fixture
def replayed_pool(fresh_pool, recorded_log) -> tuple[InMemoryPool, ReplayReport]:
    """Pool after replaying every event but the reference swap.

    Returns:
        (pool, report)
    """
    report = ReplayEngine(fresh_pool).replay(recorded_log)
    return fresh_pool, report


@pytest.fixture
def memory_node(fresh_pool) -> InMemoryNode:
    return InMemoryNode(fresh_pool, genesis_timestamp=1619829999)
