"""Tests for the mint/collect/burn gas profiler."""

import pytest

from pool_replay.bench.gas import GasProfiler
from pool_replay.config import GAS_PROFILE_SETTINGS
from pool_replay.core.calls import UNCONSTRAINED
from pool_replay.core.errors import MissingResult
from pool_replay.core.events import SwapEvent
from pool_replay.core.interfaces import PoolLogKind, PoolReceipt
from pool_replay.replay.engine import ReplayEngine
from pool_replay.sim.pool import InMemoryPool
from tests.fixtures import (
    TICK_LOWER,
    TICK_UPPER,
    ScriptedPool,
    collect_receipt,
    liquidity_receipt,
    make_swap,
    swap_receipt,
)

SWAP = make_swap(2)
LABELS = ["mint1", "mint2", "swap", "collect", "burn1", "burn2"]


def scripted_receipts():
    return [
        liquidity_receipt(PoolLogKind.MINT, 10, 20),
        liquidity_receipt(PoolLogKind.MINT, 10, 20),
        swap_receipt(SWAP),
        collect_receipt(1, 2),
        liquidity_receipt(PoolLogKind.BURN, 9, 19),
        liquidity_receipt(PoolLogKind.BURN, 9, 19),
    ]


class TestGasProfiler:

    def test_six_labelled_operations_in_order(self):
        report = GasProfiler(ScriptedPool(scripted_receipts())).profile(
            TICK_LOWER, TICK_UPPER, 1_000_000, SWAP
        )
        assert [label for label, _ in report.entries] == LABELS

    def test_gas_taken_from_receipts(self):
        report = GasProfiler(ScriptedPool(scripted_receipts())).profile(
            TICK_LOWER, TICK_UPPER, 1_000_000, SWAP
        )
        assert report.gas_for("mint1") == 150_000
        assert report.gas_for("swap") == 100_000
        assert report.gas_for("collect") == 60_000
        assert report.total_gas == 4 * 150_000 + 100_000 + 60_000

    def test_unknown_label(self):
        report = GasProfiler(ScriptedPool(scripted_receipts())).profile(
            TICK_LOWER, TICK_UPPER, 1_000_000, SWAP
        )
        with pytest.raises(KeyError):
            report.gas_for("flash")

    def test_operations_target_one_position(self):
        pool = ScriptedPool(scripted_receipts())
        GasProfiler(pool).profile(TICK_LOWER, TICK_UPPER, 1_000_000, SWAP)

        operations = [call.operation for call in pool.calls]
        assert operations == ["mint", "mint", "swap0For1", "collect", "burn", "burn"]
        assert pool.calls[0].args == (TICK_LOWER, TICK_UPPER, 1_000_000)
        assert pool.calls[4].args == (TICK_LOWER, TICK_UPPER, 1_000_000)
        assert pool.calls[2].args[0] == SWAP.payload.amount_in
        assert pool.calls[2].args[2] == UNCONSTRAINED

    def test_missing_receipt_aborts(self):
        receipts = scripted_receipts()
        receipts[3] = None
        pool = ScriptedPool(receipts)
        with pytest.raises(MissingResult, match="collect"):
            GasProfiler(pool).profile(TICK_LOWER, TICK_UPPER, 1_000_000, SWAP)
        assert len(pool.calls) == 4

    def test_receipt_gas_defaults_to_zero(self):
        receipts = scripted_receipts()
        receipts[0] = PoolReceipt(events={PoolLogKind.MINT: receipts[0].events[PoolLogKind.MINT]})
        report = GasProfiler(ScriptedPool(receipts)).profile(TICK_LOWER, TICK_UPPER, 1, SWAP)
        assert report.gas_for("mint1") == 0


class TestInMemoryGasProfile:

    def test_end_to_end_profile_after_seed_mint(self, fresh_pool, recorded_log):
        ReplayEngine(fresh_pool).replay_event(recorded_log.events[0])
        swap = next(e for e in recorded_log.events if isinstance(e, SwapEvent))

        report = GasProfiler(fresh_pool).profile(
            GAS_PROFILE_SETTINGS.tick_lower,
            GAS_PROFILE_SETTINGS.tick_upper,
            GAS_PROFILE_SETTINGS.amount,
            swap,
        )

        assert [label for label, _ in report.entries] == LABELS
        assert report.gas_for("mint2") == InMemoryPool.GAS_MINT
        assert report.gas_for("burn2") == InMemoryPool.GAS_BURN
        assert fresh_pool.positions[(GAS_PROFILE_SETTINGS.tick_lower, GAS_PROFILE_SETTINGS.tick_upper)].liquidity == 0
