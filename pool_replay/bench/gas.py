"""Gas profile of repeated position operations on a single tick range."""

import logging
from dataclasses import dataclass, field

from pool_replay.core.calls import UNCONSTRAINED
from pool_replay.core.errors import MissingResult
from pool_replay.core.events import SwapEvent
from pool_replay.core.interfaces import PoolHandle

logger = logging.getLogger(__name__)


@dataclass
class GasReport:
    """Gas used per labelled operation, in execution order."""
    tick_lower: int
    tick_upper: int
    amount: int
    entries: list[tuple[str, int]] = field(default_factory=list)

    @property
    def total_gas(self) -> int:
        return sum(gas for _, gas in self.entries)

    def gas_for(self, label: str) -> int:
        for name, gas in self.entries:
            if name == label:
                return gas
        raise KeyError(label)


class GasProfiler:
    """Measures mint, collect and burn costs around one recorded swap.

    The sequence mirrors a liquidity provider adding the same position twice,
    letting a trade through, collecting, then unwinding both adds.
    """

    def __init__(self, pool: PoolHandle):
        self.pool = pool

    def profile(
        self, tick_lower: int, tick_upper: int, amount: int, swap_event: SwapEvent
    ) -> GasReport:
        report = GasReport(tick_lower=tick_lower, tick_upper=tick_upper, amount=amount)
        payload = swap_event.payload

        self._record(report, "mint1", self.pool.add_liquidity(tick_lower, tick_upper, amount))
        self._record(report, "mint2", self.pool.add_liquidity(tick_lower, tick_upper, amount))
        self._record(
            report,
            "swap",
            self.pool.swap(payload.direction, payload.amount_in, UNCONSTRAINED),
            global_index=swap_event.global_index,
        )
        self._record(report, "collect", self.pool.collect_fees(tick_lower, tick_upper))
        self._record(report, "burn1", self.pool.remove_liquidity(tick_lower, tick_upper, amount))
        self._record(report, "burn2", self.pool.remove_liquidity(tick_lower, tick_upper, amount))
        return report

    @staticmethod
    def _record(report: GasReport, label: str, receipt, global_index=None) -> None:
        if receipt is None:
            raise MissingResult(f"{label} produced no receipt", global_index=global_index)
        logger.info("%s gas used: %d", label, receipt.gas_used)
        report.entries.append((label, receipt.gas_used))
