"""In-memory node that queues swap transactions and mines them on demand."""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pool_replay.core.calls import SwapCall
from pool_replay.core.errors import PoolRevert
from pool_replay.core.interfaces import NodeControl, SubmissionReceipt
from pool_replay.sim.pool import InMemoryPool

logger = logging.getLogger(__name__)


@dataclass
class PendingTransaction:
    tx_hash: str
    calls: tuple[SwapCall, ...]
    gas_limit: int


@dataclass(frozen=True)
class MinedBlock:
    """A block produced by ``mine_block``."""
    number: int
    timestamp: int
    tx_hashes: tuple[str, ...]
    reverted: tuple[str, ...] = ()


@dataclass
class InMemoryNode(NodeControl):
    """NodeControl over an InMemoryPool.

    Transactions wait in a FIFO pending pool until ``mine_block``. A
    transaction whose calls revert is rolled back as a whole, the way a
    multicall reverts on-chain, and recorded in the block's ``reverted``.
    """
    pool: InMemoryPool
    genesis_timestamp: int = 1619820000
    base_gas_price: int = 0
    blocks: list[MinedBlock] = field(default_factory=list)
    interval_mining: int = 0
    logging_enabled: bool = True
    _pending: list[PendingTransaction] = field(default_factory=list, init=False)
    _next_timestamp: Optional[int] = field(default=None, init=False)
    _tx_counter: itertools.count = field(default_factory=lambda: itertools.count(1), init=False)

    @property
    def latest_timestamp(self) -> int:
        return self.blocks[-1].timestamp if self.blocks else self.genesis_timestamp

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def set_next_block_timestamp(self, unix_seconds: int) -> None:
        if unix_seconds <= self.latest_timestamp:
            raise ValueError(
                f"timestamp {unix_seconds} must be greater than the latest block's "
                f"{self.latest_timestamp}"
            )
        self._next_timestamp = unix_seconds

    def set_interval_mining(self, seconds: int) -> None:
        if seconds < 0:
            raise ValueError(f"interval must be >= 0, got {seconds}")
        self.interval_mining = seconds

    def set_logging_enabled(self, enabled: bool) -> None:
        self.logging_enabled = enabled

    def gas_price(self) -> int:
        return self.base_gas_price

    def reverted_in_latest_block(self) -> Optional[int]:
        return len(self.blocks[-1].reverted) if self.blocks else None

    def _enqueue(self, calls: tuple[SwapCall, ...], gas_limit: int) -> SubmissionReceipt:
        tx_hash = f"0x{next(self._tx_counter):064x}"
        self._pending.append(PendingTransaction(tx_hash=tx_hash, calls=calls, gas_limit=gas_limit))
        return SubmissionReceipt(tx_hash=tx_hash, call_count=len(calls))

    def submit_batch(
        self, calls: Sequence[SwapCall], gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        return self._enqueue(tuple(calls), gas_limit)

    def submit_unsigned(
        self, call: SwapCall, gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        return self._enqueue((call,), gas_limit)

    def _execute(self, tx: PendingTransaction) -> bool:
        """Apply every call of ``tx``; roll the pool back if any of them reverts."""
        snapshot = self.pool.snapshot()
        gas_used = 0
        try:
            for call in tx.calls:
                gas_used += self.pool.GAS_SWAP
                if gas_used > tx.gas_limit:
                    raise ValueError(f"out of gas: limit {tx.gas_limit}")
                self.pool.swap(call.direction, call.amount_in, call.sqrt_price_limit_x96, call.recipient)
        except (PoolRevert, ValueError) as e:
            self.pool.restore(snapshot)
            if self.logging_enabled:
                logger.warning("Transaction %s reverted: %s", tx.tx_hash, e)
            return False
        return True

    def mine_block(self) -> None:
        timestamp = self._next_timestamp if self._next_timestamp is not None else self.latest_timestamp + 1
        self._next_timestamp = None

        pending, self._pending = self._pending, []
        reverted = [tx.tx_hash for tx in pending if not self._execute(tx)]

        block = MinedBlock(
            number=len(self.blocks) + 1,
            timestamp=timestamp,
            tx_hashes=tuple(tx.tx_hash for tx in pending),
            reverted=tuple(reverted),
        )
        self.blocks.append(block)
        if self.logging_enabled:
            logger.debug(
                "Mined block %d at %d with %d transactions", block.number, timestamp, len(pending)
            )
