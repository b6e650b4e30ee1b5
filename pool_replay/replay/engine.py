"""Replay recorded pool events against a live pool and verify the results."""

import logging
from dataclasses import dataclass
from typing import Optional

from pool_replay.core.calls import UNCONSTRAINED
from pool_replay.core.errors import (
    ConfigurationError,
    ExactInvariantViolation,
    MissingResult,
    PoolRevert,
    ToleranceViolation,
)
from pool_replay.core.events import (
    BurnEvent,
    MintEvent,
    PoolReferenceMetadata,
    RecordedEvent,
    RecordedLog,
    SwapEvent,
)
from pool_replay.core.interfaces import (
    LiquidityResult,
    PoolHandle,
    PoolLogKind,
    PoolReceipt,
    SwapResult,
)
from pool_replay.core.tolerance import DEFAULT_TOLERANCE, is_within_tolerance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayReport:
    """Outcome of a completed replay."""
    verified_events: int
    final_price: int                  # Pool sqrtPriceX96 after the last replayed event
    recovered_indices: tuple[int, ...]  # Swaps that needed the price-limited retry
    reference_swap: SwapEvent         # Final recorded swap, not replayed


def prepare_pool(pool: PoolHandle, metadata: PoolReferenceMetadata) -> None:
    """Initialize a fresh pool at the recorded starting price."""
    logger.info("Initializing pool %s at sqrtPriceX96=%d", pool.address, metadata.init_sqrt_price_x96)
    pool.initialize(metadata.init_sqrt_price_x96)


class ReplayEngine:
    """Drives a pool through a recorded event sequence.

    Every replayed event is checked against its recorded payload. Swaps whose
    post-swap price drifted are retried once, constrained to the recorded
    price; every other mismatch aborts the run.
    """

    def __init__(self, pool: PoolHandle, tolerance: float = DEFAULT_TOLERANCE):
        self.pool = pool
        self.tolerance = tolerance

    def replay(self, log: RecordedLog) -> ReplayReport:
        """Replay all but the final event of ``log``.

        Raises:
            ToleranceViolation: A verified amount or price is out of tolerance
            ExactInvariantViolation: Post-swap liquidity differs
            MissingResult: The pool produced no receipt or event
            PoolRevert: The pool rejected a mint, burn or first swap attempt
        """
        recovered: list[int] = []
        verified = 0

        for event in log.replayable:
            if self.replay_event(event):
                recovered.append(event.global_index)
            verified += 1

        final_price = self.pool.current_price()
        logger.info(
            "Replayed %d events (%d recovered), final sqrtPriceX96=%d",
            verified,
            len(recovered),
            final_price,
        )
        return ReplayReport(
            verified_events=verified,
            final_price=final_price,
            recovered_indices=tuple(recovered),
            reference_swap=log.reference_swap,
        )

    def replay_event(self, event: RecordedEvent) -> bool:
        """Replay one event; True if it went through price recovery."""
        match event:
            case MintEvent(payload=payload):
                receipt = self._submit(
                    event, self.pool.add_liquidity, payload.tick_lower, payload.tick_upper, payload.amount
                )
                self._verify_liquidity_change(event, receipt, PoolLogKind.MINT)
                return False
            case BurnEvent(payload=payload):
                receipt = self._submit(
                    event, self.pool.remove_liquidity, payload.tick_lower, payload.tick_upper, payload.amount
                )
                self._verify_liquidity_change(event, receipt, PoolLogKind.BURN)
                return False
            case SwapEvent():
                return self._replay_swap(event)
            case _:
                raise ConfigurationError(f"cannot replay {type(event).__name__}")

    def _verify_liquidity_change(
        self,
        event: RecordedEvent,
        receipt: Optional[PoolReceipt],
        kind: PoolLogKind,
    ) -> None:
        result: LiquidityResult = self._require(receipt, kind, event.global_index)
        self._check("amount0", event.global_index, event.payload.amount0, result.amount0)
        self._check("amount1", event.global_index, event.payload.amount1, result.amount1)

    def _replay_swap(self, event: SwapEvent) -> bool:
        payload = event.payload
        index = event.global_index

        receipt = self._submit(event, self.pool.swap, payload.direction, payload.amount_in, UNCONSTRAINED)
        result: SwapResult = self._require(receipt, PoolLogKind.SWAP, index)

        self._check_exact("liquidity", index, payload.liquidity, result.liquidity)
        self._check("amount0", index, payload.amount0, result.amount0)
        self._check("amount1", index, payload.amount1, result.amount1)

        if is_within_tolerance(payload.sqrt_price_x96, result.sqrt_price_x96, self.tolerance):
            return False

        logger.warning(
            "Swap %d did not reach recorded price (expected %d, got %d); "
            "retrying with recorded price as limit",
            index,
            payload.sqrt_price_x96,
            result.sqrt_price_x96,
        )

        try:
            receipt = self.pool.swap(payload.direction, payload.amount_in, payload.sqrt_price_x96)
        except PoolRevert as e:
            # Overshoot: the recorded price is behind the current one
            raise ToleranceViolation(
                f"price recovery reverted ({e}); sqrtPriceX96 outside tolerance {self.tolerance}",
                global_index=index,
                quantity="sqrtPriceX96",
                expected=payload.sqrt_price_x96,
                actual=self.pool.current_price(),
            ) from e
        result = self._require(receipt, PoolLogKind.SWAP, index)

        self._check_exact("liquidity", index, payload.liquidity, result.liquidity)
        self._check("sqrtPriceX96", index, payload.sqrt_price_x96, result.sqrt_price_x96)
        return True

    @staticmethod
    def _submit(event: RecordedEvent, operation, *args) -> Optional[PoolReceipt]:
        """Call ``operation`` and tag a pool revert with the event's index."""
        try:
            return operation(*args)
        except PoolRevert as e:
            raise PoolRevert(
                f"{event.kind.value} reverted: {e}",
                reason=e.reason,
                global_index=event.global_index,
            ) from e

    @staticmethod
    def _require(receipt: Optional[PoolReceipt], kind: PoolLogKind, global_index: int):
        if receipt is None:
            raise MissingResult(f"{kind.value} produced no receipt", global_index=global_index)
        return receipt.get(kind, global_index=global_index)

    def _check(self, quantity: str, global_index: int, expected: int, actual: int) -> None:
        if not is_within_tolerance(expected, actual, self.tolerance):
            raise ToleranceViolation(
                f"{quantity} outside tolerance {self.tolerance}",
                global_index=global_index,
                quantity=quantity,
                expected=expected,
                actual=actual,
            )

    @staticmethod
    def _check_exact(quantity: str, global_index: int, expected: int, actual: int) -> None:
        if expected != actual:
            raise ExactInvariantViolation(
                f"{quantity} must match exactly",
                global_index=global_index,
                quantity=quantity,
                expected=expected,
                actual=actual,
            )


def replay(
    log: RecordedLog, pool: PoolHandle, tolerance: float = DEFAULT_TOLERANCE
) -> ReplayReport:
    """Convenience wrapper around ``ReplayEngine.replay``."""
    return ReplayEngine(pool, tolerance).replay(log)
