"""Generate recorded event logs by running random operations on an InMemoryPool.

The generated fixtures have the same shape as logs pulled from an indexer, so
they can stand in for mainnet recordings in dry runs and tests. Because every
recorded result comes from the in-memory pool itself, replaying a generated
log on a fresh InMemoryPool reproduces it exactly.
"""

import logging
from typing import Optional

import numpy as np

from pool_replay.core.calls import UNCONSTRAINED
from pool_replay.core.errors import ConfigurationError
from pool_replay.core.events import (
    MAX_TICK,
    MIN_TICK,
    BlockRef,
    BurnEvent,
    LiquidityChangePayload,
    MintEvent,
    PoolReferenceMetadata,
    RecordedEvent,
    RecordedLog,
    SwapDirection,
    SwapEvent,
    SwapPayload,
)
from pool_replay.core.interfaces import PoolLogKind
from pool_replay.sim.pool import Q96, InMemoryPool, sqrt_price_x96_to_tick, tick_to_sqrt_price_x96

logger = logging.getLogger(__name__)

# Fee tier (hundredths of a bip) -> tick spacing
TICK_SPACINGS = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

DEFAULT_INIT_TICK = 195000
DEFAULT_START_BLOCK = 12376729
DEFAULT_START_TIMESTAMP = 1620158974
SECONDS_PER_BLOCK = 12

SEED_LIQUIDITY = 10**18
SEED_HALF_WIDTH = 50_000  # ticks either side of the starting price

# Operation mix after the seed mint
SWAP_PROBABILITY = 0.7
MINT_PROBABILITY = 0.2

# Swap size as a fraction of the virtual reserve of the input token
MIN_SWAP_FRACTION = 1e-4
MAX_SWAP_FRACTION = 2e-3


class _Recorder:
    """Runs operations on a pool and records them as indexed events."""

    def __init__(self, pool: InMemoryPool, rng: np.random.Generator, tick_spacing: int,
                 start_block: int, start_timestamp: int):
        self.pool = pool
        self.rng = rng
        self.tick_spacing = tick_spacing
        self.block_number = start_block
        self.timestamp = start_timestamp
        self.log_index = 0
        self.events: list[RecordedEvent] = []
        self.seed_range: Optional[tuple[int, int]] = None

    def _advance(self) -> tuple[int, BlockRef]:
        """Move to the next log position, sometimes starting a new block."""
        blocks = int(self.rng.integers(0, 3)) if self.events else 0
        if blocks:
            self.block_number += blocks
            self.timestamp += blocks * SECONDS_PER_BLOCK
            self.log_index = 0
        else:
            self.log_index += 1
        global_index = self.block_number * 10_000 + self.log_index
        return global_index, BlockRef(timestamp=self.timestamp, block_number=self.block_number)

    def _align(self, tick: int) -> int:
        spacing = self.tick_spacing
        aligned = (tick // spacing) * spacing
        lowest = -(-MIN_TICK // spacing) * spacing
        highest = (MAX_TICK // spacing) * spacing
        return min(max(aligned, lowest), highest)

    def current_tick(self) -> int:
        return sqrt_price_x96_to_tick(self.pool.current_price())

    def mint(self, tick_lower: int, tick_upper: int, amount: int) -> None:
        receipt = self.pool.add_liquidity(tick_lower, tick_upper, amount)
        result = receipt.get(PoolLogKind.MINT)
        global_index, block = self._advance()
        payload = LiquidityChangePayload(
            amount=amount,
            amount0=result.amount0,
            amount1=result.amount1,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )
        self.events.append(MintEvent(global_index=global_index, block=block, payload=payload))

    def burn(self, tick_lower: int, tick_upper: int, amount: int) -> None:
        receipt = self.pool.remove_liquidity(tick_lower, tick_upper, amount)
        result = receipt.get(PoolLogKind.BURN)
        global_index, block = self._advance()
        payload = LiquidityChangePayload(
            amount=amount,
            amount0=result.amount0,
            amount1=result.amount1,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
        )
        self.events.append(BurnEvent(global_index=global_index, block=block, payload=payload))

    def swap(self, direction: SwapDirection, amount_in: int) -> None:
        receipt = self.pool.swap(direction, amount_in, UNCONSTRAINED)
        result = receipt.get(PoolLogKind.SWAP)
        global_index, block = self._advance()
        payload = SwapPayload(
            amount0=result.amount0,
            amount1=result.amount1,
            liquidity=result.liquidity,
            sqrt_price_x96=result.sqrt_price_x96,
        )
        self.events.append(SwapEvent(global_index=global_index, block=block, payload=payload))

    def seed(self) -> None:
        tick = self._align(self.current_tick())
        half_width = (SEED_HALF_WIDTH // self.tick_spacing) * self.tick_spacing
        self.seed_range = (self._align(tick - half_width), self._align(tick + half_width))
        amount = SEED_LIQUIDITY * int(self.rng.integers(1, 10))
        self.mint(*self.seed_range, amount)

    def random_swap(self) -> None:
        direction = SwapDirection.ZERO_FOR_ONE if self.rng.random() < 0.5 else SwapDirection.ONE_FOR_ZERO
        liquidity = self.pool.liquidity
        price = self.pool.current_price()
        if direction is SwapDirection.ZERO_FOR_ONE:
            reserve = (liquidity << 96) // price
        else:
            reserve = liquidity * price // Q96
        fraction = self.rng.uniform(MIN_SWAP_FRACTION, MAX_SWAP_FRACTION)
        self.swap(direction, max(int(reserve * fraction), 1))

    def random_mint(self) -> None:
        tick = self._align(self.current_tick())
        spacing = self.tick_spacing
        placement = self.rng.random()
        if placement < 0.125:
            # Entirely above the price: token0 only
            tick_lower = tick + int(self.rng.integers(300, 1000)) * spacing
            tick_upper = tick_lower + int(self.rng.integers(10, 2000)) * spacing
        elif placement < 0.25:
            # Entirely below the price: token1 only
            tick_upper = tick - int(self.rng.integers(300, 1000)) * spacing
            tick_lower = tick_upper - int(self.rng.integers(10, 2000)) * spacing
        else:
            tick_lower = tick - int(self.rng.integers(300, 3000)) * spacing
            tick_upper = tick + int(self.rng.integers(300, 3000)) * spacing
        tick_lower, tick_upper = self._align(tick_lower), self._align(tick_upper)
        amount = int(SEED_LIQUIDITY * self.rng.uniform(0.05, 0.5))
        self.mint(tick_lower, tick_upper, amount)

    def random_burn(self) -> bool:
        candidates = sorted(
            key for key, position in self.pool.positions.items()
            if key != self.seed_range and position.liquidity >= 2
        )
        if not candidates:
            return False
        tick_lower, tick_upper = candidates[int(self.rng.integers(0, len(candidates)))]
        held = self.pool.positions[(tick_lower, tick_upper)].liquidity
        amount = max(int(held * self.rng.uniform(0.1, 0.6)), 1)
        self.burn(tick_lower, tick_upper, amount)
        return True


def generate_recorded_log(
    n_events: int,
    seed: int = 0,
    init_sqrt_price_x96: Optional[int] = None,
    fee: int = 500,
    *,
    start_block: int = DEFAULT_START_BLOCK,
    start_timestamp: int = DEFAULT_START_TIMESTAMP,
) -> tuple[RecordedLog, PoolReferenceMetadata]:
    """Record a random but reproducible pool history.

    The first event is a wide mint that keeps the price in range, the last is
    always a swap (the reference swap for null-block synthesis), and the
    events between are swaps, mints and burns of non-seed positions.

    Args:
        n_events: Total number of events, at least 2
        seed: Seed for numpy's default_rng
        init_sqrt_price_x96: Starting price (default: tick 195000)
        fee: Fee tier, one of TICK_SPACINGS
        start_block: Block number of the first event
        start_timestamp: Timestamp of the first event's block

    Returns:
        The recorded log and the pool metadata needed to replay it
    """
    if n_events < 2:
        raise ConfigurationError(f"need at least 2 events (seed mint and a swap), got {n_events}")
    if fee not in TICK_SPACINGS:
        raise ConfigurationError(f"unsupported fee tier {fee}, expected one of {sorted(TICK_SPACINGS)}")

    if init_sqrt_price_x96 is None:
        init_sqrt_price_x96 = tick_to_sqrt_price_x96(DEFAULT_INIT_TICK)

    rng = np.random.default_rng(seed)
    pool = InMemoryPool(fee=fee)
    pool.initialize(init_sqrt_price_x96)
    recorder = _Recorder(pool, rng, TICK_SPACINGS[fee], start_block, start_timestamp)

    recorder.seed()
    for _ in range(n_events - 2):
        roll = rng.random()
        if roll < SWAP_PROBABILITY:
            recorder.random_swap()
        elif roll < SWAP_PROBABILITY + MINT_PROBABILITY:
            recorder.random_mint()
        elif not recorder.random_burn():
            recorder.random_swap()
    recorder.random_swap()

    log = RecordedLog(events=tuple(recorder.events))
    last = log.events[-1]
    metadata = PoolReferenceMetadata(
        init_sqrt_price_x96=init_sqrt_price_x96,
        timestamp=start_timestamp,
        fee=fee,
        last_indexed_block=last.block.block_number,
        last_global_index=last.global_index,
    )
    logger.info("Generated %d events (seed=%d), final sqrtPriceX96=%d", len(log), seed, pool.current_price())
    return log, metadata
