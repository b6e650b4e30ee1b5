"""In-memory concentrated-liquidity pool for dry runs and tests.

Uses the same Q64.96 integer representation and rounding directions as an
on-chain V3 pool, with one simplification: a swap is a single step at the
liquidity active when it starts (no tick crossing). Fees are charged on
input and kept by the pool rather than distributed to positions.
"""

import functools
import itertools
import math
from dataclasses import dataclass, replace
from decimal import Decimal, localcontext
from typing import Optional

from pool_replay.core.calls import MAX_SQRT_RATIO, MIN_SQRT_RATIO, resolve_price_limit
from pool_replay.core.errors import PoolRevert
from pool_replay.core.events import MAX_TICK, MIN_TICK, SwapDirection
from pool_replay.core.interfaces import (
    CollectResult,
    LiquidityResult,
    PoolEvent,
    PoolHandle,
    PoolLogKind,
    PoolReceipt,
    SwapResult,
)

Q96 = 2**96
FEE_DENOMINATOR = 1_000_000

_TICK_BASE = Decimal("1.0001")


def _div_up(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


@functools.lru_cache(maxsize=None)
def tick_to_sqrt_price_x96(tick: int) -> int:
    """sqrt(1.0001^tick) in Q64.96, truncated."""
    if not MIN_TICK <= tick <= MAX_TICK:
        raise ValueError(f"tick {tick} outside [{MIN_TICK}, {MAX_TICK}]")
    with localcontext() as ctx:
        ctx.prec = 60
        return int(_TICK_BASE ** (Decimal(tick) / 2) * Q96)


def sqrt_price_x96_to_tick(sqrt_price_x96: int) -> int:
    """Greatest tick whose price does not exceed ``sqrt_price_x96`` (float estimate)."""
    ratio = sqrt_price_x96 / Q96
    return math.floor(2 * math.log(ratio) / math.log(1.0001))


def amount0_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token0 between two prices: L * (sqrt_b - sqrt_a) / (sqrt_a * sqrt_b)."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    numerator = (liquidity << 96) * (sqrt_b - sqrt_a)
    if round_up:
        return _div_up(_div_up(numerator, sqrt_b), sqrt_a)
    return numerator // sqrt_b // sqrt_a


def amount1_delta(sqrt_a: int, sqrt_b: int, liquidity: int, round_up: bool) -> int:
    """Token1 between two prices: L * (sqrt_b - sqrt_a)."""
    if sqrt_a > sqrt_b:
        sqrt_a, sqrt_b = sqrt_b, sqrt_a
    if round_up:
        return _div_up(liquidity * (sqrt_b - sqrt_a), Q96)
    return liquidity * (sqrt_b - sqrt_a) // Q96


@dataclass
class Position:
    """Liquidity and uncollected tokens for one tick range."""
    liquidity: int = 0
    tokens_owed0: int = 0
    tokens_owed1: int = 0


@dataclass(frozen=True)
class PoolSnapshot:
    sqrt_price_x96: Optional[int]
    positions: dict[tuple[int, int], Position]


class InMemoryPool(PoolHandle):
    """A PoolHandle whose state lives in Python integers."""

    # Rough gas estimates; only relative ordering is meaningful
    GAS_MINT = 180_000
    GAS_BURN = 110_000
    GAS_COLLECT = 60_000
    GAS_SWAP = 120_000

    POOL_ADDRESS = "0x1000000000000000000000000000000000000001"
    CALLER_ADDRESS = "0x2000000000000000000000000000000000000002"

    def __init__(
        self,
        fee: int = 500,
        address: str = POOL_ADDRESS,
        recipient: str = CALLER_ADDRESS,
    ):
        """Create an uninitialized pool.

        Args:
            fee: Swap fee in hundredths of a bip (500 = 0.05%)
            address: Address reported to callers
            recipient: Default receiver of swap output
        """
        if not 0 <= fee < FEE_DENOMINATOR:
            raise ValueError(f"fee must be in [0, {FEE_DENOMINATOR}), got {fee}")
        self.fee = fee
        self.address = address
        self.recipient = recipient
        self.sqrt_price_x96: Optional[int] = None
        self.positions: dict[tuple[int, int], Position] = {}
        self._tx_counter = itertools.count(1)

    def _require_initialized(self) -> int:
        if self.sqrt_price_x96 is None:
            raise RuntimeError("Pool not initialized. Call initialize() first.")
        return self.sqrt_price_x96

    def _receipt(self, kind: PoolLogKind, event: PoolEvent, gas_used: int) -> PoolReceipt:
        return PoolReceipt(
            events={kind: event},
            gas_used=gas_used,
            tx_hash=f"0x{next(self._tx_counter):064x}",
        )

    @staticmethod
    def _range_prices(tick_lower: int, tick_upper: int) -> tuple[int, int]:
        if tick_lower >= tick_upper:
            raise ValueError(f"tick_lower ({tick_lower}) must be < tick_upper ({tick_upper})")
        return tick_to_sqrt_price_x96(tick_lower), tick_to_sqrt_price_x96(tick_upper)

    @property
    def liquidity(self) -> int:
        """Liquidity of every position whose range contains the current price."""
        price = self._require_initialized()
        active = 0
        for (tick_lower, tick_upper), position in self.positions.items():
            sqrt_lower, sqrt_upper = self._range_prices(tick_lower, tick_upper)
            if sqrt_lower <= price < sqrt_upper:
                active += position.liquidity
        return active

    def _position_amounts(
        self, tick_lower: int, tick_upper: int, liquidity: int, round_up: bool
    ) -> tuple[int, int]:
        price = self._require_initialized()
        sqrt_lower, sqrt_upper = self._range_prices(tick_lower, tick_upper)
        if price < sqrt_lower:
            return amount0_delta(sqrt_lower, sqrt_upper, liquidity, round_up), 0
        if price < sqrt_upper:
            return (
                amount0_delta(price, sqrt_upper, liquidity, round_up),
                amount1_delta(sqrt_lower, price, liquidity, round_up),
            )
        return 0, amount1_delta(sqrt_lower, sqrt_upper, liquidity, round_up)

    def initialize(self, sqrt_price_x96: int) -> None:
        if self.sqrt_price_x96 is not None:
            raise PoolRevert("AI: pool already initialized", reason="AI")
        if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
            raise ValueError(f"sqrtPriceX96 {sqrt_price_x96} outside TickMath bounds")
        self.sqrt_price_x96 = sqrt_price_x96

    def add_liquidity(self, tick_lower: int, tick_upper: int, amount: int) -> Optional[PoolReceipt]:
        if amount <= 0:
            raise ValueError(f"mint amount must be > 0, got {amount}")
        amount0, amount1 = self._position_amounts(tick_lower, tick_upper, amount, round_up=True)
        position = self.positions.setdefault((tick_lower, tick_upper), Position())
        position.liquidity += amount
        return self._receipt(PoolLogKind.MINT, LiquidityResult(amount0, amount1), self.GAS_MINT)

    def remove_liquidity(
        self, tick_lower: int, tick_upper: int, amount: int
    ) -> Optional[PoolReceipt]:
        position = self.positions.get((tick_lower, tick_upper))
        held = position.liquidity if position else 0
        if amount > held:
            raise PoolRevert(
                f"LS: burning {amount} from position [{tick_lower}, {tick_upper}] holding {held}",
                reason="LS",
            )
        amount0, amount1 = self._position_amounts(tick_lower, tick_upper, amount, round_up=False)
        if position is not None:
            position.liquidity -= amount
            position.tokens_owed0 += amount0
            position.tokens_owed1 += amount1
        return self._receipt(PoolLogKind.BURN, LiquidityResult(amount0, amount1), self.GAS_BURN)

    def collect_fees(self, tick_lower: int, tick_upper: int) -> Optional[PoolReceipt]:
        self._require_initialized()
        position = self.positions.get((tick_lower, tick_upper))
        if position is None:
            return self._receipt(PoolLogKind.COLLECT, CollectResult(0, 0), self.GAS_COLLECT)
        result = CollectResult(position.tokens_owed0, position.tokens_owed1)
        position.tokens_owed0 = 0
        position.tokens_owed1 = 0
        return self._receipt(PoolLogKind.COLLECT, result, self.GAS_COLLECT)

    def _gross_up(self, net_amount: int) -> int:
        """Input needed so that ``net_amount`` remains after the fee."""
        return _div_up(net_amount * FEE_DENOMINATOR, FEE_DENOMINATOR - self.fee)

    def swap_exact_0_for_1(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        price = self._require_initialized()
        limit = resolve_price_limit(SwapDirection.ZERO_FOR_ONE, sqrt_price_limit_x96)
        if not MIN_SQRT_RATIO < limit < price:
            raise PoolRevert(f"SPL: limit {limit} not below price {price}", reason="SPL")
        if amount_in <= 0:
            raise ValueError(f"amount_in must be > 0, got {amount_in}")

        liquidity = self.liquidity
        net_in = amount_in * (FEE_DENOMINATOR - self.fee) // FEE_DENOMINATOR
        if liquidity == 0 or net_in == 0:
            result = SwapResult(0, 0, liquidity, price)
            return self._receipt(PoolLogKind.SWAP, result, self.GAS_SWAP)

        liquidity_q96 = liquidity << 96
        next_price = _div_up(liquidity_q96 * price, liquidity_q96 + net_in * price)
        paid = amount_in
        if next_price < limit:
            next_price = limit
            paid = min(self._gross_up(amount0_delta(limit, price, liquidity, True)), amount_in)

        amount_out = amount1_delta(next_price, price, liquidity, False)
        self.sqrt_price_x96 = next_price
        result = SwapResult(paid, -amount_out, self.liquidity, next_price)
        return self._receipt(PoolLogKind.SWAP, result, self.GAS_SWAP)

    def swap_exact_1_for_0(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        price = self._require_initialized()
        limit = resolve_price_limit(SwapDirection.ONE_FOR_ZERO, sqrt_price_limit_x96)
        if not price < limit < MAX_SQRT_RATIO:
            raise PoolRevert(f"SPL: limit {limit} not above price {price}", reason="SPL")
        if amount_in <= 0:
            raise ValueError(f"amount_in must be > 0, got {amount_in}")

        liquidity = self.liquidity
        net_in = amount_in * (FEE_DENOMINATOR - self.fee) // FEE_DENOMINATOR
        if liquidity == 0 or net_in == 0:
            result = SwapResult(0, 0, liquidity, price)
            return self._receipt(PoolLogKind.SWAP, result, self.GAS_SWAP)

        next_price = price + (net_in << 96) // liquidity
        paid = amount_in
        if next_price > limit:
            next_price = limit
            paid = min(self._gross_up(amount1_delta(price, limit, liquidity, True)), amount_in)

        amount_out = amount0_delta(price, next_price, liquidity, False)
        self.sqrt_price_x96 = next_price
        result = SwapResult(-amount_out, paid, self.liquidity, next_price)
        return self._receipt(PoolLogKind.SWAP, result, self.GAS_SWAP)

    def current_price(self) -> int:
        return self._require_initialized()

    def snapshot(self) -> PoolSnapshot:
        """Copy of the mutable state, for rolling back a reverted transaction."""
        return PoolSnapshot(
            sqrt_price_x96=self.sqrt_price_x96,
            positions={key: replace(pos) for key, pos in self.positions.items()},
        )

    def restore(self, snapshot: PoolSnapshot) -> None:
        self.sqrt_price_x96 = snapshot.sqrt_price_x96
        self.positions = {key: replace(pos) for key, pos in snapshot.positions.items()}
