"""Null-block synthesis: batches of swap pairs that cancel each other's price impact.

Each pair replays the reference swap's direction toward its recorded
post-swap price, then swaps back in the opposite direction toward the
benchmark's starting price. Both legs over-pay the input (twice the recorded
magnitude); the price limit of each leg bounds where it stops, so a batch of
pairs leaves the pool price where it started while packing as many
transactions as possible into a block.
"""

from dataclasses import dataclass
from typing import Optional

from pool_replay.core.calls import SwapCall, encode_multicall
from pool_replay.core.errors import ConfigurationError
from pool_replay.core.events import SwapDirection, SwapPayload

# Over-compensation factor applied to both legs' input amounts
OVERPAY_FACTOR = 2


@dataclass(frozen=True)
class NullBlockBatch:
    """Ordered swap calls for one block, two per null swap."""
    calls: tuple[SwapCall, ...]
    target_price: int   # Where each first leg stops
    initial_price: int  # Where each second leg stops

    def __len__(self) -> int:
        return len(self.calls)

    @property
    def pairs(self) -> int:
        return len(self.calls) // 2

    def calldata(self) -> list[bytes]:
        """Per-call calldata, for individual submission."""
        return [call.calldata for call in self.calls]

    def multicall_calldata(self) -> bytes:
        """Single ``multicall(bytes[])`` payload for the whole batch."""
        return encode_multicall(self.calls)


def _moves_toward(direction: SwapDirection, start: int, end: int) -> bool:
    """True if a swap in ``direction`` can move price from ``start`` to ``end``."""
    if direction is SwapDirection.ONE_FOR_ZERO:
        return end > start
    return end < start


def synthesize(
    final_event: SwapPayload,
    observed_price: int,
    initial_price: Optional[int],
    count: int,
    pool_address: str,
    recipient: str,
) -> NullBlockBatch:
    """Build ``count`` price-neutral swap pairs from the reference swap.

    Args:
        final_event: Payload of the last recorded swap (never replayed)
        observed_price: Pool sqrtPriceX96 when the batch will first execute
        initial_price: Price each return leg stops at; defaults to observed_price
        count: Number of null swaps (pairs) to emit
        pool_address: Pool the callee routes swaps into
        recipient: Receiver of swap output

    Returns:
        NullBlockBatch of ``2 * count`` calls

    Raises:
        ConfigurationError: If count < 1 or a leg's price limit lies on the
            wrong side of its starting price (the swap would revert)
    """
    if count < 1:
        raise ConfigurationError(f"null swap count must be >= 1, got {count}")

    if initial_price is None:
        initial_price = observed_price

    direction = final_event.direction
    target_price = final_event.sqrt_price_x96

    if not _moves_toward(direction, observed_price, target_price):
        raise ConfigurationError(
            f"{direction.value} swap cannot reach recorded price from the observed price",
            quantity="sqrtPriceX96",
            expected=target_price,
            actual=observed_price,
        )
    if not _moves_toward(direction.opposite, target_price, initial_price):
        raise ConfigurationError(
            f"{direction.opposite.value} return leg cannot reach the initial price",
            quantity="sqrtPriceX96",
            expected=initial_price,
            actual=target_price,
        )

    forward_amount = final_event.amount_in * OVERPAY_FACTOR
    return_amount = final_event.amount_out * OVERPAY_FACTOR

    forward = SwapCall(
        pool=pool_address,
        direction=direction,
        amount_in=forward_amount,
        recipient=recipient,
        sqrt_price_limit_x96=target_price,
    )
    back = SwapCall(
        pool=pool_address,
        direction=direction.opposite,
        amount_in=return_amount,
        recipient=recipient,
        sqrt_price_limit_x96=initial_price,
    )

    calls: list[SwapCall] = []
    for _ in range(count):
        calls.append(forward)
        calls.append(back)

    return NullBlockBatch(
        calls=tuple(calls),
        target_price=target_price,
        initial_price=initial_price,
    )
