"""Swap calls and their ABI calldata for the test callee contract."""

from dataclasses import dataclass
from typing import Sequence

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, to_canonical_address

from pool_replay.core.events import SwapDirection

# Function selectors (first 4 bytes of keccak256 of function signature)
SELECTOR_SWAP_EXACT_0_FOR_1 = function_signature_to_4byte_selector(
    "swapExact0For1(address,uint256,address,uint160)"
)
SELECTOR_SWAP_EXACT_1_FOR_0 = function_signature_to_4byte_selector(
    "swapExact1For0(address,uint256,address,uint160)"
)
SELECTOR_MULTICALL = function_signature_to_4byte_selector("multicall(bytes[])")

_SWAP_ARG_TYPES = ["address", "uint256", "address", "uint160"]

# Bounds of TickMath; a zero price limit resolves to one step inside them
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

UNCONSTRAINED = 0


def resolve_price_limit(direction: SwapDirection, sqrt_price_limit_x96: int) -> int:
    """Map the unconstrained limit (0) to the extreme reachable price."""
    if sqrt_price_limit_x96 != UNCONSTRAINED:
        return sqrt_price_limit_x96
    if direction is SwapDirection.ZERO_FOR_ONE:
        return MIN_SQRT_RATIO + 1
    return MAX_SQRT_RATIO - 1


@dataclass(frozen=True)
class SwapCall:
    """One exact-input swap routed through the callee contract."""
    pool: str
    direction: SwapDirection
    amount_in: int
    recipient: str
    sqrt_price_limit_x96: int

    def __post_init__(self) -> None:
        if self.amount_in <= 0:
            raise ValueError(f"amount_in must be > 0, got {self.amount_in}")
        if self.sqrt_price_limit_x96 < 0:
            raise ValueError(
                f"sqrt_price_limit_x96 must be >= 0, got {self.sqrt_price_limit_x96}"
            )

    @property
    def selector(self) -> bytes:
        if self.direction is SwapDirection.ZERO_FOR_ONE:
            return SELECTOR_SWAP_EXACT_0_FOR_1
        return SELECTOR_SWAP_EXACT_1_FOR_0

    @property
    def calldata(self) -> bytes:
        """Selector followed by the four static ABI words."""
        return self.selector + encode(
            _SWAP_ARG_TYPES,
            [
                to_canonical_address(self.pool),
                self.amount_in,
                to_canonical_address(self.recipient),
                self.sqrt_price_limit_x96,
            ],
        )


def encode_multicall(calls: Sequence[SwapCall]) -> bytes:
    """Calldata for ``multicall(bytes[])`` wrapping every call in order."""
    return SELECTOR_MULTICALL + encode(["bytes[]"], [[call.calldata for call in calls]])
