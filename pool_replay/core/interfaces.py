"""Interfaces of the external pool and node the replay core drives."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Union

from pool_replay.core.calls import SwapCall
from pool_replay.core.errors import MissingResult
from pool_replay.core.events import SwapDirection


class PoolLogKind(Enum):
    """Event kinds a pool operation can emit."""
    MINT = "Mint"
    BURN = "Burn"
    SWAP = "Swap"
    COLLECT = "Collect"


@dataclass(frozen=True)
class LiquidityResult:
    """Token amounts moved by a mint or burn."""
    amount0: int
    amount1: int


@dataclass(frozen=True)
class CollectResult:
    """Token amounts paid out by a collect."""
    amount0: int
    amount1: int


@dataclass(frozen=True)
class SwapResult:
    """Pool state reported by a Swap event."""
    amount0: int
    amount1: int
    liquidity: int
    sqrt_price_x96: int


PoolEvent = Union[LiquidityResult, CollectResult, SwapResult]


@dataclass(frozen=True)
class PoolReceipt:
    """Decoded outcome of one pool transaction.

    Events are keyed by kind rather than by their position in the raw log
    array, so callers ask for what they need by name.
    """
    events: dict[PoolLogKind, PoolEvent] = field(default_factory=dict)
    gas_used: int = 0
    tx_hash: str = ""

    def get(self, kind: PoolLogKind, global_index: Optional[int] = None) -> PoolEvent:
        """Return the event of ``kind``.

        Raises:
            MissingResult: If the transaction did not emit that event
        """
        try:
            return self.events[kind]
        except KeyError:
            raise MissingResult(
                f"receipt {self.tx_hash or '<unknown>'} has no {kind.value} event",
                global_index=global_index,
            ) from None


@dataclass(frozen=True)
class SubmissionReceipt:
    """Acknowledgement of a transaction accepted into the node's pending pool."""
    tx_hash: str
    call_count: int


class PoolHandle(ABC):
    """A deployed pool reachable through a fixed operation set.

    Mutating operations return None when the node produced no receipt.
    """

    address: str
    recipient: str

    @abstractmethod
    def initialize(self, sqrt_price_x96: int) -> None:
        pass

    @abstractmethod
    def add_liquidity(self, tick_lower: int, tick_upper: int, amount: int) -> Optional[PoolReceipt]:
        pass

    @abstractmethod
    def remove_liquidity(
        self, tick_lower: int, tick_upper: int, amount: int
    ) -> Optional[PoolReceipt]:
        pass

    @abstractmethod
    def collect_fees(self, tick_lower: int, tick_upper: int) -> Optional[PoolReceipt]:
        pass

    @abstractmethod
    def swap_exact_0_for_1(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        pass

    @abstractmethod
    def swap_exact_1_for_0(
        self, amount_in: int, recipient: str, sqrt_price_limit_x96: int
    ) -> Optional[PoolReceipt]:
        pass

    @abstractmethod
    def current_price(self) -> int:
        """Current sqrtPriceX96 from slot0."""
        pass

    def swap(
        self,
        direction: SwapDirection,
        amount_in: int,
        sqrt_price_limit_x96: int,
        recipient: Optional[str] = None,
    ) -> Optional[PoolReceipt]:
        """Dispatch to the directional swap primitive."""
        recipient = recipient or self.recipient
        if direction is SwapDirection.ZERO_FOR_ONE:
            return self.swap_exact_0_for_1(amount_in, recipient, sqrt_price_limit_x96)
        return self.swap_exact_1_for_0(amount_in, recipient, sqrt_price_limit_x96)


class NodeControl(ABC):
    """Block-production controls of the execution node."""

    @abstractmethod
    def set_next_block_timestamp(self, unix_seconds: int) -> None:
        pass

    @abstractmethod
    def set_interval_mining(self, seconds: int) -> None:
        """Mine every ``seconds``; 0 disables interval mining."""
        pass

    @abstractmethod
    def mine_block(self) -> None:
        pass

    @abstractmethod
    def submit_batch(
        self, calls: Sequence[SwapCall], gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        """Submit all calls as one multicall transaction."""
        pass

    @abstractmethod
    def submit_unsigned(
        self, call: SwapCall, gas_limit: int, gas_price: int
    ) -> Optional[SubmissionReceipt]:
        """Submit a single call as an unsigned transaction."""
        pass

    @abstractmethod
    def gas_price(self) -> int:
        pass

    def set_logging_enabled(self, enabled: bool) -> None:
        """Toggle node-side logging where the node supports it."""
        pass

    def reverted_in_latest_block(self) -> Optional[int]:
        """Number of reverted transactions in the last mined block, None if unknown."""
        return None
