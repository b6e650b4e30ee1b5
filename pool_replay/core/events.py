"""Recorded pool event data classes and JSON fixture loading."""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Union

from pool_replay.core.errors import ConfigurationError

MIN_TICK = -887272
MAX_TICK = 887272


class EventKind(Enum):
    """Kind of a recorded pool event, as spelled in the fixture's ``type`` key."""
    MINT = "Mint"
    BURN = "Burn"
    SWAP = "Swap"


class SwapDirection(Enum):
    """Which token enters the pool."""
    ZERO_FOR_ONE = "0For1"  # token0 in, price falls
    ONE_FOR_ZERO = "1For0"  # token1 in, price rises

    @property
    def opposite(self) -> "SwapDirection":
        if self is SwapDirection.ZERO_FOR_ONE:
            return SwapDirection.ONE_FOR_ZERO
        return SwapDirection.ZERO_FOR_ONE


@dataclass(frozen=True)
class BlockRef:
    """Block in which a recorded event was emitted."""
    timestamp: int
    block_number: int


@dataclass(frozen=True)
class LiquidityChangePayload:
    """Payload shared by Mint and Burn events."""
    amount: int       # Liquidity units added or removed
    amount0: int      # Token0 moved
    amount1: int      # Token1 moved
    tick_lower: int
    tick_upper: int

    def __post_init__(self) -> None:
        for name in ("tick_lower", "tick_upper"):
            tick = getattr(self, name)
            if not MIN_TICK <= tick <= MAX_TICK:
                raise ConfigurationError(f"{name} {tick} outside [{MIN_TICK}, {MAX_TICK}]")
        if self.tick_lower >= self.tick_upper:
            raise ConfigurationError(
                f"tick_lower ({self.tick_lower}) must be < tick_upper ({self.tick_upper})"
            )
        if self.amount < 0:
            raise ConfigurationError(f"liquidity amount must be >= 0, got {self.amount}")


@dataclass(frozen=True)
class SwapPayload:
    """Payload of a Swap event, signed from the pool's perspective.

    The negative amount is the token that left the pool; the positive one
    is what the trader paid in.
    """
    amount0: int
    amount1: int
    liquidity: int       # Active liquidity after the swap
    sqrt_price_x96: int  # Price after the swap, Q64.96

    def __post_init__(self) -> None:
        if (self.amount0 < 0) == (self.amount1 < 0):
            raise ConfigurationError(
                f"swap must have exactly one negative amount, got "
                f"amount0={self.amount0} amount1={self.amount1}"
            )

    @property
    def direction(self) -> SwapDirection:
        if self.amount1 < 0:
            return SwapDirection.ZERO_FOR_ONE
        return SwapDirection.ONE_FOR_ZERO

    @property
    def amount_in(self) -> int:
        """Positive counterpart paid into the pool."""
        if self.direction is SwapDirection.ZERO_FOR_ONE:
            return self.amount0
        return self.amount1

    @property
    def amount_out(self) -> int:
        """Magnitude of the token that left the pool."""
        if self.direction is SwapDirection.ZERO_FOR_ONE:
            return -self.amount1
        return -self.amount0


@dataclass(frozen=True)
class MintEvent:
    global_index: int
    block: BlockRef
    payload: LiquidityChangePayload

    kind = EventKind.MINT


@dataclass(frozen=True)
class BurnEvent:
    global_index: int
    block: BlockRef
    payload: LiquidityChangePayload

    kind = EventKind.BURN


@dataclass(frozen=True)
class SwapEvent:
    global_index: int
    block: BlockRef
    payload: SwapPayload

    kind = EventKind.SWAP


RecordedEvent = Union[MintEvent, BurnEvent, SwapEvent]


@dataclass(frozen=True)
class RecordedLog:
    """An ordered, validated event sequence.

    The final event is the reference swap for null-block synthesis and is
    never part of ``replayable``.
    """
    events: tuple[RecordedEvent, ...]

    def __post_init__(self) -> None:
        if not self.events:
            raise ConfigurationError("recorded log is empty")
        for prev, cur in zip(self.events, self.events[1:]):
            if cur.global_index <= prev.global_index:
                raise ConfigurationError(
                    f"globalIndex must strictly increase (previous {prev.global_index})",
                    global_index=cur.global_index,
                )
        last = self.events[-1]
        if not isinstance(last, SwapEvent):
            raise ConfigurationError(
                f"last recorded event must be a Swap, got {last.kind.value}",
                global_index=last.global_index,
            )

    @property
    def replayable(self) -> tuple[RecordedEvent, ...]:
        return self.events[:-1]

    @property
    def reference_swap(self) -> SwapEvent:
        return self.events[-1]

    def __len__(self) -> int:
        return len(self.events)


@dataclass(frozen=True)
class PoolReferenceMetadata:
    """Initial condition the recorded sequence assumes."""
    init_sqrt_price_x96: int
    timestamp: int
    fee: int  # Pool fee in hundredths of a bip (500 = 0.05%)
    last_indexed_block: int
    last_global_index: int

    def __post_init__(self) -> None:
        if self.init_sqrt_price_x96 <= 0:
            raise ConfigurationError(
                f"initSqrtPriceX96 must be > 0, got {self.init_sqrt_price_x96}"
            )
        if not 0 <= self.fee < 1_000_000:
            raise ConfigurationError(f"fee must be in [0, 1000000), got {self.fee}")


def _as_int(record: dict, key: str, global_index: Any = None) -> int:
    try:
        value = record[key]
    except KeyError:
        raise ConfigurationError(f"missing field '{key}'", global_index=global_index) from None
    if isinstance(value, bool):
        raise ConfigurationError(f"field '{key}' is not an integer", global_index=global_index)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"field '{key}' is not an integer: {value!r}", global_index=global_index
        ) from None


def parse_event(record: dict) -> RecordedEvent:
    """Build a typed event from one fixture record.

    Raises:
        ConfigurationError: Unknown type, missing or malformed fields
    """
    global_index = _as_int(record, "globalIndex")
    try:
        kind = EventKind(record.get("type"))
    except ValueError:
        raise ConfigurationError(
            f"unsupported event type {record.get('type')!r}", global_index=global_index
        ) from None

    block_record = record.get("block")
    data = record.get("data")
    if not isinstance(block_record, dict) or not isinstance(data, dict):
        raise ConfigurationError("event needs 'block' and 'data' objects", global_index=global_index)

    block = BlockRef(
        timestamp=_as_int(block_record, "timestamp", global_index),
        block_number=_as_int(block_record, "blockNumber", global_index),
    )

    try:
        if kind is EventKind.SWAP:
            payload = SwapPayload(
                amount0=_as_int(data, "amount0", global_index),
                amount1=_as_int(data, "amount1", global_index),
                liquidity=_as_int(data, "liquidity", global_index),
                sqrt_price_x96=_as_int(data, "sqrtPriceX96", global_index),
            )
            return SwapEvent(global_index=global_index, block=block, payload=payload)

        payload = LiquidityChangePayload(
            amount=_as_int(data, "amount", global_index),
            amount0=_as_int(data, "amount0", global_index),
            amount1=_as_int(data, "amount1", global_index),
            tick_lower=_as_int(data, "tickLower", global_index),
            tick_upper=_as_int(data, "tickUpper", global_index),
        )
    except ConfigurationError as e:
        if e.global_index is not None:
            raise
        raise ConfigurationError(str(e), global_index=global_index) from e

    if kind is EventKind.MINT:
        return MintEvent(global_index=global_index, block=block, payload=payload)
    return BurnEvent(global_index=global_index, block=block, payload=payload)


def parse_events(records: list) -> RecordedLog:
    if not isinstance(records, list):
        raise ConfigurationError("recorded events must be a JSON array")
    return RecordedLog(events=tuple(parse_event(r) for r in records))


def parse_metadata(record: dict) -> PoolReferenceMetadata:
    if not isinstance(record, dict):
        raise ConfigurationError("pool metadata must be a JSON object")
    return PoolReferenceMetadata(
        init_sqrt_price_x96=_as_int(record, "initSqrtPriceX96"),
        timestamp=_as_int(record, "timestamp"),
        fee=_as_int(record, "fee"),
        last_indexed_block=_as_int(record, "lastIndexedBlock"),
        last_global_index=_as_int(record, "lastGlobalIndex"),
    )


def load_recorded_log(path: Union[str, Path]) -> RecordedLog:
    """Load and validate a JSON array of recorded pool events."""
    return parse_events(json.loads(Path(path).read_text()))


def load_pool_metadata(path: Union[str, Path]) -> PoolReferenceMetadata:
    """Load pool reference metadata from a JSON object."""
    return parse_metadata(json.loads(Path(path).read_text()))


def event_to_record(event: RecordedEvent) -> dict:
    """Inverse of ``parse_event``; amounts are written as decimal strings."""
    payload = event.payload
    if isinstance(payload, SwapPayload):
        data = {
            "amount0": str(payload.amount0),
            "amount1": str(payload.amount1),
            "liquidity": str(payload.liquidity),
            "sqrtPriceX96": str(payload.sqrt_price_x96),
        }
    else:
        data = {
            "amount": str(payload.amount),
            "amount0": str(payload.amount0),
            "amount1": str(payload.amount1),
            "tickLower": str(payload.tick_lower),
            "tickUpper": str(payload.tick_upper),
        }
    return {
        "__typename": "Log",
        "globalIndex": event.global_index,
        "type": event.kind.value,
        "block": {
            "__typename": "Block",
            "timestamp": event.block.timestamp,
            "blockNumber": event.block.block_number,
        },
        "data": data,
    }


def metadata_to_record(metadata: PoolReferenceMetadata) -> dict:
    return {
        "__typename": "Pool",
        "initSqrtPriceX96": str(metadata.init_sqrt_price_x96),
        "timestamp": metadata.timestamp,
        "fee": metadata.fee,
        "lastIndexedBlock": metadata.last_indexed_block,
        "lastGlobalIndex": metadata.last_global_index,
    }


def write_fixtures(
    log: RecordedLog, metadata: PoolReferenceMetadata, directory: Union[str, Path]
) -> tuple[Path, Path]:
    """Write ``logs.json`` and ``poolData.json`` into ``directory``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    logs_path = directory / "logs.json"
    pool_path = directory / "poolData.json"
    logs_path.write_text(json.dumps([event_to_record(e) for e in log.events], indent=2))
    pool_path.write_text(json.dumps(metadata_to_record(metadata), indent=2))
    return logs_path, pool_path
