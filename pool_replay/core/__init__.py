"""Core data model, tolerance comparison and collaborator interfaces."""

from pool_replay.core.errors import (
    ConfigurationError,
    ExactInvariantViolation,
    MissingResult,
    PoolRevert,
    ReplayError,
    ToleranceViolation,
)
from pool_replay.core.events import (
    BurnEvent,
    EventKind,
    MintEvent,
    PoolReferenceMetadata,
    RecordedLog,
    SwapDirection,
    SwapEvent,
)
from pool_replay.core.interfaces import NodeControl, PoolHandle, PoolLogKind, PoolReceipt
from pool_replay.core.tolerance import DEFAULT_TOLERANCE, is_within_tolerance

__all__ = [
    "BurnEvent",
    "ConfigurationError",
    "DEFAULT_TOLERANCE",
    "EventKind",
    "ExactInvariantViolation",
    "MintEvent",
    "MissingResult",
    "NodeControl",
    "PoolHandle",
    "PoolLogKind",
    "PoolReceipt",
    "PoolReferenceMetadata",
    "PoolRevert",
    "RecordedLog",
    "ReplayError",
    "SwapDirection",
    "SwapEvent",
    "ToleranceViolation",
    "is_within_tolerance",
]
