"""Exception taxonomy for replay and benchmark runs."""

from typing import Optional


class ReplayError(Exception):
    """Base class for every fatal condition raised by a run.

    Carries the offending event's global index (or block index for benchmark
    failures) and the expected/actual values so the message alone is enough
    to locate the divergence.
    """

    def __init__(
        self,
        message: str,
        *,
        global_index: Optional[int] = None,
        quantity: Optional[str] = None,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ):
        self.global_index = global_index
        self.quantity = quantity
        self.expected = expected
        self.actual = actual
        super().__init__(self._render(message))

    def _render(self, message: str) -> str:
        parts = [message]
        if self.global_index is not None:
            parts.append(f"index={self.global_index}")
        if self.quantity is not None:
            parts.append(f"quantity={self.quantity}")
        if self.expected is not None or self.actual is not None:
            parts.append(f"expected={self.expected} actual={self.actual}")
        return " | ".join(parts)


class ConfigurationError(ReplayError, ValueError):
    """Malformed recorded data, plan or metadata, detected before any external call."""


class ToleranceViolation(ReplayError):
    """A verified quantity fell outside the relative tolerance."""


class ExactInvariantViolation(ReplayError):
    """A quantity that must match exactly (post-swap liquidity) did not."""


class MissingResult(ReplayError):
    """An external operation produced no receipt or no decodable event."""


class PoolRevert(ReplayError, RuntimeError):
    """The pool rejected an operation (price limit, liquidity or state check).

    ``reason`` holds the pool's revert string, such as ``SPL`` or ``LS``.
    """

    def __init__(self, message: str, *, reason: Optional[str] = None, **kwargs):
        self.reason = reason
        super().__init__(message, **kwargs)
