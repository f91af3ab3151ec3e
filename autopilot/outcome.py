"""Tagged phase outcomes.

Every phase entry point returns ``Ok(value)`` or ``Err(kind, message)``
instead of letting exceptions escape. ``capture`` is the single place
where autopilot exceptions are converted.

Example:
    >>> outcome = capture(lambda: executor.burn(node))
    >>> if outcome.is_err:
    ...     disengage_and_report(outcome)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from autopilot.errors import AutopilotError, ErrorKind, GuidanceAbort

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful phase result."""
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed or cancelled phase.

    Attributes:
        kind: Error category
        message: Human-readable reason
    """
    kind: ErrorKind
    message: str

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    @property
    def cancelled(self) -> bool:
        """True when the phase stopped on a cancel request."""
        return self.kind is ErrorKind.EXECUTION_CANCELLED

    def unwrap(self):
        raise GuidanceAbort(self.kind, self.message)

    @classmethod
    def from_error(cls, error: AutopilotError) -> "Err":
        return cls(kind=error.kind, message=error.message)


Outcome = Ok | Err


def capture(phase: Callable[[], T]) -> "Ok[T] | Err":
    """Run a phase callable and tag its result.

    Only autopilot errors are converted. Anything else is a bug and
    propagates.
    """
    try:
        return Ok(phase())
    except AutopilotError as e:
        logger.warning(f"Phase stopped: {e.kind.value}: {e.message}")
        return Err.from_error(e)
