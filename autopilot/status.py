"""Status and event output.

The autopilot reports progress as plain status strings plus a numeric
remaining delta-V value during burns. Display code subscribes through
the ``StatusReporter`` protocol.

Example:
    >>> recorder = FlightRecorder(clock=scheduler.now)
    >>> status = MultiStatus([LoggingStatus(), recorder])
    >>> ...
    >>> df = recorder.to_dataframe()
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol

logger = logging.getLogger(__name__)


class StatusReporter(Protocol):
    """Consumer of autopilot progress."""

    def status(self, message: str) -> None:
        ...

    def remaining_delta_v(self, value: float) -> None:
        ...


class LoggingStatus:
    """Forwards status output to ``logging``."""

    def __init__(self, name: str = "autopilot.status") -> None:
        self._logger = logging.getLogger(name)

    def status(self, message: str) -> None:
        self._logger.info(message)

    def remaining_delta_v(self, value: float) -> None:
        self._logger.debug(f"Remaining delta-V: {value:.2f} m/s")


class MultiStatus:
    """Fans status output out to several reporters."""

    def __init__(self, reporters: Sequence[StatusReporter]) -> None:
        self.reporters = list(reporters)

    def status(self, message: str) -> None:
        for reporter in self.reporters:
            reporter.status(message)

    def remaining_delta_v(self, value: float) -> None:
        for reporter in self.reporters:
            reporter.remaining_delta_v(value)


class StatusEvent(NamedTuple):
    """One recorded output."""
    time: float
    kind: str
    message: str
    value: float | None = None


@dataclass
class FlightRecorder:
    """Keeps every status output of a run in order.

    Attributes:
        clock: Callable returning the current (logical) time
    """
    clock: Callable[[], float] = lambda: 0.0
    events: list[StatusEvent] = field(default_factory=list)

    def status(self, message: str) -> None:
        self.events.append(StatusEvent(self.clock(), "status", message))

    def remaining_delta_v(self, value: float) -> None:
        self.events.append(StatusEvent(self.clock(), "remaining_delta_v", "", float(value)))

    @property
    def messages(self) -> list[str]:
        """Status strings in emission order."""
        return [e.message for e in self.events if e.kind == "status"]

    @property
    def remaining_delta_v_history(self) -> list[float]:
        """Remaining delta-V samples in emission order."""
        return [e.value for e in self.events if e.kind == "remaining_delta_v"]

    def to_dataframe(self):
        """Convert to Polars DataFrame."""
        import polars as pl

        return pl.DataFrame(
            {
                "time": [e.time for e in self.events],
                "kind": [e.kind for e in self.events],
                "message": [e.message for e in self.events],
                "value": [e.value for e in self.events],
            },
            schema={
                "time": pl.Float64,
                "kind": pl.Utf8,
                "message": pl.Utf8,
                "value": pl.Float64,
            },
        )
