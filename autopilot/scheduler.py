"""Cooperative scheduling for the control loops.

Every loop in the autopilot suspends only through ``Scheduler.wait``.
That is where cancellation is observed: a cancelled token raises
``ExecutionCancelled`` at the next poll boundary, and the phase that
owns the loop disengages.

Two clocks are provided:

- ``WallClock``: real time, for flying a real vehicle
- ``SimulatedClock``: logical time that advances instantly and steps
  registered listeners (the simulated vehicle), for deterministic runs

Example:
    >>> clock = SimulatedClock()
    >>> clock.add_listener(vehicle.advance)
    >>> scheduler = Scheduler(clock)
    >>> scheduler.wait(0.25)   # vehicle integrates 0.25 s, returns at once
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from autopilot.checks import beartype_numeric
from autopilot.errors import ExecutionCancelled

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Source of time for the control loops."""

    def now(self) -> float:
        ...

    def sleep(self, seconds: float) -> None:
        ...


class WallClock:
    """Monotonic wall-clock time."""

    def now(self) -> float:
        return time.monotonic()

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


@dataclass
class SimulatedClock:
    """Logical clock that advances instantly.

    Each ``sleep(dt)`` advances ``now()`` by dt and calls every listener
    with dt, in registration order.
    """
    start: float = 0.0
    _now: float = field(default=0.0, init=False, repr=False)
    _listeners: list[Callable[[float], None]] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self._now = self.start

    def add_listener(self, listener: Callable[[float], None]) -> None:
        self._listeners.append(listener)

    def now(self) -> float:
        return self._now

    def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            return
        self._now += seconds
        for listener in self._listeners:
            listener(seconds)


class CancelToken:
    """Thread-safe cancellation flag."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.info("Cancellation requested")
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExecutionCancelled("Execution cancelled")


class Scheduler:
    """Fixed-interval tick source shared by the phases of one run."""

    def __init__(self, clock: Clock | None = None, token: CancelToken | None = None) -> None:
        self.clock = clock or WallClock()
        self.token = token or CancelToken()

    def now(self) -> float:
        return self.clock.now()

    @beartype_numeric
    def wait(self, seconds: float) -> None:
        """Sleep one poll interval.

        Raises:
            ExecutionCancelled: If the token is cancelled before or during the wait
        """
        self.token.raise_if_cancelled()
        self.clock.sleep(seconds)
        self.token.raise_if_cancelled()

    @beartype_numeric
    def poll_until(
        self,
        predicate: Callable[[], bool],
        interval: float,
        timeout: float | None = None,
    ) -> bool:
        """Wait until ``predicate()`` holds.

        Args:
            predicate: Condition checked before each wait
            interval: Poll period [s]
            timeout: Give up after this long [s]; None waits without bound

        Returns:
            True if the predicate held, False on timeout
        """
        deadline = None if timeout is None else self.now() + timeout
        while not predicate():
            if deadline is not None and self.now() >= deadline:
                return False
            self.wait(interval)
        return True
