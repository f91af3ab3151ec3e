"""Autopilot error taxonomy.

Loops raise these; phase entry points turn them into ``Err`` outcomes
(see ``autopilot.outcome``) and hand them to the disengage routine.
"""

from enum import Enum


class ErrorKind(Enum):
    """Why a phase stopped."""
    TELEMETRY_UNAVAILABLE = "telemetry_unavailable"
    MANEUVER_NOT_POSSIBLE = "maneuver_not_possible"
    VEHICLE_GROUNDED = "vehicle_grounded"
    EXECUTION_CANCELLED = "execution_cancelled"
    ADJUSTMENT_FAILED = "adjustment_failed"


class AutopilotError(Exception):
    """Base class for every error the autopilot surfaces."""

    kind: ErrorKind = ErrorKind.TELEMETRY_UNAVAILABLE

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value.replace("_", " "))
        self.message = str(self)


class TelemetryUnavailable(AutopilotError):
    """A read from the vehicle or a telemetry stream failed."""

    kind = ErrorKind.TELEMETRY_UNAVAILABLE


class ManeuverNotPossible(AutopilotError):
    """A node could not be created, or there is no node to execute."""

    kind = ErrorKind.MANEUVER_NOT_POSSIBLE


class VehicleGrounded(AutopilotError):
    """A maneuver was requested while the vehicle sits on the surface."""

    kind = ErrorKind.VEHICLE_GROUNDED


class ExecutionCancelled(AutopilotError):
    """The cancel token was set; observed at a poll boundary."""

    kind = ErrorKind.EXECUTION_CANCELLED


class AdjustmentFailed(AutopilotError):
    """A node trimming loop lost its telemetry."""

    kind = ErrorKind.ADJUSTMENT_FAILED

    def __init__(self, message: str = "Could not adjust the maneuver") -> None:
        super().__init__(message)


class GuidanceAbort(AutopilotError):
    """Raised when an ``Err`` outcome is unwrapped.

    Carries the kind of the underlying failure.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        self.kind = kind
        super().__init__(message)
