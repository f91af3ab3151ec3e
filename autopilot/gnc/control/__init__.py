"""Feedback control for the autopilot loops."""

from autopilot.gnc.control.pid import (
    PIDController,
    PIDGains,
)

__all__ = [
    "PIDController",
    "PIDGains",
]
