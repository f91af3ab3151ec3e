"""Ascent guidance.

Provides the gravity-turn state machine, its pitch curves and the
runner that flies it against a vehicle.
"""

from autopilot.gnc.guidance.ascent import (
    AscentCommand,
    AscentGuidance,
    AscentPhase,
    AscentResult,
    AscentRunner,
    AscentState,
)
from autopilot.gnc.guidance.easing import (
    ease,
    easing_for,
    remap,
)

__all__ = [
    # State machine
    "AscentCommand",
    "AscentGuidance",
    "AscentPhase",
    "AscentResult",
    "AscentRunner",
    "AscentState",
    # Curves
    "ease",
    "easing_for",
    "remap",
]
