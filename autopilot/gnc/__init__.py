"""GNC (Guidance, Navigation, Control) for the autopilot.

Example:
    >>> from autopilot.gnc import AscentGuidance, PIDController
    >>>
    >>> throttle = PIDController(kp=0.025, ki=0.001, kd=0.01)
    >>> guidance = AscentGuidance(AscentConfig(target_apoapsis=80_000.0), throttle)
"""

from autopilot.gnc.control import (
    PIDController,
    PIDGains,
)
from autopilot.gnc.guidance import (
    AscentGuidance,
    AscentPhase,
    AscentRunner,
    AscentState,
)

__all__ = [
    # Control
    "PIDController",
    "PIDGains",
    # Guidance
    "AscentGuidance",
    "AscentPhase",
    "AscentRunner",
    "AscentState",
]
