"""Maneuver node planning and execution."""

from autopilot.maneuver.executor import (
    ExecutionReport,
    ManeuverExecutor,
    deceleration_margin,
)
from autopilot.maneuver.planner import (
    Apsis,
    ManeuverPlanner,
    OrbitParameter,
    compare_orbit_parameter,
)

__all__ = [
    # Planning
    "Apsis",
    "ManeuverPlanner",
    "OrbitParameter",
    "compare_orbit_parameter",
    # Execution
    "ExecutionReport",
    "ManeuverExecutor",
    "deceleration_margin",
]
