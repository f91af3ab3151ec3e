"""Autopilot - Ascent and maneuver automation for rocket vehicles.

Flies a gravity-turn ascent to a target apoapsis, then plans and
executes maneuver nodes (circularization, Hohmann transfer, plane
alignment) through a narrow vehicle adapter.

Example:
    >>> from autopilot import Mission, Scheduler, SimulatedClock, SimulatedVehicle
    >>>
    >>> vehicle = SimulatedVehicle.on_launch_pad()
    >>> clock = SimulatedClock()
    >>> clock.add_listener(vehicle.advance)
    >>> mission = Mission.from_commands(
    ...     vehicle,
    ...     {"apoapsis": "80000", "curve": "circular", "decouple": "true"},
    ...     scheduler=Scheduler(clock),
    ... )
    >>> outcome = mission.run()
"""

__version__ = "0.1.0"

# Configuration
from autopilot.config import (
    AscentConfig,
    CommandParameters,
    CurveModel,
    ManeuverConfig,
    ManeuverFunction,
    Module,
)

# Errors and outcomes
from autopilot.errors import (
    AdjustmentFailed,
    AutopilotError,
    ErrorKind,
    ExecutionCancelled,
    GuidanceAbort,
    ManeuverNotPossible,
    TelemetryUnavailable,
    VehicleGrounded,
)

# Guidance and control
from autopilot.gnc import (
    AscentGuidance,
    AscentPhase,
    AscentRunner,
    AscentState,
    PIDController,
    PIDGains,
)

# Maneuvers
from autopilot.maneuver import (
    ExecutionReport,
    ManeuverExecutor,
    ManeuverPlanner,
)
from autopilot.mission import Mission

# Orbital mechanics
from autopilot.orbital import (
    OrbitParameters,
    burn_duration,
    circularization_delta_v,
    hohmann_delta_v,
    time_to_nodes,
    vis_viva,
)
from autopilot.outcome import Err, Ok, Outcome
from autopilot.scheduler import CancelToken, Scheduler, SimulatedClock, WallClock
from autopilot.status import FlightRecorder, LoggingStatus, MultiStatus, StatusReporter

# Vehicle boundary
from autopilot.vehicle import (
    DeltaV,
    SimulatedVehicle,
    Situation,
    VehicleAdapter,
    VehicleState,
)

__all__ = [
    "__version__",
    # Configuration
    "AscentConfig",
    "CommandParameters",
    "CurveModel",
    "ManeuverConfig",
    "ManeuverFunction",
    "Module",
    # Errors and outcomes
    "AdjustmentFailed",
    "AutopilotError",
    "Err",
    "ErrorKind",
    "ExecutionCancelled",
    "GuidanceAbort",
    "ManeuverNotPossible",
    "Ok",
    "Outcome",
    "TelemetryUnavailable",
    "VehicleGrounded",
    # Guidance and control
    "AscentGuidance",
    "AscentPhase",
    "AscentRunner",
    "AscentState",
    "PIDController",
    "PIDGains",
    # Maneuvers
    "ExecutionReport",
    "ManeuverExecutor",
    "ManeuverPlanner",
    "Mission",
    # Orbital mechanics
    "OrbitParameters",
    "burn_duration",
    "circularization_delta_v",
    "hohmann_delta_v",
    "time_to_nodes",
    "vis_viva",
    # Scheduling and status
    "CancelToken",
    "FlightRecorder",
    "LoggingStatus",
    "MultiStatus",
    "Scheduler",
    "SimulatedClock",
    "StatusReporter",
    "WallClock",
    # Vehicle boundary
    "DeltaV",
    "SimulatedVehicle",
    "Situation",
    "VehicleAdapter",
    "VehicleState",
]
