"""Vehicle boundary and the simulated vehicle.

The kRPC adapter lives in ``autopilot.vehicle.krpc_adapter`` and is
imported on its own.
"""

from autopilot.vehicle.interfaces import (
    Controller,
    DeltaV,
    EngineStatus,
    ManeuverNode,
    RemainingBurnStream,
    Situation,
    Telemetry,
    VehicleAdapter,
    VehicleState,
)
from autopilot.vehicle.simulated import (
    SimBody,
    SimStage,
    SimulatedVehicle,
)

__all__ = [
    # Boundary
    "Controller",
    "DeltaV",
    "EngineStatus",
    "ManeuverNode",
    "RemainingBurnStream",
    "Situation",
    "Telemetry",
    "VehicleAdapter",
    "VehicleState",
    # Simulation
    "SimBody",
    "SimStage",
    "SimulatedVehicle",
]
