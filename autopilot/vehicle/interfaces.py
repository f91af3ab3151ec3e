"""Boundary between the autopilot and the controlled vehicle.

The autopilot never talks to a vehicle directly. It depends on two
capabilities:

- ``Telemetry``: read-only snapshots (vehicle state, orbits, time)
- ``Controller``: command channel (throttle, autopilot, staging, warp, nodes)

A ``VehicleAdapter`` provides both. Components take the narrowest one
they need. Adapters translate their transport failures into
``TelemetryUnavailable`` and node rejections into ``ManeuverNotPossible``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Protocol, runtime_checkable

from autopilot.checks import beartype_numeric
from autopilot.orbital import OrbitParameters

__all__ = [
    "Controller",
    "DeltaV",
    "EngineStatus",
    "Fairing",
    "ManeuverNode",
    "OrbitParameters",
    "RemainingBurnStream",
    "Situation",
    "Telemetry",
    "VehicleAdapter",
    "VehicleState",
]


class Situation(Enum):
    """Where the vehicle is."""
    PRE_LAUNCH = "pre_launch"
    LANDED = "landed"
    SPLASHED = "splashed"
    FLYING = "flying"
    SUB_ORBITAL = "sub_orbital"
    ORBITING = "orbiting"
    ESCAPING = "escaping"
    DOCKED = "docked"

    @property
    def grounded(self) -> bool:
        """True on the surface, where no maneuver can be flown."""
        return self in (Situation.PRE_LAUNCH, Situation.LANDED, Situation.SPLASHED)


class EngineStatus(NamedTuple):
    """Fuel state of one engine.

    Attributes:
        stage: Stage the engine is activated in
        has_fuel: Engine can still draw propellant
        active: Engine is ignited
    """
    stage: int
    has_fuel: bool
    active: bool = True


class DeltaV(NamedTuple):
    """Maneuver delta-V in the node frame [m/s]."""
    prograde: float = 0.0
    normal: float = 0.0
    radial: float = 0.0


@beartype_numeric
@dataclass(frozen=True)
class VehicleState:
    """Immutable telemetry snapshot taken once per tick.

    Attributes:
        altitude: Mean altitude above the surface [m]
        apoapsis_altitude: Apoapsis altitude above the surface [m]
        periapsis_altitude: Periapsis altitude above the surface [m]
        dynamic_pressure: Dynamic pressure [Pa]
        mass: Total mass [kg]
        available_thrust: Thrust of the active engines at full throttle [N]
        specific_impulse: Combined specific impulse [s]
        current_stage: Active stage index
        engines: Per-engine fuel status
        rcs_fuel: Per-thruster fuel flags of the translation thrusters
        attitude_error: Autopilot pointing error [deg]
        roll_error: Autopilot roll error [deg]
        situation: Where the vehicle is
        ut: Universal time of the snapshot [s]
    """
    altitude: float
    apoapsis_altitude: float
    periapsis_altitude: float
    dynamic_pressure: float
    mass: float
    available_thrust: float
    specific_impulse: float
    current_stage: int
    engines: tuple[EngineStatus, ...] = ()
    rcs_fuel: tuple[bool, ...] = ()
    attitude_error: float = 0.0
    roll_error: float = 0.0
    situation: Situation = Situation.FLYING
    ut: float = 0.0

    @property
    def current_stage_exhausted(self) -> bool:
        """An engine of the current stage has run dry."""
        return any(
            e.stage == self.current_stage and not e.has_fuel
            for e in self.engines
        )

    @property
    def rcs_available(self) -> bool:
        """At least one translation thruster still has fuel."""
        return any(self.rcs_fuel)


@runtime_checkable
class RemainingBurnStream(Protocol):
    """Live remaining delta-V of a node."""

    def get(self) -> float:
        """Remaining delta-V along the burn vector, negative after an overshoot [m/s]."""
        ...

    def remove(self) -> None:
        """Stop streaming."""
        ...


@runtime_checkable
class ManeuverNode(Protocol):
    """Handle to a node queued on the vehicle."""

    prograde: float
    normal: float
    radial: float

    @property
    def ut(self) -> float:
        """Universal time of the node [s]."""
        ...

    @property
    def time_to(self) -> float:
        """Time until the node [s]."""
        ...

    @property
    def delta_v(self) -> float:
        """Total delta-V magnitude [m/s]."""
        ...

    @property
    def orbit(self) -> OrbitParameters:
        """Orbit that results from executing the node."""
        ...

    def remaining_burn(self) -> RemainingBurnStream:
        """Open a live remaining delta-V stream."""
        ...

    def remove(self) -> None:
        """Delete the node from the vehicle's queue."""
        ...


class Fairing(Protocol):
    """A payload fairing that can be jettisoned."""

    def jettison(self) -> None:
        ...


@runtime_checkable
class Telemetry(Protocol):
    """Read-only view of the vehicle."""

    def read_state(self) -> VehicleState:
        ...

    def orbit(self) -> OrbitParameters:
        ...

    def target_orbit(self) -> OrbitParameters | None:
        """Orbit of the target body, else the target vessel, else None."""
        ...

    def ut(self) -> float:
        ...

    def nodes(self) -> list[ManeuverNode]:
        """Queued maneuver nodes, earliest first."""
        ...


@runtime_checkable
class Controller(Protocol):
    """Command channel of the vehicle."""

    def set_throttle(self, value: float) -> None:
        ...

    def set_forward(self, value: float) -> None:
        """Forward translation command [-1, 1]."""
        ...

    def engage_autopilot(self) -> None:
        ...

    def disengage_autopilot(self) -> None:
        ...

    def target_pitch_and_heading(self, pitch: float, heading: float) -> None:
        ...

    def set_target_roll(self, roll: float) -> None:
        ...

    def point_prograde(self) -> None:
        ...

    def point_at_node(self, node: ManeuverNode) -> None:
        """Aim the autopilot along the node's burn vector."""
        ...

    def use_surface_reference(self) -> None:
        """Restore the autopilot reference frame to the surface frame."""
        ...

    def set_sas(self, enabled: bool) -> None:
        ...

    def set_rcs(self, enabled: bool) -> None:
        ...

    def activate_next_stage(self) -> None:
        ...

    def activate_stage_engines(self) -> None:
        """Ignite any inactive engine of the current stage."""
        ...

    def fairings(self) -> list[Fairing]:
        ...

    def deploy_solar_panels(self) -> None:
        ...

    def deploy_radiators(self) -> None:
        ...

    def warp_to(self, ut: float, max_rails_rate: float, max_physics_rate: float) -> None:
        ...

    def add_node(self, ut: float, delta_v: DeltaV) -> ManeuverNode:
        """Queue a node and return the most recently added one."""
        ...


@runtime_checkable
class VehicleAdapter(Telemetry, Controller, Protocol):
    """Full read/write boundary."""
