"""Vehicle adapter over a kRPC connection.

Wraps the active vessel of an already-open connection. Transport
failures (kRPC ``RPCError``, ``StreamError`` and connection errors) are
translated to ``TelemetryUnavailable`` here, so nothing above the
adapter sees kRPC types. Anything ``add_node`` raises other than a
stream or connection error is a refusal and becomes
``ManeuverNotPossible``.

The kRPC client is only needed at runtime to open the connection; this
module never imports it.

Example:
    >>> import krpc
    >>> conn = krpc.connect(name="Autopilot")
    >>> vehicle = KrpcVehicle(conn)
    >>> Mission.from_commands(vehicle, {"apoapsis": "80000"}).run()
"""

import functools
import logging

from autopilot.errors import ManeuverNotPossible, TelemetryUnavailable
from autopilot.orbital import OrbitParameters
from autopilot.vehicle.interfaces import (
    DeltaV,
    EngineStatus,
    Situation,
    VehicleState,
)

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = frozenset({"StreamError", "StreamException", "NetworkError", "ConnectionError"})
TRANSPORT_ERRORS = CONNECTION_ERRORS | {"RPCError", "RPCException"}
FORWARD = (0.0, 1.0, 0.0)


def _raised_from(error: Exception, names: frozenset) -> bool:
    return any(cls.__name__ in names for cls in type(error).__mro__)


def _is_transport_error(error: Exception) -> bool:
    return _raised_from(error, TRANSPORT_ERRORS)


def translated(method):
    """Re-raise kRPC transport failures as ``TelemetryUnavailable``."""
    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except Exception as e:
            if not _is_transport_error(e):
                raise
            raise TelemetryUnavailable(f"{method.__name__}: {e}") from e
    return wrapper


def _orbit_parameters(orbit) -> OrbitParameters:
    return OrbitParameters(
        apoapsis=orbit.apoapsis,
        periapsis=orbit.periapsis,
        inclination=orbit.inclination,
        semi_major_axis=orbit.semi_major_axis,
        gravitational_parameter=orbit.body.gravitational_parameter,
        time_to_apoapsis=orbit.time_to_apoapsis,
        time_to_periapsis=orbit.time_to_periapsis,
        eccentricity=orbit.eccentricity,
        longitude_of_ascending_node=orbit.longitude_of_ascending_node,
        argument_of_periapsis=orbit.argument_of_periapsis,
        mean_anomaly_at_epoch=orbit.mean_anomaly_at_epoch,
        epoch=orbit.epoch,
    )


# =============================================================================
# Node and Stream Handles
# =============================================================================


class KrpcRemainingBurn:
    """Stream of the prograde component of the remaining burn vector."""

    def __init__(self, stream) -> None:
        self._stream = stream

    @translated
    def get(self) -> float:
        return float(self._stream()[1])

    @translated
    def remove(self) -> None:
        self._stream.remove()


class KrpcFairing:
    """Fairing jettisoned through the first event of its first part module.

    ``Fairing.jettison`` does not separate stock fairings, so the deploy
    button of the attached module is pressed instead.
    """

    def __init__(self, part) -> None:
        self.part = part

    @translated
    def jettison(self) -> None:
        module = self.part.modules[0]
        module.trigger_event(module.events[0])


class KrpcNode:
    """Maneuver node handle."""

    def __init__(self, conn, node) -> None:
        self._conn = conn
        self._node = node

    @property
    def raw(self):
        return self._node

    @property
    @translated
    def prograde(self) -> float:
        return self._node.prograde

    @prograde.setter
    @translated
    def prograde(self, value: float) -> None:
        self._node.prograde = float(value)

    @property
    @translated
    def normal(self) -> float:
        return self._node.normal

    @normal.setter
    @translated
    def normal(self, value: float) -> None:
        self._node.normal = float(value)

    @property
    @translated
    def radial(self) -> float:
        return self._node.radial

    @radial.setter
    @translated
    def radial(self, value: float) -> None:
        self._node.radial = float(value)

    @property
    @translated
    def ut(self) -> float:
        return self._node.ut

    @property
    @translated
    def time_to(self) -> float:
        return self._node.time_to

    @property
    @translated
    def delta_v(self) -> float:
        return self._node.delta_v

    @property
    @translated
    def orbit(self) -> OrbitParameters:
        return _orbit_parameters(self._node.orbit)

    @translated
    def remaining_burn(self) -> KrpcRemainingBurn:
        stream = self._conn.add_stream(
            self._node.remaining_burn_vector, self._node.reference_frame,
        )
        return KrpcRemainingBurn(stream)

    @translated
    def remove(self) -> None:
        self._node.remove()


# =============================================================================
# Vehicle
# =============================================================================


class KrpcVehicle:
    """``VehicleAdapter`` for the active vessel of a kRPC connection."""

    def __init__(self, conn, vessel=None) -> None:
        self.conn = conn
        self.space_center = conn.space_center
        self.vessel = vessel or self.space_center.active_vessel
        self.auto_pilot = self.vessel.auto_pilot
        self.control = self.vessel.control

    # -------------------------------------------------------------------------
    # Telemetry
    # -------------------------------------------------------------------------

    @translated
    def read_state(self) -> VehicleState:
        vessel = self.vessel
        orbit = vessel.orbit
        flight = vessel.flight(orbit.body.reference_frame)
        engines = tuple(
            EngineStatus(stage=e.part.stage, has_fuel=e.has_fuel, active=e.active)
            for e in vessel.parts.engines
        )
        return VehicleState(
            altitude=float(flight.mean_altitude),
            apoapsis_altitude=float(orbit.apoapsis_altitude),
            periapsis_altitude=float(orbit.periapsis_altitude),
            dynamic_pressure=float(flight.dynamic_pressure),
            mass=float(vessel.mass),
            available_thrust=float(vessel.available_thrust),
            specific_impulse=float(vessel.specific_impulse),
            current_stage=int(self.control.current_stage),
            engines=engines,
            rcs_fuel=tuple(bool(r.has_fuel) for r in vessel.parts.rcs),
            attitude_error=float(self.auto_pilot.error),
            roll_error=float(self.auto_pilot.roll_error),
            situation=Situation(vessel.situation.name.lower()),
            ut=float(self.space_center.ut),
        )

    @translated
    def orbit(self) -> OrbitParameters:
        return _orbit_parameters(self.vessel.orbit)

    @translated
    def target_orbit(self) -> OrbitParameters | None:
        if self.space_center.target_body is not None:
            return _orbit_parameters(self.space_center.target_body.orbit)
        if self.space_center.target_vessel is not None:
            return _orbit_parameters(self.space_center.target_vessel.orbit)
        return None

    @translated
    def ut(self) -> float:
        return float(self.space_center.ut)

    @translated
    def nodes(self) -> list[KrpcNode]:
        return [KrpcNode(self.conn, n) for n in self.control.nodes]

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    @translated
    def set_throttle(self, value: float) -> None:
        self.control.throttle = float(value)

    @translated
    def set_forward(self, value: float) -> None:
        self.control.forward = float(value)

    @translated
    def engage_autopilot(self) -> None:
        self.auto_pilot.engage()

    @translated
    def disengage_autopilot(self) -> None:
        self.auto_pilot.disengage()

    @translated
    def target_pitch_and_heading(self, pitch: float, heading: float) -> None:
        self.auto_pilot.target_pitch_and_heading(float(pitch), float(heading))

    @translated
    def set_target_roll(self, roll: float) -> None:
        self.auto_pilot.target_roll = float(roll)

    @translated
    def point_prograde(self) -> None:
        self.control.sas_mode = self.space_center.SASMode.prograde

    @translated
    def point_at_node(self, node: KrpcNode) -> None:
        self.auto_pilot.reference_frame = node.raw.reference_frame
        self.auto_pilot.target_direction = FORWARD

    @translated
    def use_surface_reference(self) -> None:
        self.auto_pilot.reference_frame = self.vessel.surface_reference_frame

    @translated
    def set_sas(self, enabled: bool) -> None:
        self.control.sas = enabled

    @translated
    def set_rcs(self, enabled: bool) -> None:
        self.control.rcs = enabled

    @translated
    def activate_next_stage(self) -> None:
        self.control.activate_next_stage()

    @translated
    def activate_stage_engines(self) -> None:
        stage = self.control.current_stage
        for engine in self.vessel.parts.engines:
            if engine.part.stage == stage and not engine.active:
                engine.active = True

    @translated
    def fairings(self) -> list[KrpcFairing]:
        return [KrpcFairing(f.part) for f in self.vessel.parts.fairings]

    @translated
    def deploy_solar_panels(self) -> None:
        for panel in self.vessel.parts.solar_panels:
            if panel.deployable:
                panel.deployed = True

    @translated
    def deploy_radiators(self) -> None:
        for radiator in self.vessel.parts.radiators:
            if radiator.deployable:
                radiator.deployed = True

    @translated
    def warp_to(self, ut: float, max_rails_rate: float, max_physics_rate: float) -> None:
        self.space_center.warp_to(ut, max_rails_rate, max_physics_rate)

    @translated
    def add_node(self, ut: float, delta_v: DeltaV) -> KrpcNode:
        try:
            self.control.add_node(ut, delta_v.prograde, delta_v.normal, delta_v.radial)
        except Exception as e:
            # Server-side refusals arrive as RPCError subclasses
            if _raised_from(e, CONNECTION_ERRORS):
                raise
            raise ManeuverNotPossible(f"Node creation rejected: {e}") from e
        return KrpcNode(self.conn, self.control.nodes[-1])
