"""Step-driven simulated vehicle.

A point-mass plant that implements the full adapter boundary, so the
guidance, planner and executor can be flown end to end without a live
vehicle. It is deliberately simple:

- Planar two-body motion around a spherical body, integrated while the
  engine pushes and propagated in closed form while coasting
- Exponential atmosphere, used only for dynamic pressure (no drag)
- Instantaneous attitude with a decaying pointing error
- Node burns push the vehicle along the node's burn vector, expressed
  in the local frame at the time of the burn

Time is owned by the caller: register ``advance`` with a
``SimulatedClock`` and every scheduler wait steps the plant.

Example:
    >>> vehicle = SimulatedVehicle.on_launch_pad()
    >>> clock = SimulatedClock()
    >>> clock.add_listener(vehicle.advance)
    >>> vehicle.set_throttle(1.0)
    >>> clock.sleep(10.0)
    >>> vehicle.read_state().altitude > 0
    True
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from autopilot.checks import beartype_numeric
from autopilot.errors import ManeuverNotPossible, TelemetryUnavailable
from autopilot.orbital import (
    G0,
    TWO_PI,
    OrbitParameters,
    _orbit_normal,
    vis_viva,
)
from autopilot.vehicle.interfaces import (
    DeltaV,
    EngineStatus,
    Situation,
    VehicleState,
)

logger = logging.getLogger(__name__)

MAX_INTEGRATION_STEP = 0.05  # [s]
POINTING_SLEW_RATE = 15.0  # [deg/s]


# =============================================================================
# Configuration
# =============================================================================


@beartype_numeric
@dataclass(frozen=True)
class SimBody:
    """Reference body. Defaults are a small Kerbin-like planet.

    Attributes:
        radius: Equatorial radius [m]
        gravitational_parameter: GM [m^3/s^2]
        atmosphere_height: Top of the atmosphere [m]
        scale_height: Density scale height [m]
        surface_density: Air density at sea level [kg/m^3]
    """
    radius: float = 600_000.0
    gravitational_parameter: float = 3.5316e12
    atmosphere_height: float = 70_000.0
    scale_height: float = 5_600.0
    surface_density: float = 1.2

    def density(self, altitude: float) -> float:
        """Air density [kg/m^3]."""
        if altitude >= self.atmosphere_height or altitude < 0:
            return self.surface_density if altitude < 0 else 0.0
        return self.surface_density * float(np.exp(-altitude / self.scale_height))


@beartype_numeric
@dataclass
class SimStage:
    """One propulsive stage.

    Attributes:
        dry_mass: Structure mass, dropped on separation [kg]
        fuel_mass: Remaining propellant [kg]
        thrust: Vacuum thrust at full throttle [N]
        isp: Specific impulse [s]
    """
    dry_mass: float
    fuel_mass: float
    thrust: float
    isp: float

    @property
    def flow_rate(self) -> float:
        """Propellant flow at full throttle [kg/s]."""
        return self.thrust / (self.isp * G0)


@dataclass
class SimFairing:
    """Fairing that records its jettison."""
    jettisoned: bool = False

    def jettison(self) -> None:
        self.jettisoned = True


# =============================================================================
# Stream and Node Handles
# =============================================================================


class SimRemainingBurn:
    """Live remaining delta-V of a simulated node."""

    def __init__(self, node: "SimNode") -> None:
        self._node = node
        self.removed = False

    def get(self) -> float:
        if self.removed:
            raise TelemetryUnavailable("Stream was removed")
        self._node.vehicle._check_link()
        return self._node.remaining

    def remove(self) -> None:
        self.removed = True
        if self in self._node.vehicle.open_streams:
            self._node.vehicle.open_streams.remove(self)


class SimNode:
    """Maneuver node queued on a simulated vehicle."""

    def __init__(self, vehicle: "SimulatedVehicle", ut: float, delta_v: DeltaV) -> None:
        self.vehicle = vehicle
        self._ut = ut
        self.prograde = float(delta_v.prograde)
        self.normal = float(delta_v.normal)
        self.radial = float(delta_v.radial)
        self.applied = 0.0

    @property
    def ut(self) -> float:
        return self._ut

    @property
    def time_to(self) -> float:
        self.vehicle._check_link()
        return self._ut - self.vehicle.universal_time

    @property
    def vector(self) -> DeltaV:
        return DeltaV(self.prograde, self.normal, self.radial)

    @property
    def delta_v(self) -> float:
        return float(np.linalg.norm(self.vector))

    @property
    def remaining(self) -> float:
        """Planned minus applied delta-V along the burn vector [m/s].

        Goes negative once the burn overshoots.
        """
        return self.delta_v - self.applied

    @property
    def orbit(self) -> OrbitParameters:
        """Orbit after the part of the burn not yet applied."""
        self.vehicle._check_link()
        state = self.vehicle._propagated(self._ut - self.vehicle.universal_time)
        return self.vehicle._orbit_of(state.with_burn(self.scaled(1.0 - self._fraction)), self._ut)

    @property
    def _fraction(self) -> float:
        return self.applied / self.delta_v if self.delta_v > 0 else 1.0

    def scaled(self, fraction: float) -> DeltaV:
        """Burn vector scaled by ``fraction``."""
        return DeltaV(*(fraction * c for c in self.vector))

    def remaining_burn(self) -> SimRemainingBurn:
        stream = SimRemainingBurn(self)
        self.vehicle.open_streams.append(stream)
        return stream

    def remove(self) -> None:
        self.vehicle._remove_node(self)


# =============================================================================
# Planar State
# =============================================================================


@dataclass(frozen=True)
class PlanarState:
    """Position and velocity in the orbit plane.

    Attributes:
        radius: Distance from the body centre [m]
        latitude_argument: Angle from the ascending node [rad]
        radial_speed: Speed away from the body [m/s]
        tangential_speed: Speed along the direction of motion [m/s]
        inclination: Plane inclination [rad]
        node_longitude: Longitude of the ascending node [rad]
    """
    radius: float
    latitude_argument: float
    radial_speed: float
    tangential_speed: float
    inclination: float = 0.0
    node_longitude: float = 0.0

    @property
    def speed(self) -> float:
        return float(np.hypot(self.radial_speed, self.tangential_speed))

    def with_burn(self, dv: DeltaV) -> "PlanarState":
        """Apply an impulsive burn expressed in the node frame."""
        speed = self.speed
        if speed > 0:
            vr = self.radial_speed + dv.prograde * self.radial_speed / speed + dv.radial
            vt = self.tangential_speed + dv.prograde * self.tangential_speed / speed
        else:
            vr, vt = self.radial_speed + dv.radial, self.tangential_speed + dv.prograde
        if dv.normal == 0.0:
            return PlanarState(self.radius, self.latitude_argument, vr, vt,
                               self.inclination, self.node_longitude)

        # Rotate the plane about the position vector
        h = np.array(_orbit_normal(self.inclination, self.node_longitude))
        r_hat = self._position_direction()
        t_hat = np.cross(h, r_hat)
        h_new = vt * h - dv.normal * t_hat
        h_new = h_new / np.linalg.norm(h_new)
        inc = float(np.arccos(np.clip(h_new[2], -1.0, 1.0)))
        lan = float(np.arctan2(h_new[0], -h_new[1])) if inc > 1e-12 else 0.0
        node_dir = np.array([np.cos(lan), np.sin(lan), 0.0])
        t_new = np.cross(h_new, node_dir)
        u = float(np.arctan2(np.dot(r_hat, t_new), np.dot(r_hat, node_dir)))
        return PlanarState(
            self.radius, u % TWO_PI, vr, float(np.hypot(vt, dv.normal)), inc, lan % TWO_PI,
        )

    def _position_direction(self) -> np.ndarray:
        cos_o, sin_o = np.cos(self.node_longitude), np.sin(self.node_longitude)
        cos_u, sin_u = np.cos(self.latitude_argument), np.sin(self.latitude_argument)
        cos_i, sin_i = np.cos(self.inclination), np.sin(self.inclination)
        return np.array([
            cos_o * cos_u - sin_o * sin_u * cos_i,
            sin_o * cos_u + cos_o * sin_u * cos_i,
            sin_u * sin_i,
        ])


# =============================================================================
# Simulated Vehicle
# =============================================================================


@dataclass
class SimulatedVehicle:
    """Simulated vehicle implementing ``VehicleAdapter``.

    Commands are recorded for inspection: ``pitch_commands``,
    ``throttle_history``, ``staging_events``, ``warp_requests``.
    """
    body: SimBody = field(default_factory=SimBody)
    stages: list[SimStage] = field(default_factory=list)
    payload_mass: float = 1_000.0
    state: PlanarState = field(
        default_factory=lambda: PlanarState(SimBody().radius, 0.0, 0.0, 0.0)
    )
    situation: Situation = Situation.PRE_LAUNCH
    universal_time: float = 0.0
    rcs_fuel: float = 0.0
    rcs_thrust: float = 2_000.0
    fairing_count: int = 0
    target: OrbitParameters | None = None
    nodes_unlocked: bool = True

    # Command channel
    throttle: float = field(default=0.0, init=False)
    forward: float = field(default=0.0, init=False)
    autopilot_engaged: bool = field(default=False, init=False)
    sas: bool = field(default=False, init=False)
    rcs: bool = field(default=False, init=False)
    pointing: str = field(default="pitch", init=False)
    pitch: float = field(default=90.0, init=False)
    heading: float = field(default=90.0, init=False)
    roll: float = field(default=0.0, init=False)
    attitude_error: float = field(default=0.0, init=False)
    roll_error: float = field(default=0.0, init=False)
    reference_frame: str = field(default="surface", init=False)
    panels_deployed: bool = field(default=False, init=False)
    radiators_deployed: bool = field(default=False, init=False)

    # Recorded activity
    pitch_commands: list[float] = field(default_factory=list, init=False)
    throttle_history: list[float] = field(default_factory=list, init=False)
    staging_events: list[float] = field(default_factory=list, init=False)
    warp_requests: list[tuple[float, float, float]] = field(default_factory=list, init=False)
    node_queue: list[SimNode] = field(default_factory=list, init=False)
    open_streams: list[SimRemainingBurn] = field(default_factory=list, init=False)
    link_lost: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        self._fairings = [SimFairing() for _ in range(self.fairing_count)]
        self._pointed_node: SimNode | None = None

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def on_launch_pad(
        cls,
        body: SimBody | None = None,
        stages: list[SimStage] | None = None,
        **kwargs,
    ) -> "SimulatedVehicle":
        """Two-stage vehicle sitting on the pad."""
        body = body or SimBody()
        if stages is None:
            stages = [
                SimStage(dry_mass=2_000.0, fuel_mass=12_000.0, thrust=420_000.0, isp=290.0),
                SimStage(dry_mass=800.0, fuel_mass=3_200.0, thrust=60_000.0, isp=340.0),
            ]
        state = PlanarState(body.radius, 0.0, 0.0, 0.0)
        return cls(body=body, stages=stages, state=state, situation=Situation.PRE_LAUNCH, **kwargs)

    @classmethod
    def in_orbit(
        cls,
        apoapsis_altitude: float,
        periapsis_altitude: float,
        inclination: float = 0.0,
        node_longitude: float = 0.0,
        at_periapsis: bool = True,
        body: SimBody | None = None,
        stages: list[SimStage] | None = None,
        **kwargs,
    ) -> "SimulatedVehicle":
        """Vehicle on a given orbit, placed at an apsis.

        Args:
            apoapsis_altitude: Apoapsis altitude [m]
            periapsis_altitude: Periapsis altitude [m]
            inclination: Inclination [rad]
            node_longitude: Longitude of the ascending node [rad]
            at_periapsis: Start at periapsis (else apoapsis)
        """
        body = body or SimBody()
        if stages is None:
            stages = [SimStage(dry_mass=800.0, fuel_mass=3_200.0, thrust=60_000.0, isp=340.0)]
        r_apo = body.radius + apoapsis_altitude
        r_peri = body.radius + periapsis_altitude
        sma = (r_apo + r_peri) / 2.0
        radius = r_peri if at_periapsis else r_apo
        speed = vis_viva(body.gravitational_parameter, radius, sma)
        state = PlanarState(radius, 0.0, 0.0, speed, inclination, node_longitude)
        return cls(body=body, stages=stages, state=state, situation=Situation.ORBITING, **kwargs)

    # -------------------------------------------------------------------------
    # Derived quantities
    # -------------------------------------------------------------------------

    @property
    def mass(self) -> float:
        return self.payload_mass + sum(s.dry_mass + s.fuel_mass for s in self.stages)

    @property
    def current_stage(self) -> int:
        return len(self.stages) - 1

    @property
    def active_stage(self) -> SimStage | None:
        return self.stages[0] if self.stages else None

    @property
    def available_thrust(self) -> float:
        stage = self.active_stage
        if stage is None or stage.fuel_mass <= 0:
            return 0.0
        return stage.thrust

    @property
    def altitude(self) -> float:
        return self.state.radius - self.body.radius

    def _check_link(self) -> None:
        if self.link_lost:
            raise TelemetryUnavailable("Lost connection to the vehicle")

    def lose_link(self) -> None:
        """Make every subsequent read fail."""
        self.link_lost = True

    # -------------------------------------------------------------------------
    # Telemetry
    # -------------------------------------------------------------------------

    def read_state(self) -> VehicleState:
        self._check_link()
        orbit = self._orbit_of(self.state, self.universal_time)
        stage = self.active_stage
        return VehicleState(
            altitude=self.altitude,
            apoapsis_altitude=orbit.apoapsis - self.body.radius,
            periapsis_altitude=orbit.periapsis - self.body.radius,
            dynamic_pressure=0.5 * self.body.density(self.altitude) * self.state.speed**2,
            mass=self.mass,
            available_thrust=self.available_thrust,
            specific_impulse=stage.isp if stage else 0.0,
            current_stage=self.current_stage,
            engines=tuple(
                EngineStatus(
                    stage=self.current_stage - i,
                    has_fuel=s.fuel_mass > 0,
                    active=i == 0,
                )
                for i, s in enumerate(self.stages)
            ),
            rcs_fuel=(self.rcs_fuel > 0,) if self.rcs_thrust > 0 else (),
            attitude_error=self.attitude_error,
            roll_error=self.roll_error,
            situation=self.situation,
            ut=self.universal_time,
        )

    def orbit(self) -> OrbitParameters:
        self._check_link()
        return self._orbit_of(self.state, self.universal_time)

    def ut(self) -> float:
        self._check_link()
        return self.universal_time

    def target_orbit(self) -> OrbitParameters | None:
        self._check_link()
        return self.target

    def nodes(self) -> list[SimNode]:
        self._check_link()
        return sorted(self.node_queue, key=lambda n: n.ut)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def set_throttle(self, value: float) -> None:
        self.throttle = float(np.clip(value, 0.0, 1.0))
        self.throttle_history.append(self.throttle)

    def set_forward(self, value: float) -> None:
        self.forward = float(np.clip(value, -1.0, 1.0))

    def engage_autopilot(self) -> None:
        self.autopilot_engaged = True

    def disengage_autopilot(self) -> None:
        self.autopilot_engaged = False

    def target_pitch_and_heading(self, pitch: float, heading: float) -> None:
        self.pointing = "pitch"
        self.pitch = float(pitch)
        self.heading = float(heading)
        self.pitch_commands.append(self.pitch)

    def set_target_roll(self, roll: float) -> None:
        if roll != self.roll:
            self.roll_error = max(self.roll_error, abs(roll - self.roll) % 180.0)
        self.roll = float(roll)

    def point_prograde(self) -> None:
        self.pointing = "prograde"

    def point_at_node(self, node: SimNode) -> None:
        if self._pointed_node is not node:
            self.attitude_error = 30.0
            self._pointed_node = node
        self.pointing = "node"
        self.reference_frame = "node"

    def use_surface_reference(self) -> None:
        self.reference_frame = "surface"

    def set_sas(self, enabled: bool) -> None:
        self.sas = enabled

    def set_rcs(self, enabled: bool) -> None:
        self.rcs = enabled

    def activate_next_stage(self) -> None:
        self.staging_events.append(self.universal_time)
        if len(self.stages) > 1:
            dropped = self.stages.pop(0)
            logger.debug(f"Dropped stage: {dropped}")

    def activate_stage_engines(self) -> None:
        pass

    def fairings(self) -> list[SimFairing]:
        return [f for f in self._fairings if not f.jettisoned]

    def deploy_solar_panels(self) -> None:
        self.panels_deployed = True

    def deploy_radiators(self) -> None:
        self.radiators_deployed = True

    def warp_to(self, ut: float, max_rails_rate: float, max_physics_rate: float) -> None:
        self.warp_requests.append((ut, max_rails_rate, max_physics_rate))
        if ut > self.universal_time:
            self.state = self._propagated(ut - self.universal_time)
            self.universal_time = ut

    def add_node(self, ut: float, delta_v: DeltaV) -> SimNode:
        if not self.nodes_unlocked:
            raise ManeuverNotPossible("Maneuver nodes are not unlocked")
        node = SimNode(self, ut, delta_v)
        self.node_queue.append(node)
        return self.node_queue[-1]

    def _remove_node(self, node: SimNode) -> None:
        if node not in self.node_queue:
            return
        self.node_queue.remove(node)
        if self._pointed_node is node:
            self._pointed_node = None

    # -------------------------------------------------------------------------
    # Plant
    # -------------------------------------------------------------------------

    def advance(self, dt: float) -> None:
        """Step the plant by dt seconds."""
        self.attitude_error = max(0.0, self.attitude_error - POINTING_SLEW_RATE * dt)
        self.roll_error = max(0.0, self.roll_error - POINTING_SLEW_RATE * dt)

        if self.pointing == "node" and self._pointed_node is not None:
            self._burn_node(self._pointed_node, dt)
            self.state = self._propagated(dt)
        elif self.throttle > 0 and self.available_thrust > 0:
            self._integrate_powered(dt)
        elif self.situation.grounded:
            pass
        else:
            self.state = self._propagated(dt)
        self.universal_time += dt
        self._update_situation()

    def _consume(self, stage: SimStage, throttle: float, dt: float) -> float:
        """Burn propellant; return the fraction of dt the engine ran."""
        needed = stage.flow_rate * throttle * dt
        if needed <= 0:
            return 0.0
        used = min(needed, stage.fuel_mass)
        stage.fuel_mass -= used
        return used / needed

    def _burn_node(self, node: SimNode, dt: float) -> None:
        dv = 0.0
        stage = self.active_stage
        if self.throttle > 0 and stage is not None and stage.fuel_mass > 0:
            mass = self.mass
            ran = self._consume(stage, self.throttle, dt)
            dv += stage.thrust * self.throttle * ran * dt / mass
        if self.rcs and self.forward != 0 and self.rcs_fuel > 0:
            dv += self.rcs_thrust * self.forward / self.mass * dt
            self.rcs_fuel = max(0.0, self.rcs_fuel - abs(self.forward) * dt)
        if dv != 0.0 and node.delta_v > 0:
            self.state = self.state.with_burn(node.scaled(dv / node.delta_v))
            node.applied += dv

    def _integrate_powered(self, dt: float) -> None:
        steps = max(1, int(np.ceil(dt / MAX_INTEGRATION_STEP)))
        h = dt / steps
        mu = self.body.gravitational_parameter
        r, u = self.state.radius, self.state.latitude_argument
        vr, vt = self.state.radial_speed, self.state.tangential_speed
        for _ in range(steps):
            stage = self.active_stage
            accel = 0.0
            if stage is not None and stage.fuel_mass > 0:
                mass = self.mass
                ran = self._consume(stage, self.throttle, h)
                accel = stage.thrust * self.throttle * ran / mass

            if self.pointing == "prograde" and np.hypot(vr, vt) > 1.0:
                speed = np.hypot(vr, vt)
                ar_thrust, at_thrust = accel * vr / speed, accel * vt / speed
            else:
                pitch = np.radians(self.pitch)
                ar_thrust, at_thrust = accel * np.sin(pitch), accel * np.cos(pitch)

            ar = ar_thrust - mu / r**2 + vt * vt / r
            at = at_thrust - vr * vt / r
            if self.situation.grounded and ar <= 0:
                continue
            vr += ar * h
            vt += at * h
            r += vr * h
            u += vt / r * h
            if r < self.body.radius:
                r, vr, vt = self.body.radius, 0.0, 0.0
        if self.situation is Situation.PRE_LAUNCH and r > self.body.radius:
            self.situation = Situation.FLYING
        self.state = PlanarState(
            r, u % TWO_PI, vr, vt, self.state.inclination, self.state.node_longitude,
        )

    def _update_situation(self) -> None:
        if self.situation.grounded:
            return
        if self.state.radius <= self.body.radius:
            self.situation = Situation.LANDED
            return
        orbit = self._orbit_of(self.state, self.universal_time)
        if not 0.0 < orbit.semi_major_axis < np.inf:
            self.situation = Situation.ESCAPING
        elif self.altitude < self.body.atmosphere_height:
            self.situation = Situation.FLYING
        elif orbit.periapsis - self.body.radius < self.body.atmosphere_height:
            self.situation = Situation.SUB_ORBITAL
        else:
            self.situation = Situation.ORBITING

    # -------------------------------------------------------------------------
    # Two-body helpers
    # -------------------------------------------------------------------------

    def _elements(self, state: PlanarState) -> tuple[float, float, float]:
        """(semi-major axis, eccentricity, true anomaly) of a planar state."""
        mu = self.body.gravitational_parameter
        r = state.radius
        h = r * state.tangential_speed
        energy = state.speed**2 / 2.0 - mu / r
        sma = -mu / (2.0 * energy) if energy != 0 else np.inf
        e_cos = h * h / (mu * r) - 1.0
        e_sin = h * state.radial_speed / mu
        ecc = float(np.hypot(e_cos, e_sin))
        nu = float(np.arctan2(e_sin, e_cos)) % TWO_PI
        return float(sma), ecc, nu

    def _orbit_of(self, state: PlanarState, ut: float) -> OrbitParameters:
        mu = self.body.gravitational_parameter
        sma, ecc, nu = self._elements(state)
        time_to_apo = time_to_peri = 0.0
        mean_anomaly = 0.0
        bound = 0.0 < sma < np.inf
        if bound and ecc < 1.0:
            ecc_anomaly = 2.0 * np.arctan2(
                np.sqrt(1.0 - ecc) * np.sin(nu / 2.0),
                np.sqrt(1.0 + ecc) * np.cos(nu / 2.0),
            )
            mean_anomaly = float((ecc_anomaly - ecc * np.sin(ecc_anomaly)) % TWO_PI)
            n = np.sqrt(mu / sma**3)
            time_to_peri = float(((TWO_PI - mean_anomaly) % TWO_PI) / n)
            time_to_apo = float(((np.pi - mean_anomaly) % TWO_PI) / n)
        if bound:
            # Radial trajectories come out with ecc == 1
            apo, peri = sma * (1.0 + ecc), max(0.0, sma * (1.0 - ecc))
        else:
            apo, peri = np.inf, abs(sma) * (ecc - 1.0)
        return OrbitParameters(
            apoapsis=float(apo),
            periapsis=float(peri),
            inclination=state.inclination,
            semi_major_axis=sma,
            gravitational_parameter=mu,
            time_to_apoapsis=time_to_apo,
            time_to_periapsis=time_to_peri,
            eccentricity=ecc,
            longitude_of_ascending_node=state.node_longitude,
            argument_of_periapsis=float((state.latitude_argument - nu) % TWO_PI),
            mean_anomaly_at_epoch=mean_anomaly,
            epoch=ut,
        )

    def _propagated(self, dt: float) -> PlanarState:
        """Coast the current state forward by dt in closed form."""
        state = self.state
        if dt <= 0 or state.radius <= self.body.radius and state.speed == 0:
            return state
        mu = self.body.gravitational_parameter
        sma, ecc, nu = self._elements(state)
        if not (ecc < 1.0 and 0.0 < sma < np.inf):
            return self._coasted_numerically(state, dt)
        arg_pe = state.latitude_argument - nu
        ecc_anomaly = 2.0 * np.arctan2(
            np.sqrt(1.0 - ecc) * np.sin(nu / 2.0),
            np.sqrt(1.0 + ecc) * np.cos(nu / 2.0),
        )
        mean_anomaly = ecc_anomaly - ecc * np.sin(ecc_anomaly)
        mean_anomaly = (mean_anomaly + np.sqrt(mu / sma**3) * dt) % TWO_PI

        # Kepler's equation by Newton iteration
        e_anom = mean_anomaly if ecc < 0.8 else np.pi
        for _ in range(50):
            step = (e_anom - ecc * np.sin(e_anom) - mean_anomaly) / (1.0 - ecc * np.cos(e_anom))
            e_anom -= step
            if abs(step) < 1e-12:
                break

        new_nu = 2.0 * np.arctan2(
            np.sqrt(1.0 + ecc) * np.sin(e_anom / 2.0),
            np.sqrt(1.0 - ecc) * np.cos(e_anom / 2.0),
        )
        radius = sma * (1.0 - ecc * np.cos(e_anom))
        p = sma * (1.0 - ecc * ecc)
        scale = np.sqrt(mu / p)
        new_state = PlanarState(
            float(radius),
            float((arg_pe + new_nu) % TWO_PI),
            float(scale * ecc * np.sin(new_nu)),
            float(scale * (1.0 + ecc * np.cos(new_nu))),
            state.inclination,
            state.node_longitude,
        )
        if new_state.radius < self.body.radius:
            return PlanarState(self.body.radius, new_state.latitude_argument, 0.0, 0.0,
                               state.inclination, state.node_longitude)
        return new_state

    def _coasted_numerically(self, state: PlanarState, dt: float) -> PlanarState:
        """Unpowered integration for radial and open trajectories."""
        steps = max(1, int(np.ceil(dt / MAX_INTEGRATION_STEP)))
        h = dt / steps
        mu = self.body.gravitational_parameter
        r, u = state.radius, state.latitude_argument
        vr, vt = state.radial_speed, state.tangential_speed
        for _ in range(steps):
            vr += (vt * vt / r - mu / r**2) * h
            vt += (-vr * vt / r) * h
            r += vr * h
            u += vt / r * h
            if r <= self.body.radius:
                r, vr, vt = self.body.radius, 0.0, 0.0
                break
        return PlanarState(r, u % TWO_PI, vr, vt, state.inclination, state.node_longitude)
