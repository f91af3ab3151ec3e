"""Maneuver node planning.

Creates maneuver nodes on the vehicle and trims them against a target
orbit. Planning always ends with a node in the vehicle's queue; the
``ManeuverExecutor`` flies it.

Functions handled here:
- APOAPSIS / PERIAPSIS: circularize at that apsis
- RENDEZVOUS: Hohmann burn at periapsis, trimmed until the maneuver
  apoapsis matches the target's
- ADJUST: zero-delta-V node at the nearer relative node, trimmed along
  the normal until the planes match
- EXECUTE: nothing to plan

Example:
    >>> planner = ManeuverPlanner(vehicle, ManeuverConfig(function=ManeuverFunction.APOAPSIS))
    >>> outcome = planner.plan()
    >>> node = outcome.unwrap()
"""

import logging
from enum import Enum

import numpy as np

from autopilot.checks import beartype_numeric
from autopilot.config import ManeuverConfig, ManeuverFunction
from autopilot.errors import (
    AdjustmentFailed,
    ManeuverNotPossible,
    TelemetryUnavailable,
    VehicleGrounded,
)
from autopilot.gnc.control.pid import PIDController
from autopilot.orbital import (
    OrbitParameters,
    ascending_node_direction,
    circularization_delta_v,
    hohmann_delta_v,
    relative_inclination,
    time_to_nodes,
    vis_viva,
)
from autopilot.outcome import Err, Outcome, capture
from autopilot.safing import disengage_and_report
from autopilot.scheduler import Scheduler
from autopilot.status import LoggingStatus, StatusReporter
from autopilot.vehicle.interfaces import DeltaV, ManeuverNode, VehicleAdapter

logger = logging.getLogger(__name__)

APOAPSIS_SCALE = 100_000.0  # [m] resolution of the apoapsis comparison
PERIAPSIS_SCALE = 100.0
APOAPSIS_TRIM_GAIN = 10.0  # [m/s per comparison unit]
APOAPSIS_TRIM_LIMIT = 50.0  # [m/s]
PLANE_TRIM_GAIN = 0.5  # fraction of the delta-V for the measured angle


class Apsis(Enum):
    """Where a circularization burn happens."""
    APOAPSIS = "apoapsis"
    PERIAPSIS = "periapsis"


class OrbitParameter(Enum):
    """Orbit parameter compared by the trimming loops."""
    APOAPSIS = "apoapsis"
    PERIAPSIS = "periapsis"
    INCLINATION = "inclination"


# =============================================================================
# Orbit comparison
# =============================================================================


@beartype_numeric
def compare_orbit_parameter(
    node_orbit: OrbitParameters,
    target_orbit: OrbitParameters,
    parameter: OrbitParameter,
    reference: np.ndarray | None = None,
) -> float:
    """Distance of a tentative maneuver orbit from the target.

    - APOAPSIS: difference of the apoapsides in units of 100 km, each
      rounded first
    - PERIAPSIS: difference of the periapsides in units of 100 m, each
      rounded to the metre first
    - INCLINATION: signed relative inclination [deg], see
      ``relative_inclination``

    Positive when the target value is larger (APOAPSIS, PERIAPSIS) or
    the planes still have to rotate toward each other (INCLINATION).
    """
    if parameter is OrbitParameter.APOAPSIS:
        target = round(target_orbit.apoapsis / APOAPSIS_SCALE)
        node = round(node_orbit.apoapsis / APOAPSIS_SCALE)
        return float(target - node)
    if parameter is OrbitParameter.PERIAPSIS:
        target = round(target_orbit.periapsis) / PERIAPSIS_SCALE
        node = round(node_orbit.periapsis) / PERIAPSIS_SCALE
        return float(target - node)
    return relative_inclination(node_orbit, target_orbit, reference)


def converged(delta: float, tolerance: float = 0.0) -> bool:
    """True when ``delta`` rounds to ``tolerance`` at two decimals."""
    return round(delta, 2) == round(tolerance, 2)


# =============================================================================
# Planner
# =============================================================================


class ManeuverPlanner:
    """Plans and trims maneuver nodes.

    Attributes:
        vehicle: Telemetry and command channel
        config: Maneuver parameters
        scheduler: Tick source for the trimming loops
        status: Progress output
        node: Node created by the last plan, if any
    """

    def __init__(
        self,
        vehicle: VehicleAdapter,
        config: ManeuverConfig | None = None,
        scheduler: Scheduler | None = None,
        status: StatusReporter | None = None,
    ) -> None:
        self.vehicle = vehicle
        self.config = config or ManeuverConfig()
        self.scheduler = scheduler or Scheduler()
        self.status = status or LoggingStatus()
        self.node: ManeuverNode | None = None

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def plan(self) -> Outcome:
        """Plan the configured function.

        Returns:
            ``Ok(node)`` (``Ok(None)`` for EXECUTE) or ``Err`` after the
            vehicle was safed
        """
        outcome = capture(self._plan)
        if isinstance(outcome, Err):
            disengage_and_report(self.vehicle, self.status, outcome, "Maneuver", node=self.node)
            self.node = None
        return outcome

    def _plan(self) -> ManeuverNode | None:
        function = self.config.function
        if function is ManeuverFunction.EXECUTE:
            return None
        self.check_can_maneuver()
        self.status.status(f"Planning maneuver: {function.value}")
        if function is ManeuverFunction.APOAPSIS:
            return self.plan_circularize(Apsis.APOAPSIS)
        if function is ManeuverFunction.PERIAPSIS:
            return self.plan_circularize(Apsis.PERIAPSIS)
        if function is ManeuverFunction.RENDEZVOUS:
            return self.match_orbit_apoapsis()
        return self.align_planes()

    def check_can_maneuver(self) -> None:
        """Raise ``VehicleGrounded`` unless the vehicle is off the surface."""
        situation = self.vehicle.read_state().situation
        if situation.grounded:
            raise VehicleGrounded(f"Cannot plan a maneuver while {situation.name.lower()}")

    def target_orbit(self) -> OrbitParameters:
        """Orbit of the selected target body or vessel."""
        target = self.vehicle.target_orbit()
        if target is None:
            raise ManeuverNotPossible("No target selected")
        return target

    # -------------------------------------------------------------------------
    # Node creation
    # -------------------------------------------------------------------------

    def create_node(self, time_offset: float, delta_v: DeltaV) -> ManeuverNode:
        """Queue a node ``time_offset`` seconds from now.

        Returns:
            The most recently added node

        Raises:
            ManeuverNotPossible: If the vehicle rejects the node
        """
        node = self.vehicle.add_node(self.vehicle.ut() + time_offset, delta_v)
        self.node = node
        logger.info(
            f"Created node at T+{time_offset:.1f} s: prograde {delta_v.prograde:.2f}, "
            f"normal {delta_v.normal:.2f}, radial {delta_v.radial:.2f} m/s"
        )
        return node

    def plan_circularize(self, apsis: Apsis) -> ManeuverNode:
        """Node at an apsis that circularizes the orbit there."""
        orbit = self.vehicle.orbit()
        if apsis is Apsis.APOAPSIS:
            radius, time_to = orbit.apoapsis, orbit.time_to_apoapsis
        else:
            radius, time_to = orbit.periapsis, orbit.time_to_periapsis
        if not np.isfinite(radius):
            raise ManeuverNotPossible(f"Orbit has no {apsis.value}")
        try:
            dv = circularization_delta_v(orbit.gravitational_parameter, radius, orbit.semi_major_axis)
        except ValueError as e:
            raise ManeuverNotPossible(str(e)) from e
        return self.create_node(time_to, DeltaV(dv, 0.0, 0.0))

    def plan_hohmann_to_target(self, target: OrbitParameters) -> ManeuverNode:
        """Node at periapsis whose transfer orbit reaches the target's apoapsis."""
        orbit = self.vehicle.orbit()
        try:
            dv = hohmann_delta_v(
                orbit.gravitational_parameter,
                orbit.periapsis,
                target.apoapsis,
                orbit.semi_major_axis,
            )
        except ValueError as e:
            raise ManeuverNotPossible(str(e)) from e
        return self.create_node(orbit.time_to_periapsis, DeltaV(dv, 0.0, 0.0))

    def plan_plane_alignment(self, target: OrbitParameters) -> tuple[ManeuverNode, bool]:
        """Zero-delta-V node at the nearer relative node.

        Returns:
            (node, True if the node is the ascending node)
        """
        ut = self.vehicle.ut()
        try:
            ut_an, ut_dn = time_to_nodes(self.vehicle.orbit(), target, ut)
        except ValueError as e:
            raise ManeuverNotPossible(str(e)) from e
        ascending = ut_an < ut_dn
        node = self.create_node(min(ut_an, ut_dn) - ut, DeltaV(0.0, 0.0, 0.0))
        return node, ascending

    # -------------------------------------------------------------------------
    # Trimming loops
    # -------------------------------------------------------------------------

    def match_orbit_apoapsis(self) -> ManeuverNode:
        """Hohmann node trimmed along prograde until the apoapsides match."""
        cfg = self.config
        target = self.target_orbit()
        node = self.plan_hohmann_to_target(target)
        pid = PIDController(
            kp=APOAPSIS_TRIM_GAIN,
            ki=0.0,
            kd=0.0,
            output_limits=(-APOAPSIS_TRIM_LIMIT, APOAPSIS_TRIM_LIMIT),
        )

        def step() -> bool:
            delta = compare_orbit_parameter(node.orbit, target, OrbitParameter.APOAPSIS)
            logger.debug(f"Apoapsis delta: {delta:.2f}")
            if converged(delta):
                return True
            node.prograde = node.prograde - pid.compute(delta, 0.0, cfg.apoapsis_trim_period)
            return False

        self._trim("apoapsis", step, cfg.apoapsis_trim_period, cfg.apoapsis_trim_budget)
        return node

    def align_planes(self) -> ManeuverNode:
        """Node at the nearer relative node trimmed along the normal."""
        cfg = self.config
        target = self.target_orbit()
        node, ascending = self.plan_plane_alignment(target)
        orbit = self.vehicle.orbit()
        reference = ascending_node_direction(orbit, target)

        # Gain scheduled on orbital speed: delta-V per degree of plane change
        speed = vis_viva(orbit.gravitational_parameter, orbit.semi_major_axis, orbit.semi_major_axis)
        pid = PIDController(
            kp=PLANE_TRIM_GAIN * speed * np.pi / 180.0,
            ki=0.0,
            kd=0.0,
            output_limits=(-speed, speed),
        )
        direction = 1.0 if ascending else -1.0

        def step() -> bool:
            delta = compare_orbit_parameter(
                node.orbit, target, OrbitParameter.INCLINATION, reference,
            )
            logger.debug(f"Relative inclination: {delta:.2f} deg")
            if converged(delta):
                return True
            node.normal = node.normal + direction * pid.compute(delta, 0.0, cfg.plane_trim_period)
            return False

        self._trim("plane", step, cfg.plane_trim_period, cfg.plane_trim_budget)
        return node

    def _trim(self, name: str, step, period: float, budget: float) -> None:
        """Run a trimming step every ``period`` until it converges or ``budget`` runs out."""
        self.status.status(f"Adjusting {name} of the maneuver")
        elapsed = 0.0
        try:
            while elapsed < budget:
                if step():
                    logger.info(f"{name.capitalize()} trim converged after {elapsed:.2f} s")
                    return
                self.scheduler.wait(period)
                elapsed += period
        except TelemetryUnavailable as e:
            raise AdjustmentFailed() from e
        logger.warning(f"{name.capitalize()} trim did not converge within {budget:.1f} s")
