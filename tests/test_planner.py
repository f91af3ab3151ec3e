"""Tests for maneuver node planning and trimming."""

import numpy as np
from numpy.testing import assert_allclose

from autopilot.config import ManeuverConfig, ManeuverFunction
from autopilot.errors import ErrorKind
from autopilot.maneuver import Apsis, ManeuverPlanner, OrbitParameter, compare_orbit_parameter
from autopilot.maneuver.planner import converged
from autopilot.orbital import (
    OrbitParameters,
    circularization_delta_v,
    hohmann_delta_v,
    relative_inclination,
)
from autopilot.outcome import Err, Ok
from autopilot.scheduler import Scheduler, SimulatedClock
from autopilot.status import FlightRecorder
from autopilot.vehicle import SimulatedVehicle
from autopilot.vehicle.simulated import PlanarState

MU = 3.5316e12
R_BODY = 600_000.0


def circular_target(radius: float, inclination_deg: float = 0.0, lan_deg: float = 0.0) -> OrbitParameters:
    return OrbitParameters(
        apoapsis=radius,
        periapsis=radius,
        inclination=float(np.radians(inclination_deg)),
        semi_major_axis=radius,
        gravitational_parameter=MU,
        longitude_of_ascending_node=float(np.radians(lan_deg)),
    )


def make_planner(vehicle: SimulatedVehicle, status=None, **config) -> ManeuverPlanner:
    clock = SimulatedClock()
    clock.add_listener(vehicle.advance)
    return ManeuverPlanner(
        vehicle,
        ManeuverConfig(**config),
        Scheduler(clock),
        status if status is not None else FlightRecorder(),
    )


class LinkCutter(FlightRecorder):
    """Loses the vehicle link when a trimming loop starts."""

    def __init__(self, vehicle: SimulatedVehicle) -> None:
        super().__init__()
        self.vehicle = vehicle

    def status(self, message: str) -> None:
        super().status(message)
        if message.startswith("Adjusting"):
            self.vehicle.lose_link()


# =============================================================================
# Comparison Tests
# =============================================================================


class TestCompareOrbitParameter:
    """Rounded parameter differences."""

    def test_apoapsis_in_100km_units(self):
        node = circular_target(720_000.0)
        target = circular_target(1_000_000.0)
        assert compare_orbit_parameter(node, target, OrbitParameter.APOAPSIS) == 3.0
        assert compare_orbit_parameter(target, node, OrbitParameter.APOAPSIS) == -3.0

    def test_apoapsis_below_resolution(self):
        node = circular_target(700_000.0)
        target = circular_target(740_000.0)
        assert compare_orbit_parameter(node, target, OrbitParameter.APOAPSIS) == 0.0

    def test_periapsis_in_100m_units(self):
        node = circular_target(700_000.4)
        target = circular_target(700_250.0)
        assert_allclose(compare_orbit_parameter(node, target, OrbitParameter.PERIAPSIS), 2.5)

    def test_inclination(self):
        node = circular_target(700_000.0, inclination_deg=2.0)
        target = circular_target(700_000.0, inclination_deg=5.0)
        assert_allclose(
            compare_orbit_parameter(node, target, OrbitParameter.INCLINATION), 3.0, atol=1e-9,
        )

    def test_converged(self):
        assert converged(0.004)
        assert converged(-0.004)
        assert not converged(0.006)
        assert converged(1.001, tolerance=1.0)


# =============================================================================
# Planning Tests
# =============================================================================


class TestCircularize:
    """APOAPSIS and PERIAPSIS functions."""

    def test_apoapsis(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0)
        orbit = vehicle.orbit()
        planner = make_planner(vehicle, function=ManeuverFunction.APOAPSIS)

        outcome = planner.plan()

        assert isinstance(outcome, Ok)
        node = outcome.value
        assert vehicle.node_queue == [node]
        expected = circularization_delta_v(MU, orbit.apoapsis, orbit.semi_major_axis)
        assert_allclose(node.prograde, expected, rtol=1e-9)
        assert node.normal == 0.0 and node.radial == 0.0
        assert_allclose(node.time_to, orbit.time_to_apoapsis, rtol=1e-9)
        assert_allclose(node.orbit.periapsis, orbit.apoapsis, rtol=1e-6)

    def test_periapsis_lowers_apoapsis(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0, at_periapsis=False)
        orbit = vehicle.orbit()
        planner = make_planner(vehicle, function=ManeuverFunction.PERIAPSIS)

        node = planner.plan().unwrap()

        assert node.prograde < 0.0
        assert_allclose(node.orbit.apoapsis, orbit.periapsis, rtol=1e-6)

    def test_status_output(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0)
        recorder = FlightRecorder()
        make_planner(vehicle, recorder, function=ManeuverFunction.APOAPSIS).plan()
        assert recorder.messages == ["Planning maneuver: apoapsis"]

    def test_plan_circularize_directly(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0)
        node = make_planner(vehicle).plan_circularize(Apsis.APOAPSIS)
        assert node.prograde > 0.0


class TestUnboundOrbits:
    """Circularization from trajectories that are not closed ellipses."""

    def test_periapsis_on_escape_trajectory(self):
        """Vis-viva holds for a negative semi-major axis."""
        radius = R_BODY + 100_000.0
        escape = np.sqrt(2.0 * MU / radius)
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0)
        vehicle.state = PlanarState(radius, 0.0, 0.0, 1.2 * escape)
        assert vehicle.orbit().semi_major_axis < 0.0

        outcome = make_planner(vehicle, function=ManeuverFunction.PERIAPSIS).plan()

        assert isinstance(outcome, Ok)
        assert_allclose(outcome.value.prograde, np.sqrt(MU / radius) - 1.2 * escape, rtol=1e-6)
        assert vehicle.node_queue == [outcome.value]

    def test_apoapsis_on_escape_trajectory(self):
        radius = R_BODY + 100_000.0
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0)
        vehicle.state = PlanarState(radius, 0.0, 0.0, 1.2 * np.sqrt(2.0 * MU / radius))

        outcome = make_planner(vehicle, function=ManeuverFunction.APOAPSIS).plan()

        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.MANEUVER_NOT_POSSIBLE

    def test_degenerate_periapsis_reported(self):
        """A radial trajectory has its periapsis at the body centre."""
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0)
        vehicle.state = PlanarState(R_BODY + 100_000.0, 0.0, 50.0, 0.0)
        vehicle.set_throttle(0.7)
        recorder = FlightRecorder()

        outcome = make_planner(vehicle, recorder, function=ManeuverFunction.PERIAPSIS).plan()

        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.MANEUVER_NOT_POSSIBLE
        assert vehicle.throttle == 0.0
        assert vehicle.node_queue == []
        assert recorder.messages[-1].startswith("Maneuver failed: radius must be positive")


class TestRendezvous:
    """Hohmann node matched against the target apoapsis."""

    def test_hohmann_node(self):
        target = circular_target(R_BODY + 300_000.0)
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0, target=target)
        planner = make_planner(vehicle, function=ManeuverFunction.RENDEZVOUS)

        node = planner.plan().unwrap()

        r = R_BODY + 100_000.0
        assert_allclose(node.prograde, hohmann_delta_v(MU, r, target.apoapsis, r), rtol=1e-6)
        assert_allclose(node.orbit.apoapsis, target.apoapsis, rtol=1e-4)

    def test_trim_budget_exhausted_keeps_node(self):
        target = circular_target(R_BODY + 300_000.0)
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0, target=target)
        planner = make_planner(
            vehicle, function=ManeuverFunction.RENDEZVOUS, apoapsis_trim_budget=0.0,
        )

        outcome = planner.plan()

        assert isinstance(outcome, Ok)
        assert vehicle.node_queue == [outcome.value]

    def test_no_target(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0)
        recorder = FlightRecorder()
        outcome = make_planner(vehicle, recorder, function=ManeuverFunction.RENDEZVOUS).plan()

        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.MANEUVER_NOT_POSSIBLE
        assert recorder.messages[-1] == "Maneuver failed: No target selected"
        assert vehicle.node_queue == []


class TestAlignPlanes:
    """ADJUST: node at the relative node trimmed along the normal."""

    def test_converges_on_target_plane(self):
        """Equatorial vessel against a 5 degree target."""
        target = circular_target(R_BODY + 100_000.0, inclination_deg=5.0)
        vehicle = SimulatedVehicle.in_orbit(
            100_000.0, 100_000.0, node_longitude=np.pi / 2.0, target=target,
        )
        planner = make_planner(vehicle, function=ManeuverFunction.ADJUST)
        period = vehicle.orbit().period

        outcome = planner.plan()

        assert isinstance(outcome, Ok)
        node = outcome.value
        assert node.prograde == 0.0
        assert_allclose(node.ut, period / 4.0, rtol=1e-3)

        speed = np.sqrt(MU / (R_BODY + 100_000.0))
        assert_allclose(abs(node.normal), speed * np.tan(np.radians(5.0)), rtol=5e-3)
        assert relative_inclination(node.orbit, target) < 0.01

    def test_coplanar_target(self):
        target = circular_target(R_BODY + 300_000.0)
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 100_000.0, target=target)
        outcome = make_planner(vehicle, function=ManeuverFunction.ADJUST).plan()

        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.MANEUVER_NOT_POSSIBLE

    def test_link_lost_while_trimming(self):
        target = circular_target(R_BODY + 100_000.0, inclination_deg=5.0)
        vehicle = SimulatedVehicle.in_orbit(
            100_000.0, 100_000.0, node_longitude=np.pi / 2.0, target=target,
        )
        recorder = LinkCutter(vehicle)
        planner = make_planner(vehicle, recorder, function=ManeuverFunction.ADJUST)

        outcome = planner.plan()

        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.ADJUSTMENT_FAILED
        assert vehicle.node_queue == []
        assert planner.node is None
        assert recorder.messages[-1] == "Maneuver failed: Could not adjust the maneuver"


class TestPreconditions:
    """Refusals before any node is created."""

    def test_grounded(self):
        vehicle = SimulatedVehicle.on_launch_pad()
        outcome = make_planner(vehicle).plan()
        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.VEHICLE_GROUNDED
        assert vehicle.node_queue == []

    def test_nodes_locked(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0, nodes_unlocked=False)
        outcome = make_planner(vehicle).plan()
        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.MANEUVER_NOT_POSSIBLE

    def test_execute_plans_nothing(self):
        vehicle = SimulatedVehicle.on_launch_pad()
        outcome = make_planner(vehicle, function=ManeuverFunction.EXECUTE).plan()
        assert outcome == Ok(None)
        assert vehicle.node_queue == []

    def test_link_lost(self):
        vehicle = SimulatedVehicle.in_orbit(100_000.0, 80_000.0)
        vehicle.lose_link()
        outcome = make_planner(vehicle).plan()
        assert isinstance(outcome, Err)
        assert outcome.kind is ErrorKind.TELEMETRY_UNAVAILABLE
        assert vehicle.throttle == 0.0
