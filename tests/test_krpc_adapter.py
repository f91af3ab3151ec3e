"""Unit tests for the kRPC adapter against stand-in connection objects."""

from types import SimpleNamespace

import pytest

from autopilot.errors import ManeuverNotPossible, TelemetryUnavailable
from autopilot.vehicle import Situation, VehicleAdapter
from autopilot.vehicle.interfaces import DeltaV
from autopilot.vehicle.krpc_adapter import KrpcFairing, KrpcNode, KrpcRemainingBurn, KrpcVehicle


class RPCError(RuntimeError):
    """Same name as the kRPC client's base RPC error."""


class InvalidOperationException(RPCError):
    """Server-side refusal, raised by the client as an RPCError subclass."""


class FakeStream:
    def __init__(self, value) -> None:
        self.value = value
        self.removed = False

    def __call__(self):
        return self.value

    def remove(self) -> None:
        self.removed = True


class FakeControl:
    def __init__(self) -> None:
        self.nodes = []
        self.current_stage = 2
        self.throttle = 0.0
        self.reject = None

    def add_node(self, ut, prograde, normal, radial):
        if self.reject is not None:
            raise self.reject
        node = SimpleNamespace(ut=ut, prograde=prograde, normal=normal, radial=radial,
                               reference_frame="node_frame")
        self.nodes.append(node)
        return node


class FakeModule:
    def __init__(self, events) -> None:
        self.events = events
        self.triggered = []

    def trigger_event(self, name) -> None:
        self.triggered.append(name)


def fake_orbit(apoapsis: float = 700_000.0, periapsis: float = 690_000.0) -> SimpleNamespace:
    return SimpleNamespace(
        apoapsis=apoapsis,
        periapsis=periapsis,
        apoapsis_altitude=apoapsis - 600_000.0,
        periapsis_altitude=periapsis - 600_000.0,
        inclination=0.1,
        semi_major_axis=(apoapsis + periapsis) / 2.0,
        time_to_apoapsis=300.0,
        time_to_periapsis=1200.0,
        eccentricity=0.007,
        longitude_of_ascending_node=0.5,
        argument_of_periapsis=1.0,
        mean_anomaly_at_epoch=2.0,
        epoch=50.0,
        body=SimpleNamespace(gravitational_parameter=3.5316e12, reference_frame="body_frame"),
    )


def engine(stage: int, has_fuel: bool = True, active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(part=SimpleNamespace(stage=stage), has_fuel=has_fuel, active=active)


@pytest.fixture
def connection():
    control = FakeControl()
    auto_pilot = SimpleNamespace(error=1.5, roll_error=0.5, reference_frame=None,
                                 target_direction=None)
    vessel = SimpleNamespace(
        orbit=fake_orbit(),
        flight=lambda frame: SimpleNamespace(mean_altitude=95_000.0, dynamic_pressure=0.0),
        parts=SimpleNamespace(
            engines=[engine(2), engine(1, active=False)],
            rcs=[SimpleNamespace(has_fuel=False), SimpleNamespace(has_fuel=True)],
            solar_panels=[SimpleNamespace(deployable=True, deployed=False),
                          SimpleNamespace(deployable=False, deployed=False)],
            radiators=[],
            fairings=[],
        ),
        mass=5_000.0,
        available_thrust=60_000.0,
        specific_impulse=340.0,
        situation=SimpleNamespace(name="orbiting"),
        auto_pilot=auto_pilot,
        control=control,
        surface_reference_frame="surface_frame",
    )
    space_center = SimpleNamespace(
        active_vessel=vessel,
        ut=1_000.0,
        target_body=None,
        target_vessel=None,
    )
    streams = []

    def add_stream(call, frame):
        stream = FakeStream((0.0, 12.5, 0.0))
        streams.append((call, frame, stream))
        return stream

    return SimpleNamespace(space_center=space_center, add_stream=add_stream, streams=streams)


# =============================================================================
# Telemetry Tests
# =============================================================================


class TestTelemetry:
    """Snapshots built from the vessel."""

    def test_adapter_protocol(self, connection):
        assert isinstance(KrpcVehicle(connection), VehicleAdapter)

    def test_read_state(self, connection):
        state = KrpcVehicle(connection).read_state()
        assert state.altitude == 95_000.0
        assert state.apoapsis_altitude == 100_000.0
        assert state.periapsis_altitude == 90_000.0
        assert state.current_stage == 2
        assert not state.current_stage_exhausted
        assert state.rcs_available
        assert state.attitude_error == 1.5
        assert state.situation is Situation.ORBITING
        assert state.ut == 1_000.0

    def test_orbit(self, connection):
        orbit = KrpcVehicle(connection).orbit()
        assert orbit.apoapsis == 700_000.0
        assert orbit.gravitational_parameter == 3.5316e12
        assert orbit.epoch == 50.0

    def test_target_orbit_prefers_body(self, connection):
        vehicle = KrpcVehicle(connection)
        assert vehicle.target_orbit() is None

        connection.space_center.target_vessel = SimpleNamespace(orbit=fake_orbit(800_000.0))
        assert vehicle.target_orbit().apoapsis == 800_000.0

        connection.space_center.target_body = SimpleNamespace(orbit=fake_orbit(9_000_000.0))
        assert vehicle.target_orbit().apoapsis == 9_000_000.0

    def test_transport_error_translated(self, connection):
        class Broken:
            auto_pilot = None
            control = None

            @property
            def orbit(self):
                raise RPCError("connection reset")

        vehicle = KrpcVehicle(connection, vessel=Broken())
        with pytest.raises(TelemetryUnavailable, match="connection reset"):
            vehicle.orbit()

    def test_other_errors_propagate(self, connection):
        connection.space_center.active_vessel.orbit = None
        with pytest.raises(AttributeError):
            KrpcVehicle(connection).orbit()


# =============================================================================
# Command Tests
# =============================================================================


class TestCommands:
    """Commands forwarded to the vessel."""

    def test_throttle(self, connection):
        KrpcVehicle(connection).set_throttle(0.75)
        assert connection.space_center.active_vessel.control.throttle == 0.75

    def test_point_at_node(self, connection):
        vehicle = KrpcVehicle(connection)
        node = vehicle.add_node(1_100.0, DeltaV(10.0, 0.0, 0.0))
        vehicle.point_at_node(node)
        auto_pilot = connection.space_center.active_vessel.auto_pilot
        assert auto_pilot.reference_frame == "node_frame"
        assert auto_pilot.target_direction == (0.0, 1.0, 0.0)

        vehicle.use_surface_reference()
        assert auto_pilot.reference_frame == "surface_frame"

    def test_activate_stage_engines(self, connection):
        vehicle = KrpcVehicle(connection)
        engines = connection.space_center.active_vessel.parts.engines
        connection.space_center.active_vessel.control.current_stage = 1
        vehicle.activate_stage_engines()
        assert engines[1].active

    def test_fairings_jettisoned_by_module_event(self, connection):
        deploy = FakeModule(["Deploy", "Toggle"])
        other = FakeModule(["Decouple"])
        fairing = SimpleNamespace(part=SimpleNamespace(modules=[deploy, other]))
        connection.space_center.active_vessel.parts.fairings = [fairing]

        fairings = KrpcVehicle(connection).fairings()
        assert len(fairings) == 1
        assert isinstance(fairings[0], KrpcFairing)

        fairings[0].jettison()
        assert deploy.triggered == ["Deploy"]
        assert other.triggered == []

    def test_fairing_event_failure(self):
        class Unreachable:
            @property
            def modules(self):
                raise RPCError("part destroyed")

        with pytest.raises(TelemetryUnavailable, match="part destroyed"):
            KrpcFairing(Unreachable()).jettison()

    def test_deploy_panels(self, connection):
        KrpcVehicle(connection).deploy_solar_panels()
        panels = connection.space_center.active_vessel.parts.solar_panels
        assert panels[0].deployed
        assert not panels[1].deployed


class TestNodes:
    """Node creation and remaining-burn streams."""

    def test_add_node(self, connection):
        vehicle = KrpcVehicle(connection)
        node = vehicle.add_node(1_100.0, DeltaV(10.0, -2.0, 0.5))
        assert isinstance(node, KrpcNode)
        assert node.ut == 1_100.0
        assert (node.prograde, node.normal, node.radial) == (10.0, -2.0, 0.5)

        node.normal = -3.0
        assert node.raw.normal == -3.0

    def test_rejected_node(self, connection):
        control = connection.space_center.active_vessel.control
        control.reject = InvalidOperationException("Maneuver nodes not unlocked")
        with pytest.raises(ManeuverNotPossible, match="not unlocked"):
            KrpcVehicle(connection).add_node(1_100.0, DeltaV(10.0, 0.0, 0.0))
        assert control.nodes == []

    def test_connection_lost_while_adding_node(self, connection):
        control = connection.space_center.active_vessel.control
        control.reject = ConnectionResetError("connection reset by peer")
        with pytest.raises(TelemetryUnavailable, match="connection reset"):
            KrpcVehicle(connection).add_node(1_100.0, DeltaV(10.0, 0.0, 0.0))

    def test_remaining_burn_is_prograde_component(self, connection):
        vehicle = KrpcVehicle(connection)
        node = vehicle.add_node(1_100.0, DeltaV(12.5, 0.0, 0.0))
        node.raw.remaining_burn_vector = "remaining_burn_vector"

        stream = node.remaining_burn()
        assert isinstance(stream, KrpcRemainingBurn)
        assert stream.get() == 12.5

        call, frame, raw = connection.streams[0]
        assert frame == "node_frame"
        stream.remove()
        assert raw.removed

    def test_stream_failure(self):
        def broken():
            raise RPCError("stream closed")

        stream = KrpcRemainingBurn(broken)
        with pytest.raises(TelemetryUnavailable):
            stream.get()
