"""Ascent guidance: liftoff, gravity turn and orbit insertion.

The guidance is split in two:

- ``AscentGuidance`` is the state machine. ``step`` takes the current
  ``AscentState`` and one telemetry snapshot and returns the next state
  plus the command for this tick. It never touches the vehicle, so it
  can be exercised tick by tick in tests.
- ``AscentRunner`` owns the loop: it reads telemetry, applies commands,
  runs the timed side sequences (stage separation, fairing jettison) and
  turns failures into the disengage-and-report path.

Phases:
1. Liftoff: vertical attitude hold, full throttle
2. Gravity turn: pitch follows the configured curve over altitude,
   throttle holds the apoapsis target
3. Finalize orbit: prograde hold while dynamic pressure is above the limit
4. Handoff: request an apoapsis circularization from the maneuver planner

Example:
    >>> guidance = AscentGuidance(AscentConfig(target_apoapsis=80_000.0))
    >>> state = guidance.initial_state()
    >>> state, command = guidance.step(state, vehicle.read_state())
    >>> command.pitch
    90.0
"""

import logging
from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import NamedTuple

from autopilot.checks import beartype_numeric
from autopilot.config import AscentConfig, ManeuverConfig, ManeuverFunction
from autopilot.gnc.control.pid import PIDController
from autopilot.gnc.guidance.easing import ease, remap
from autopilot.outcome import Err, Outcome, capture
from autopilot.safing import disengage_and_report
from autopilot.scheduler import Scheduler
from autopilot.status import LoggingStatus, StatusReporter
from autopilot.vehicle.interfaces import VehicleAdapter, VehicleState

logger = logging.getLogger(__name__)

VERTICAL_PITCH = 90.0  # [deg]
MIN_TURN_PITCH = 1.0  # [deg]
MIN_CURVE_PROGRESS = 0.01
THROTTLE_INTEGRAL_LIMITS = (-500.0, 500.0)  # [m s], bounds the integral share at 0.5


# =============================================================================
# State and Commands
# =============================================================================


class AscentPhase(IntEnum):
    """Ascent guidance phases."""
    LIFTOFF = 1
    GRAVITY_TURN = 2
    FINALIZE_ORBIT = 3
    HANDOFF = 4


@dataclass(frozen=True)
class AscentState:
    """Externally visible guidance state, threaded through each tick.

    Attributes:
        phase: Current phase
        pitch: Last commanded pitch [deg]
        elapsed: Guidance time since liftoff [s]
        stages_separated: Separations commanded so far
    """
    phase: AscentPhase = AscentPhase.LIFTOFF
    pitch: float = VERTICAL_PITCH
    elapsed: float = 0.0
    stages_separated: int = 0


class AscentCommand(NamedTuple):
    """What the vehicle should do this tick.

    ``None`` fields leave the corresponding channel untouched.

    Attributes:
        throttle: Throttle [0, 1]
        pitch: Target pitch [deg]
        heading: Target heading [deg]
        point_prograde: Hold prograde instead of pitch/heading
        decouple: Run the stage separation sequence
    """
    throttle: float | None = None
    pitch: float | None = None
    heading: float | None = None
    point_prograde: bool = False
    decouple: bool = False


@dataclass(frozen=True)
class AscentResult:
    """Outcome of a completed ascent.

    Attributes:
        state: Final guidance state
        handoff: Maneuver request for orbit circularization
    """
    state: AscentState
    handoff: ManeuverConfig


# =============================================================================
# Guidance
# =============================================================================


@dataclass
class AscentGuidance:
    """Gravity-turn ascent state machine.

    Attributes:
        config: Ascent parameters
        throttle_pid: Apoapsis-holding throttle loop
    """
    config: AscentConfig = field(default_factory=AscentConfig)
    throttle_pid: PIDController = field(
        default_factory=lambda: PIDController(integral_limits=THROTTLE_INTEGRAL_LIMITS)
    )

    def initial_state(self) -> AscentState:
        self.throttle_pid.reset()
        return AscentState()

    @beartype_numeric
    def target_pitch(self, altitude: float) -> float:
        """Pitch the gravity turn commands at an altitude [deg]."""
        progress = remap(
            self.config.curve_start_altitude,
            self.config.target_apoapsis,
            1.0,
            MIN_CURVE_PROGRESS,
            altitude,
        )
        return ease(self.config.curve_model, progress) * VERTICAL_PITCH

    def _throttle(self, vehicle: VehicleState) -> float:
        return self.throttle_pid.compute(
            vehicle.apoapsis_altitude,
            self.config.target_apoapsis,
            self.config.tick_period,
        )

    @beartype_numeric
    def step(self, state: AscentState, vehicle: VehicleState) -> tuple[AscentState, AscentCommand]:
        """Advance the state machine by one tick.

        Args:
            state: State returned by the previous tick
            vehicle: Telemetry snapshot for this tick

        Returns:
            (next state, command to apply)
        """
        cfg = self.config
        elapsed = state.elapsed + cfg.tick_period

        if state.phase is AscentPhase.LIFTOFF:
            command = AscentCommand(throttle=1.0, pitch=VERTICAL_PITCH, heading=cfg.heading)
            return replace(state, phase=AscentPhase.GRAVITY_TURN, pitch=VERTICAL_PITCH), command

        if state.phase is AscentPhase.GRAVITY_TURN:
            reached = vehicle.apoapsis_altitude >= cfg.target_apoapsis
            if reached or state.pitch <= MIN_TURN_PITCH:
                logger.info(
                    f"Gravity turn complete: apoapsis {vehicle.apoapsis_altitude:.0f} m, "
                    f"pitch {state.pitch:.1f} deg"
                )
                next_state = replace(state, phase=AscentPhase.FINALIZE_ORBIT, elapsed=elapsed)
                # Only the apoapsis target cuts the engine
                return next_state, AscentCommand(throttle=0.0 if reached else None)

            pitch = self.target_pitch(vehicle.altitude)
            decouple = cfg.decouple_stages and vehicle.current_stage_exhausted
            command = AscentCommand(
                throttle=self._throttle(vehicle),
                pitch=pitch,
                heading=cfg.heading,
                decouple=decouple,
            )
            next_state = replace(
                state,
                pitch=pitch,
                elapsed=elapsed,
                stages_separated=state.stages_separated + int(decouple),
            )
            return next_state, command

        if state.phase is AscentPhase.FINALIZE_ORBIT:
            if vehicle.dynamic_pressure > cfg.max_dynamic_pressure:
                command = AscentCommand(throttle=self._throttle(vehicle), point_prograde=True)
                return replace(state, elapsed=elapsed), command
            return replace(state, phase=AscentPhase.HANDOFF, elapsed=elapsed), AscentCommand(throttle=0.0)

        return state, AscentCommand()


# =============================================================================
# Runner
# =============================================================================


class AscentRunner:
    """Flies an ``AscentGuidance`` against a vehicle.

    Example:
        >>> runner = AscentRunner(vehicle, AscentConfig(), scheduler)
        >>> outcome = runner.run()
        >>> if outcome.is_ok:
        ...     handoff = outcome.value.handoff
    """

    def __init__(
        self,
        vehicle: VehicleAdapter,
        config: AscentConfig | None = None,
        scheduler: Scheduler | None = None,
        status: StatusReporter | None = None,
    ) -> None:
        self.vehicle = vehicle
        self.config = config or AscentConfig()
        self.scheduler = scheduler or Scheduler()
        self.status = status or LoggingStatus()
        self.guidance = AscentGuidance(self.config)
        self.state = self.guidance.initial_state()

    def run(self) -> Outcome:
        """Fly the whole ascent.

        Returns:
            ``Ok(AscentResult)`` or ``Err`` after the vehicle was safed
        """
        outcome = capture(self._fly)
        if isinstance(outcome, Err):
            disengage_and_report(self.vehicle, self.status, outcome, "Liftoff")
        return outcome

    def _fly(self) -> AscentResult:
        cfg = self.config
        logger.info(
            f"Liftoff: target apoapsis {cfg.target_apoapsis:.0f} m, heading {cfg.heading:.1f}, "
            f"curve {cfg.curve_model.value}"
        )
        self.status.status("Liftoff")
        self.vehicle.set_target_roll(cfg.roll)
        self.vehicle.engage_autopilot()

        while self.state.phase is not AscentPhase.HANDOFF:
            previous = self.state.phase
            snapshot = self.vehicle.read_state()
            self.state, command = self.guidance.step(self.state, snapshot)
            self._apply(command)
            if self.state.phase is not previous:
                self._enter(self.state.phase)
            if self.state.phase is AscentPhase.GRAVITY_TURN and command.pitch is not None:
                self.status.status(f"Gravity turn, pitch {self.state.pitch:.1f}")
            if self.state.phase is not AscentPhase.HANDOFF:
                self.scheduler.wait(cfg.tick_period)

        self.status.status("Planning orbit circularization")
        handoff = ManeuverConfig(function=ManeuverFunction.APOAPSIS, fine_adjustment=True)
        return AscentResult(state=self.state, handoff=handoff)

    def _apply(self, command: AscentCommand) -> None:
        if command.point_prograde:
            self.vehicle.point_prograde()
        elif command.pitch is not None:
            self.vehicle.target_pitch_and_heading(command.pitch, command.heading or self.config.heading)
        if command.throttle is not None:
            self.vehicle.set_throttle(command.throttle)
        if command.decouple:
            self._separate_stage()

    def _enter(self, phase: AscentPhase) -> None:
        logger.info(f"Ascent phase: {phase.name}")
        if phase is AscentPhase.FINALIZE_ORBIT:
            self.status.status("Maintaining apoapsis until orbit")
            self.vehicle.disengage_autopilot()
            self.vehicle.set_sas(True)
            self.vehicle.set_rcs(True)
        elif phase is AscentPhase.HANDOFF:
            self.vehicle.set_throttle(0.0)
            self.vehicle.disengage_autopilot()
            if self.config.deploy_panels:
                self._deploy_panels_and_radiators()

    def _separate_stage(self) -> None:
        self.status.status("Separating stage")
        self.scheduler.wait(self.config.stage_settle_time)
        self.vehicle.activate_next_stage()
        self.scheduler.wait(self.config.stage_settle_time)

    def _deploy_panels_and_radiators(self) -> None:
        fairings = self.vehicle.fairings()
        if fairings:
            self.status.status("Jettisoning fairings")
            for fairing in fairings:
                fairing.jettison()
                self.scheduler.wait(self.config.fairing_settle_time)
        self.vehicle.deploy_solar_panels()
        self.vehicle.deploy_radiators()
