"""Maneuver node execution.

Flies a queued node: orient, warp/wait for ignition, burn, optional RCS
fine trim, cleanup. Each stage polls through the scheduler, so a cancel
request stops the burn at the next tick with the throttle closed.

Example:
    >>> executor = ManeuverExecutor(vehicle, ManeuverConfig(fine_adjustment=True))
    >>> outcome = executor.execute_next()
    >>> if outcome.is_ok:
    ...     print(f"Residual: {outcome.value.remaining:.2f} m/s")
"""

import logging
import math
from dataclasses import dataclass

from autopilot.checks import beartype_numeric
from autopilot.config import ManeuverConfig
from autopilot.errors import ManeuverNotPossible
from autopilot.gnc.control.pid import PIDController
from autopilot.orbital import burn_duration
from autopilot.outcome import Err, Outcome, capture
from autopilot.safing import disengage_and_report
from autopilot.scheduler import Scheduler
from autopilot.status import LoggingStatus, StatusReporter
from autopilot.vehicle.interfaces import (
    ManeuverNode,
    RemainingBurnStream,
    VehicleAdapter,
)

logger = logging.getLogger(__name__)

PROGRESS_SCALE = 1000.0
RCS_GAIN = 10.0
RCS_OUTPUT_LIMITS = (0.5, 1.0)


@beartype_numeric
def deceleration_margin(total_delta_v: float) -> float:
    """Fraction of the burn left when the engine should start easing off.

    >1000 m/s: 0.025, >250 m/s: 0.10, otherwise 0.25.
    """
    if total_delta_v > 1000.0:
        return 0.025
    if total_delta_v > 250.0:
        return 0.10
    return 0.25


@dataclass(frozen=True)
class ExecutionReport:
    """Summary of one executed node.

    Attributes:
        delta_v: Planned delta-V [m/s]
        burn_time: Estimated burn duration [s]
        remaining: Remaining delta-V after the last loop [m/s]
        warped: A time warp was requested
        fine_adjusted: The RCS trim ran
        deceleration_margin: Margin fraction tracked during the burn
        decelerated: The remaining fraction fell below the margin
    """
    delta_v: float
    burn_time: float
    remaining: float
    warped: bool
    fine_adjusted: bool
    deceleration_margin: float
    decelerated: bool


class ManeuverExecutor:
    """Executes maneuver nodes.

    Attributes:
        vehicle: Telemetry and command channel
        config: Maneuver parameters
        scheduler: Tick source
        status: Progress output
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
        self.throttle_pid = PIDController()
        self.rcs_pid = PIDController()
        self.rcs_pid.adjust_output(*RCS_OUTPUT_LIMITS)
        self._stream: RemainingBurnStream | None = None

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def execute_next(self) -> Outcome:
        """Execute the first node in the vehicle's queue."""
        def first_node() -> ManeuverNode:
            nodes = self.vehicle.nodes()
            if not nodes:
                raise ManeuverNotPossible("No maneuver node to execute")
            return nodes[0]

        outcome = capture(first_node)
        if isinstance(outcome, Err):
            disengage_and_report(self.vehicle, self.status, outcome, "Maneuver")
            return outcome
        return self.execute(outcome.value)

    def execute(self, node: ManeuverNode) -> Outcome:
        """Fly ``node`` and remove it.

        Returns:
            ``Ok(ExecutionReport)`` or ``Err`` after the vehicle was safed
            and the node removed
        """
        self.throttle_pid.reset()
        self.rcs_pid.reset()
        self._stream = None
        outcome = capture(lambda: self._execute(node))
        if isinstance(outcome, Err):
            disengage_and_report(
                self.vehicle, self.status, outcome, "Maneuver", stream=self._stream, node=node,
            )
        self._stream = None
        return outcome

    def _execute(self, node: ManeuverNode) -> ExecutionReport:
        total = float(node.delta_v)
        fine = self.can_fine_adjust()
        self.orient(node)
        burn_time = self.burn_time(node)
        warped = self.wait_for_ignition(node, burn_time, fine)

        self._stream = node.remaining_burn()
        remaining, decelerated = self.burn(node, self._stream, fine)
        self.vehicle.set_throttle(0.0)
        if fine:
            remaining = self.fine_trim(self._stream)
        self.cleanup(node, self._stream)
        self._stream = None
        self.status.status("Ready")
        return ExecutionReport(
            delta_v=total,
            burn_time=burn_time,
            remaining=remaining,
            warped=warped,
            fine_adjusted=fine,
            deceleration_margin=deceleration_margin(total),
            decelerated=decelerated,
        )

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def can_fine_adjust(self) -> bool:
        """Fine adjustment requested and at least one RCS thruster has fuel."""
        if not self.config.fine_adjustment:
            return False
        if self.vehicle.read_state().rcs_available:
            return True
        logger.info("Fine adjustment requested but no RCS thruster has fuel")
        return False

    def orient(self, node: ManeuverNode) -> None:
        """Point at the burn vector and wait until roll and pointing settle."""
        self.status.status("Orienting to maneuver")
        self.vehicle.engage_autopilot()
        self.vehicle.set_target_roll(0.0)
        self.vehicle.point_at_node(node)
        tolerance = self.config.orient_tolerance

        def settled() -> bool:
            state = self.vehicle.read_state()
            return state.roll_error <= tolerance and state.attitude_error <= tolerance

        self.scheduler.poll_until(settled, self.config.wait_period)
        logger.info("Oriented to maneuver")

    def burn_time(self, node: ManeuverNode) -> float:
        """Burn duration of ``node`` with the current stage."""
        self.vehicle.activate_stage_engines()
        state = self.vehicle.read_state()
        try:
            duration = burn_duration(
                state.available_thrust, state.specific_impulse, state.mass, float(node.delta_v),
            )
        except ValueError as e:
            raise ManeuverNotPossible(f"Cannot compute burn time: {e}") from e
        self.status.status(f"Burn time: {duration:.1f} s")
        return duration

    def wait_for_ignition(self, node: ManeuverNode, burn_time: float, fine: bool) -> bool:
        """Warp toward the ignition point, then poll until it arrives.

        Returns:
            True if a warp was requested
        """
        cfg = self.config
        lead_in = cfg.fine_lead_in if fine else 0.0
        start = node.time_to - burn_time / 2.0 - lead_in
        warped = False
        if start > cfg.warp_threshold:
            self.status.status("Warping to maneuver")
            self.vehicle.warp_to(
                self.vehicle.ut() + start - cfg.warp_margin,
                cfg.max_rails_rate,
                cfg.max_physics_rate,
            )
            warped = True

        while True:
            start = max(node.time_to - burn_time / 2.0, 0.0)
            self.vehicle.point_at_node(node)
            self.status.status(f"Ignition in {start:.1f} s")
            if start <= 0.0:
                return warped
            self.scheduler.wait(cfg.wait_period)

    def burn(self, node: ManeuverNode, stream: RemainingBurnStream, fine: bool) -> tuple[float, bool]:
        """Throttle on burn progress until the remaining delta-V is below threshold.

        Returns:
            (remaining delta-V, whether the deceleration margin was reached)

        Raises:
            ManeuverNotPossible: If the stage runs dry before the burn completes
        """
        cfg = self.config
        threshold = cfg.fine_completion_threshold if fine else cfg.completion_threshold
        total = float(node.delta_v)
        margin = deceleration_margin(total)
        decelerated = False
        self.status.status("Executing maneuver")
        logger.info(f"Burning {total:.1f} m/s, deceleration margin {margin:.3f}")

        while True:
            remaining = stream.get()
            self.status.remaining_delta_v(remaining)
            if remaining < threshold:
                return remaining, decelerated
            if self.vehicle.read_state().available_thrust <= 0.0:
                raise ManeuverNotPossible(f"Out of thrust with {remaining:.1f} m/s left")
            if not decelerated and total > 0 and remaining / total < margin:
                decelerated = True
                logger.info(f"Within deceleration margin: {remaining:.1f} m/s left")
            self.vehicle.point_at_node(node)
            progress = (total - remaining) / total * PROGRESS_SCALE if total > 0 else PROGRESS_SCALE
            throttle = self.throttle_pid.compute(progress, PROGRESS_SCALE, cfg.burn_period)
            self.vehicle.set_throttle(throttle)
            self.scheduler.wait(cfg.burn_period)

    def fine_trim(self, stream: RemainingBurnStream) -> float:
        """Finish the burn with forward RCS translation.

        Returns:
            Remaining delta-V [m/s]
        """
        cfg = self.config
        self.status.status("Fine adjustment with RCS")
        self.vehicle.set_throttle(0.0)
        self.vehicle.set_rcs(True)
        remaining = stream.get()
        while math.floor(remaining) > cfg.rcs_floor:
            if not self.vehicle.read_state().rcs_available:
                logger.warning(f"RCS fuel exhausted with {remaining:.2f} m/s left")
                break
            forward = self.rcs_pid.compute(-remaining * RCS_GAIN, 0.0, cfg.rcs_period)
            self.vehicle.set_forward(forward)
            self.scheduler.wait(cfg.rcs_period)
            remaining = stream.get()
            self.status.remaining_delta_v(remaining)
        self.vehicle.set_forward(0.0)
        return remaining

    def cleanup(self, node: ManeuverNode, stream: RemainingBurnStream) -> None:
        """Hand the vehicle back and remove the completed node."""
        self.vehicle.use_surface_reference()
        self.vehicle.disengage_autopilot()
        self.vehicle.set_sas(True)
        self.vehicle.set_rcs(False)
        stream.remove()
        node.remove()
        logger.info("Maneuver complete")

