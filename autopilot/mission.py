"""Top-level autopilot runs.

A ``Mission`` turns one command mapping into a run on a vehicle:

- LIFTOFF: fly the ascent, then circularize at apoapsis through the
  maneuver planner and executor
- MANEUVER: plan the configured function, then execute the first
  queued node

Only one phase commands the vehicle at a time. The ascent has released
the throttle and autopilot before the circularization starts.

Example:
    >>> mission = Mission.from_commands(vehicle, {"apoapsis": "90000", "curve": "cubic"})
    >>> outcome = mission.run()
    >>> outcome.is_ok
    True
"""

import logging
from collections.abc import Mapping
from typing import Any

from autopilot.config import CommandParameters, ManeuverConfig, Module
from autopilot.gnc.guidance.ascent import AscentRunner
from autopilot.maneuver.executor import ManeuverExecutor
from autopilot.maneuver.planner import ManeuverPlanner
from autopilot.outcome import Err, Outcome
from autopilot.scheduler import Scheduler
from autopilot.status import LoggingStatus, StatusReporter
from autopilot.vehicle.interfaces import VehicleAdapter

logger = logging.getLogger(__name__)


class Mission:
    """Runs one command on a vehicle.

    Attributes:
        vehicle: Telemetry and command channel
        params: Typed command parameters
        scheduler: Tick source shared by every phase of the run
        status: Progress output
    """

    def __init__(
        self,
        vehicle: VehicleAdapter,
        params: CommandParameters | None = None,
        scheduler: Scheduler | None = None,
        status: StatusReporter | None = None,
    ) -> None:
        self.vehicle = vehicle
        self.params = params or CommandParameters()
        self.scheduler = scheduler or Scheduler()
        self.status = status or LoggingStatus()

    @classmethod
    def from_commands(
        cls,
        vehicle: VehicleAdapter,
        commands: Mapping[str, Any],
        scheduler: Scheduler | None = None,
        status: StatusReporter | None = None,
    ) -> "Mission":
        """Build a mission from a mapping of named parameters."""
        return cls(vehicle, CommandParameters.from_mapping(commands), scheduler, status)

    def run(self) -> Outcome:
        """Run the configured module.

        Returns:
            Outcome of the last phase that ran
        """
        if self.params.module is Module.LIFTOFF:
            return self.fly_ascent()
        return self.fly_maneuver(self.params.maneuver)

    def fly_ascent(self) -> Outcome:
        """Ascent followed by the circularization handoff."""
        runner = AscentRunner(self.vehicle, self.params.ascent, self.scheduler, self.status)
        outcome = runner.run()
        if isinstance(outcome, Err):
            return outcome
        logger.info("Ascent complete, handing off to the maneuver planner")
        return self.fly_maneuver(outcome.value.handoff)

    def fly_maneuver(self, config: ManeuverConfig) -> Outcome:
        """Plan ``config.function`` and execute the resulting node."""
        planner = ManeuverPlanner(self.vehicle, config, self.scheduler, self.status)
        planned = planner.plan()
        if isinstance(planned, Err):
            return planned
        executor = ManeuverExecutor(self.vehicle, config, self.scheduler, self.status)
        if planned.value is None:
            return executor.execute_next()
        return executor.execute(planned.value)
