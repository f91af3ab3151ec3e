"""Disengage-and-report routine shared by every failure path.

Whatever went wrong, the vehicle is left with the throttle closed, no
translation command and the autopilot released before the failure is
reported. Each safing action is attempted even if an earlier one
failed.
"""

import logging

from autopilot.errors import AutopilotError
from autopilot.outcome import Err
from autopilot.status import StatusReporter
from autopilot.vehicle.interfaces import Controller, ManeuverNode, RemainingBurnStream

logger = logging.getLogger(__name__)


def disengage_and_report(
    controller: Controller,
    status: StatusReporter,
    error: Err,
    context: str,
    stream: RemainingBurnStream | None = None,
    node: ManeuverNode | None = None,
) -> None:
    """Safe the vehicle, then report the failure.

    Args:
        controller: Command channel of the vehicle
        status: Where to report
        error: The failed outcome
        context: Name of the run that stopped (e.g. "Liftoff")
        stream: Open telemetry stream to release
        node: Active maneuver node to remove
    """
    actions = [
        ("close throttle", lambda: controller.set_throttle(0.0)),
        ("stop translation", lambda: controller.set_forward(0.0)),
        ("disengage autopilot", controller.disengage_autopilot),
    ]
    if stream is not None:
        actions.append(("release stream", stream.remove))
    if node is not None:
        actions.append(("remove node", node.remove))

    for name, action in actions:
        try:
            action()
        except AutopilotError as e:
            logger.error(f"Safing step '{name}' failed: {e}")

    verb = "cancelled" if error.cancelled else "failed"
    logger.warning(f"{context} {verb}: {error.message}")
    status.status(f"{context} {verb}: {error.message}")
