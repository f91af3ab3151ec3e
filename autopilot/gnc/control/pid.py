"""PID controller implementation.

Every feedback loop in the autopilot (ascent throttle, burn throttle,
node trimming, RCS translation) owns its own PIDController instance.
The controller works on a (measured, target) pair and always returns an
output clamped to its configured range, which defaults to the throttle
range [0, 1].

Example:
    >>> from autopilot.gnc.control import PIDController
    >>>
    >>> # Throttle on apoapsis altitude
    >>> ctrl = PIDController(kp=0.025, ki=0.001, kd=0.01)
    >>> throttle = ctrl.compute(measured=apoapsis, target=80_000.0, dt=0.25)
    >>>
    >>> # Symmetric output for trimming loops
    >>> trim = PIDController(output_limits=(-1.0, 1.0))
"""

from dataclasses import dataclass, field

import numpy as np

from autopilot.checks import beartype_numeric

# =============================================================================
# PID Gains
# =============================================================================


@beartype_numeric
@dataclass(frozen=True)
class PIDGains:
    """PID controller gains.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
    """
    kp: float = 0.025
    ki: float = 0.001
    kd: float = 0.01

    def scale(self, factor: float) -> "PIDGains":
        """Scale all gains by a factor."""
        return PIDGains(
            kp=self.kp * factor,
            ki=self.ki * factor,
            kd=self.kd * factor,
        )


# =============================================================================
# PID Controller
# =============================================================================


@beartype_numeric
@dataclass
class PIDController:
    """General-purpose PID controller.

    Implements the parallel PID form on error = target - measured:
        u = kp * e + ki * integral(e) + kd * de/dt

    The integral is not reset when the error changes sign. Loops that
    run long enough for that to matter pass ``integral_limits``.

    Attributes:
        kp: Proportional gain
        ki: Integral gain
        kd: Derivative gain
        output_limits: (min, max) output limits
        integral_limits: (min, max) integral term limits (anti-windup)
    """
    kp: float = 0.025
    ki: float = 0.001
    kd: float = 0.01
    output_limits: tuple[float, float] = (0.0, 1.0)
    integral_limits: tuple[float, float] | None = None

    # Internal state
    _integral: float = field(default=0.0, init=False, repr=False)
    _prev_error: float | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        """Validate output range."""
        low, high = self.output_limits
        if low > high:
            raise ValueError(f"Invalid output limits: min {low} > max {high}")

    @classmethod
    def from_gains(
        cls,
        gains: PIDGains,
        output_limits: tuple[float, float] = (0.0, 1.0),
        integral_limits: tuple[float, float] | None = None,
    ) -> "PIDController":
        """Create controller from PIDGains object."""
        return cls(
            kp=gains.kp,
            ki=gains.ki,
            kd=gains.kd,
            output_limits=output_limits,
            integral_limits=integral_limits,
        )

    @beartype_numeric
    def adjust_output(self, minimum: float, maximum: float) -> None:
        """Change the output clamp range.

        Args:
            minimum: Lowest value compute() may return
            maximum: Highest value compute() may return
        """
        if minimum > maximum:
            raise ValueError(f"Invalid output limits: min {minimum} > max {maximum}")
        self.output_limits = (minimum, maximum)

    @beartype_numeric
    def reset(self) -> None:
        """Reset controller state (integral and derivative history)."""
        self._integral = 0.0
        self._prev_error = None

    @beartype_numeric
    def compute(self, measured: float, target: float, dt: float = 1.0) -> float:
        """Compute the clamped PID output for one sample.

        Args:
            measured: Current value of the controlled quantity
            target: Setpoint
            dt: Time since the previous sample [s]

        Returns:
            Control output within ``output_limits``
        """
        low, high = self.output_limits
        error = target - measured
        if dt <= 0:
            return float(np.clip(self.kp * error, low, high))

        p_term = self.kp * error

        self._integral += error * dt
        if self.integral_limits:
            self._integral = float(np.clip(
                self._integral,
                self.integral_limits[0],
                self.integral_limits[1],
            ))
        i_term = self.ki * self._integral

        d_term = 0.0
        if self._prev_error is not None:
            d_term = self.kd * (error - self._prev_error) / dt
        self._prev_error = error

        output = p_term + i_term + d_term
        if not np.isfinite(output):
            # inf - inf from saturated terms
            output = high if error > 0 else low
        return float(np.clip(output, low, high))

    @property
    def integral(self) -> float:
        """Accumulated integral of the error."""
        return self._integral

    @property
    def gains(self) -> PIDGains:
        """Get current gains as PIDGains object."""
        return PIDGains(kp=self.kp, ki=self.ki, kd=self.kd)

    @gains.setter
    def gains(self, value: PIDGains) -> None:
        """Set gains from PIDGains object."""
        self.kp = value.kp
        self.ki = value.ki
        self.kd = value.kd
