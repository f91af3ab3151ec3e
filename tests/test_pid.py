"""Unit tests for the PID controller."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from autopilot.gnc.control import PIDController, PIDGains

# =============================================================================
# Output Clamping Tests
# =============================================================================


class TestOutputClamping:
    """Output always stays inside the configured range."""

    def test_default_range_is_throttle(self):
        """Default output range is [0, 1]."""
        pid = PIDController()
        assert pid.output_limits == (0.0, 1.0)
        assert pid.compute(0.0, 1_000_000.0, 0.25) == 1.0
        assert pid.compute(1_000_000.0, 0.0, 0.25) == 0.0

    def test_random_error_sequence_stays_bounded(self):
        """Any finite error sequence yields outputs within bounds."""
        rng = np.random.default_rng(42)
        pid = PIDController(kp=3.0, ki=2.0, kd=1.5, output_limits=(-0.7, 0.4))
        for measured, target in rng.normal(0.0, 1e4, size=(500, 2)):
            out = pid.compute(float(measured), float(target), 0.025)
            assert -0.7 <= out <= 0.4

    def test_integer_inputs(self):
        """Integer samples and limits still give a clamped number."""
        assert PIDController().compute(5, 10) == pytest.approx(0.025 * 5 + 0.001 * 5)
        pid = PIDController(kp=1, ki=0, kd=0, output_limits=(-2, 2))
        assert pid.compute(5, 10, 1) == 2.0
        pid.adjust_output(-10, 10)
        assert pid.compute(5, 10, 1) == 5.0

    def test_adjust_output(self):
        """adjust_output changes the clamp used by later calls."""
        pid = PIDController(kp=1.0, ki=0.0, kd=0.0)
        pid.adjust_output(0.5, 1.0)
        assert pid.compute(0.0, 0.0, 0.1) == 0.5
        assert pid.compute(0.0, 10.0, 0.1) == 1.0

    def test_invalid_limits_rejected(self):
        """min > max is rejected."""
        with pytest.raises(ValueError, match="Invalid output limits"):
            PIDController(output_limits=(1.0, 0.0))
        pid = PIDController()
        with pytest.raises(ValueError, match="Invalid output limits"):
            pid.adjust_output(2.0, -2.0)


# =============================================================================
# PID Terms Tests
# =============================================================================


class TestTerms:
    """Proportional, integral and derivative contributions."""

    def test_proportional_sign(self):
        """Error is target - measured."""
        pid = PIDController(kp=0.5, ki=0.0, kd=0.0, output_limits=(-100.0, 100.0))
        assert_allclose(pid.compute(10.0, 20.0, 0.1), 5.0)
        pid.reset()
        assert_allclose(pid.compute(20.0, 10.0, 0.1), -5.0)

    def test_integral_accumulates(self):
        """Integral is the sum of error * dt."""
        pid = PIDController(kp=0.0, ki=1.0, kd=0.0, output_limits=(-100.0, 100.0))
        for _ in range(4):
            out = pid.compute(0.0, 2.0, 0.5)
        assert_allclose(pid.integral, 4.0)
        assert_allclose(out, 4.0)

    def test_integral_not_reset_on_sign_flip(self):
        """The integral carries over when the error changes sign."""
        pid = PIDController(kp=0.0, ki=1.0, kd=0.0, output_limits=(-100.0, 100.0))
        pid.compute(0.0, 10.0, 1.0)
        pid.compute(0.0, -4.0, 1.0)
        assert_allclose(pid.integral, 6.0)

    def test_integral_limits(self):
        """integral_limits bounds the accumulated integral."""
        pid = PIDController(
            kp=0.0, ki=1.0, kd=0.0,
            output_limits=(-100.0, 100.0),
            integral_limits=(-3.0, 3.0),
        )
        for _ in range(10):
            pid.compute(0.0, 10.0, 1.0)
        assert_allclose(pid.integral, 3.0)

    def test_derivative(self):
        """Derivative uses the change in error over dt."""
        pid = PIDController(kp=0.0, ki=0.0, kd=2.0, output_limits=(-100.0, 100.0))
        assert pid.compute(0.0, 1.0, 0.5) == 0.0
        assert_allclose(pid.compute(0.0, 3.0, 0.5), 8.0)

    def test_non_positive_dt_is_proportional_only(self):
        """dt <= 0 leaves the state untouched."""
        pid = PIDController(kp=0.1, ki=1.0, kd=1.0, output_limits=(-100.0, 100.0))
        assert_allclose(pid.compute(0.0, 10.0, 0.0), 1.0)
        assert pid.integral == 0.0

    def test_reset(self):
        """Reset clears integral and derivative history."""
        pid = PIDController(kp=0.0, ki=1.0, kd=1.0, output_limits=(-100.0, 100.0))
        pid.compute(0.0, 5.0, 1.0)
        pid.compute(0.0, 7.0, 1.0)
        pid.reset()
        assert pid.integral == 0.0
        assert_allclose(pid.compute(0.0, 1.0, 1.0), 1.0)

    def test_independent_instances(self):
        """Two controllers never share state."""
        a = PIDController(ki=1.0)
        b = PIDController(ki=1.0)
        a.compute(0.0, 100.0, 1.0)
        assert b.integral == 0.0


class TestGains:
    """PIDGains helpers."""

    def test_from_gains(self):
        gains = PIDGains(kp=1.0, ki=0.5, kd=0.25)
        pid = PIDController.from_gains(gains, output_limits=(-1.0, 1.0))
        assert pid.gains == gains
        assert pid.output_limits == (-1.0, 1.0)

    def test_scale(self):
        gains = PIDGains(kp=1.0, ki=0.5, kd=0.25).scale(2.0)
        assert_allclose([gains.kp, gains.ki, gains.kd], [2.0, 1.0, 0.5])

    def test_gains_setter(self):
        pid = PIDController()
        pid.gains = PIDGains(kp=3.0, ki=0.0, kd=0.0)
        assert pid.kp == 3.0
        assert pid.ki == 0.0
