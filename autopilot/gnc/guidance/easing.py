"""Gravity-turn curve models.

The ascent pitch is ``easing(p) * 90`` where ``p`` runs from 1 at the
start of the turn down to 0.01 at the target apoapsis. Every curve is an
ease-in function mapping [0, 1] onto [0, 1], monotonically non-decreasing,
with easing(0) = 0 and easing(1) = 1.
"""

import math
from collections.abc import Callable

import numpy as np

from autopilot.checks import beartype_numeric
from autopilot.config import CurveModel


@beartype_numeric
def ease_in_circular(x: float) -> float:
    return 1.0 - math.sqrt(1.0 - x * x)


@beartype_numeric
def ease_in_quadratic(x: float) -> float:
    return x * x


@beartype_numeric
def ease_in_cubic(x: float) -> float:
    return x * x * x


@beartype_numeric
def ease_in_sinusoidal(x: float) -> float:
    return 1.0 - math.cos(x * math.pi / 2.0)


@beartype_numeric
def ease_in_exponential(x: float) -> float:
    if x <= 0.0:
        return 0.0
    return 2.0 ** (10.0 * x - 10.0) if x < 1.0 else 1.0


_CURVES: dict[CurveModel, Callable[[float], float]] = {
    CurveModel.CIRCULAR: ease_in_circular,
    CurveModel.QUADRATIC: ease_in_quadratic,
    CurveModel.CUBIC: ease_in_cubic,
    CurveModel.SINUSOIDAL: ease_in_sinusoidal,
    CurveModel.EXPONENTIAL: ease_in_exponential,
}


@beartype_numeric
def easing_for(model: CurveModel) -> Callable[[float], float]:
    """Return the easing function for a curve model."""
    return _CURVES[model]


@beartype_numeric
def ease(model: CurveModel, x: float) -> float:
    """Evaluate a curve model at ``x``, clamping the input to [0, 1]."""
    return _CURVES[model](float(np.clip(x, 0.0, 1.0)))


@beartype_numeric
def remap(
    in_min: float,
    in_max: float,
    out_min: float,
    out_max: float,
    value: float,
) -> float:
    """Linearly map ``value`` from [in_min, in_max] onto [out_min, out_max].

    The result is clamped to the output range, so altitudes below the
    start of the turn map to ``out_min`` and altitudes above the target
    map to ``out_max``.

    Args:
        in_min: Input value mapped to ``out_min``
        in_max: Input value mapped to ``out_max``
        out_min: Output at ``in_min``
        out_max: Output at ``in_max``
        value: Value to map

    Returns:
        Mapped value
    """
    if in_max == in_min:
        return out_max
    fraction = (value - in_min) / (in_max - in_min)
    mapped = out_min + fraction * (out_max - out_min)
    return float(np.clip(mapped, min(out_min, out_max), max(out_min, out_max)))
