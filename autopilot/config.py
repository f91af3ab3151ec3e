"""Run configuration for ascent and maneuver execution.

Configs are built once per run and never mutated. Out-of-range numeric
inputs are clamped rather than rejected: apoapsis target to
[10 000, 2 000 000], heading and roll to [0, 360].

The command mapping produced by the external parameter parser is turned
into typed configs by ``CommandParameters.from_mapping``:

Example:
    >>> params = CommandParameters.from_mapping({
    ...     "apoapsis": "85000",
    ...     "heading": "90",
    ...     "roll": "90",
    ...     "curve": "quadratic",
    ...     "decouple": "true",
    ... })
    >>> params.ascent.target_apoapsis
    85000.0
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from autopilot.checks import beartype_numeric

# =============================================================================
# Limits
# =============================================================================

MIN_TARGET_APOAPSIS: float = 10_000.0
MAX_TARGET_APOAPSIS: float = 2_000_000.0
MIN_ANGLE: float = 0.0
MAX_ANGLE: float = 360.0


# =============================================================================
# Enumerations
# =============================================================================


class CurveModel(Enum):
    """Gravity-turn pitch curve shape."""
    CIRCULAR = "circular"
    QUADRATIC = "quadratic"
    CUBIC = "cubic"
    SINUSOIDAL = "sinusoidal"
    EXPONENTIAL = "exponential"


class ManeuverFunction(Enum):
    """What a maneuver run should plan before executing."""
    APOAPSIS = "apoapsis"
    PERIAPSIS = "periapsis"
    ADJUST = "adjust"
    RENDEZVOUS = "rendezvous"
    EXECUTE = "execute"


class Module(Enum):
    """Top-level run selector."""
    LIFTOFF = "liftoff"
    MANEUVER = "maneuver"


def _clamp(value: float, low: float, high: float) -> float:
    return float(np.clip(value, low, high))


# =============================================================================
# Ascent
# =============================================================================


@beartype_numeric
@dataclass(frozen=True)
class AscentConfig:
    """Parameters of one ascent run.

    Attributes:
        target_apoapsis: Apoapsis altitude that ends the gravity turn [m]
        heading: Launch heading [deg]
        roll: Target roll during the turn [deg]
        curve_model: Gravity-turn curve shape
        decouple_stages: Separate stages whose engines ran dry
        deploy_panels: Jettison fairings and open panels/radiators after insertion
        curve_start_altitude: Altitude where the turn starts [m]
        tick_period: Guidance loop period [s]
        stage_settle_time: Wait before and after a stage separation [s]
        fairing_settle_time: Wait after each fairing jettison [s]
        max_dynamic_pressure: Finalize loop runs while q is above this
    """
    target_apoapsis: float = 80_000.0
    heading: float = 90.0
    roll: float = 90.0
    curve_model: CurveModel = CurveModel.CIRCULAR
    decouple_stages: bool = False
    deploy_panels: bool = False
    curve_start_altitude: float = 100.0
    tick_period: float = 0.25
    stage_settle_time: float = 1.0
    fairing_settle_time: float = 10.0
    max_dynamic_pressure: float = 10.0

    def __post_init__(self) -> None:
        """Clamp numeric inputs into their valid ranges."""
        object.__setattr__(
            self, "target_apoapsis",
            _clamp(self.target_apoapsis, MIN_TARGET_APOAPSIS, MAX_TARGET_APOAPSIS),
        )
        object.__setattr__(self, "heading", _clamp(self.heading, MIN_ANGLE, MAX_ANGLE))
        object.__setattr__(self, "roll", _clamp(self.roll, MIN_ANGLE, MAX_ANGLE))
        if self.tick_period <= 0:
            raise ValueError("tick_period must be positive")


# =============================================================================
# Maneuver
# =============================================================================


@beartype_numeric
@dataclass(frozen=True)
class ManeuverConfig:
    """Parameters of one maneuver plan + execute run.

    Attributes:
        function: What to plan before executing
        fine_adjustment: Finish the burn with RCS translation when possible
        orient_tolerance: Max roll/pointing error before the burn [deg]
        warp_threshold: Warp only if ignition is further away than this [s]
        warp_margin: Warp stops this long before ignition [s]
        fine_lead_in: Extra lead time when fine adjustment is requested [s]
        max_rails_rate: Rate limit passed with the warp request
        max_physics_rate: Physics-warp rate limit passed with the warp request
        wait_period: Poll period while waiting for ignition [s]
        burn_period: Poll period of the burn loop [s]
        rcs_period: Poll period of the RCS fine-trim loop [s]
        apoapsis_trim_period: Poll period of the apoapsis matching loop [s]
        plane_trim_period: Poll period of the plane alignment loop [s]
        completion_threshold: Remaining delta-V that ends the main burn [m/s]
        fine_completion_threshold: Same, when fine adjustment follows [m/s]
        rcs_floor: Remaining delta-V that ends the RCS trim [m/s]
        apoapsis_trim_budget: Time budget of the apoapsis matching loop [s]
        plane_trim_budget: Time budget of the plane alignment loop [s]
    """
    function: ManeuverFunction = ManeuverFunction.APOAPSIS
    fine_adjustment: bool = False
    orient_tolerance: float = 3.0
    warp_threshold: float = 30.0
    warp_margin: float = 10.0
    fine_lead_in: float = 5.0
    max_rails_rate: float = 100_000.0
    max_physics_rate: float = 4.0
    wait_period: float = 0.1
    burn_period: float = 0.025
    rcs_period: float = 0.025
    apoapsis_trim_period: float = 0.05
    plane_trim_period: float = 0.025
    completion_threshold: float = 0.5
    fine_completion_threshold: float = 2.0
    rcs_floor: float = 0.2
    apoapsis_trim_budget: float = 60.0
    plane_trim_budget: float = 5.0


# =============================================================================
# Command mapping
# =============================================================================

_TRUE = {"true", "1", "yes", "on"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Parameter {name!r} is not a number: {value!r}") from e


def _as_enum(enum_cls: type[Enum], value: Any, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as e:
        options = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Unknown {name} {value!r} (expected one of: {options})") from e


@beartype_numeric
@dataclass(frozen=True)
class CommandParameters:
    """Typed view of the externally parsed command mapping."""
    module: Module = Module.LIFTOFF
    ascent: AscentConfig = field(default_factory=AscentConfig)
    maneuver: ManeuverConfig = field(default_factory=ManeuverConfig)

    @classmethod
    def from_mapping(cls, commands: Mapping[str, Any]) -> "CommandParameters":
        """Build configs from a mapping of named parameters.

        Missing keys fall back to the config defaults. Numeric values are
        clamped by the configs themselves.

        Raises:
            ValueError: If a value cannot be converted
        """
        ascent_kwargs: dict[str, Any] = {}
        if "apoapsis" in commands:
            ascent_kwargs["target_apoapsis"] = _as_float(commands["apoapsis"], "apoapsis")
        if "heading" in commands:
            ascent_kwargs["heading"] = _as_float(commands["heading"], "heading")
        if "roll" in commands:
            ascent_kwargs["roll"] = _as_float(commands["roll"], "roll")
        if "curve" in commands:
            ascent_kwargs["curve_model"] = _as_enum(CurveModel, commands["curve"], "curve model")
        if "decouple" in commands:
            ascent_kwargs["decouple_stages"] = _as_bool(commands["decouple"])
        if "deploy" in commands:
            ascent_kwargs["deploy_panels"] = _as_bool(commands["deploy"])

        maneuver_kwargs: dict[str, Any] = {}
        if "function" in commands:
            maneuver_kwargs["function"] = _as_enum(
                ManeuverFunction, commands["function"], "maneuver function"
            )
        if "fine_adjust" in commands:
            maneuver_kwargs["fine_adjustment"] = _as_bool(commands["fine_adjust"])

        module = Module.MANEUVER if maneuver_kwargs else Module.LIFTOFF
        if "module" in commands:
            module = _as_enum(Module, commands["module"], "module")

        return cls(
            module=module,
            ascent=AscentConfig(**ascent_kwargs),
            maneuver=ManeuverConfig(**maneuver_kwargs),
        )
