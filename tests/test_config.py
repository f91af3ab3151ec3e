"""Unit tests for run configuration and the command mapping."""

import pytest

from autopilot.config import (
    MAX_TARGET_APOAPSIS,
    MIN_TARGET_APOAPSIS,
    AscentConfig,
    CommandParameters,
    CurveModel,
    ManeuverConfig,
    ManeuverFunction,
    Module,
)

# =============================================================================
# Clamp Tests
# =============================================================================


class TestAscentClamps:
    """Out-of-range inputs are clamped, not rejected."""

    def test_apoapsis_low(self):
        """apoapsis=5000 clamps to 10000."""
        assert AscentConfig(target_apoapsis=5_000.0).target_apoapsis == MIN_TARGET_APOAPSIS

    def test_apoapsis_high(self):
        assert AscentConfig(target_apoapsis=5e6).target_apoapsis == MAX_TARGET_APOAPSIS

    def test_heading(self):
        """heading=400 clamps to 360."""
        assert AscentConfig(heading=400.0).heading == 360.0
        assert AscentConfig(heading=-20.0).heading == 0.0

    def test_roll(self):
        assert AscentConfig(roll=720.0).roll == 360.0

    def test_integer_inputs(self):
        """Integers are accepted wherever a float is expected."""
        config = AscentConfig(target_apoapsis=5000, heading=400, roll=-10)
        assert config.target_apoapsis == MIN_TARGET_APOAPSIS
        assert config.heading == 360.0
        assert config.roll == 0.0

    def test_in_range_untouched(self):
        config = AscentConfig(target_apoapsis=85_000.0, heading=45.0, roll=10.0)
        assert config.target_apoapsis == 85_000.0
        assert config.heading == 45.0
        assert config.roll == 10.0

    def test_invalid_tick_period(self):
        with pytest.raises(ValueError, match="tick_period"):
            AscentConfig(tick_period=0.0)


class TestDefaults:
    """Loop periods and thresholds."""

    def test_ascent_defaults(self):
        config = AscentConfig()
        assert config.target_apoapsis == 80_000.0
        assert config.curve_model is CurveModel.CIRCULAR
        assert config.tick_period == 0.25
        assert config.max_dynamic_pressure == 10.0
        assert not config.decouple_stages

    def test_maneuver_defaults(self):
        config = ManeuverConfig()
        assert config.orient_tolerance == 3.0
        assert config.warp_threshold == 30.0
        assert config.burn_period == 0.025
        assert config.completion_threshold == 0.5
        assert config.fine_completion_threshold == 2.0
        assert config.rcs_floor == 0.2

    def test_frozen(self):
        config = AscentConfig()
        with pytest.raises(AttributeError):
            config.heading = 10.0


# =============================================================================
# Command Mapping Tests
# =============================================================================


class TestCommandParameters:
    """Conversion of the parsed command mapping."""

    def test_liftoff_from_strings(self):
        params = CommandParameters.from_mapping({
            "apoapsis": "85000",
            "heading": "90",
            "roll": "45",
            "curve": "Quadratic",
            "decouple": "true",
            "deploy": "false",
        })
        assert params.module is Module.LIFTOFF
        assert params.ascent.target_apoapsis == 85_000.0
        assert params.ascent.roll == 45.0
        assert params.ascent.curve_model is CurveModel.QUADRATIC
        assert params.ascent.decouple_stages
        assert not params.ascent.deploy_panels

    def test_clamps_applied(self):
        params = CommandParameters.from_mapping({"apoapsis": "5000", "heading": "400"})
        assert params.ascent.target_apoapsis == 10_000.0
        assert params.ascent.heading == 360.0

    def test_maneuver_selected_by_function(self):
        params = CommandParameters.from_mapping({"function": "adjust", "fine_adjust": "1"})
        assert params.module is Module.MANEUVER
        assert params.maneuver.function is ManeuverFunction.ADJUST
        assert params.maneuver.fine_adjustment

    def test_explicit_module(self):
        params = CommandParameters.from_mapping({"module": "maneuver"})
        assert params.module is Module.MANEUVER
        assert params.maneuver.function is ManeuverFunction.APOAPSIS

    def test_native_values(self):
        params = CommandParameters.from_mapping({
            "apoapsis": 90_000,
            "curve": CurveModel.CUBIC,
            "decouple": True,
        })
        assert params.ascent.target_apoapsis == 90_000.0
        assert params.ascent.curve_model is CurveModel.CUBIC
        assert params.ascent.decouple_stages

    def test_empty_mapping(self):
        params = CommandParameters.from_mapping({})
        assert params == CommandParameters()

    def test_unknown_curve(self):
        with pytest.raises(ValueError, match="Unknown curve model"):
            CommandParameters.from_mapping({"curve": "linear"})

    def test_bad_number(self):
        with pytest.raises(ValueError, match="'apoapsis' is not a number"):
            CommandParameters.from_mapping({"apoapsis": "high"})
