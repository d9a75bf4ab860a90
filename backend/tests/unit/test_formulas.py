"""
Unit tests for the mastery formulas.

Tests the pure calculator functions:
- Duration multiplier curve
- Streak multiplier
- Effective minutes
- Logistic mastery curve
"""

import math

import pytest

from meditrack.services.mastery.formulas import (
    CurveParams,
    duration_multiplier,
    effective_minutes,
    mastery_from_minutes,
    streak_multiplier,
)


# ============================================================================
# Duration Multiplier Tests
# ============================================================================


class TestDurationMultiplier:
    """Tests for duration_multiplier."""

    @pytest.mark.parametrize(
        "minutes",
        [0.5, 1, 10, 20, 29.9, 30],
        ids=["half_minute", "one", "ten", "twenty", "just_below", "baseline"],
    )
    def test_flat_up_to_baseline(self, minutes, curve_params):
        """Sessions up to 30 minutes earn no duration bonus."""
        assert duration_multiplier(minutes, curve_params) == 1.0

    def test_peak_at_59_minutes(self, curve_params):
        """A 59-minute session earns the 1.8x peak."""
        assert duration_multiplier(59, curve_params) == pytest.approx(1.8)

    def test_linear_between_baseline_and_peak(self, curve_params):
        """Half way between 30 and 59 minutes earns half the bonus."""
        assert duration_multiplier(44.5, curve_params) == pytest.approx(1.4)

    def test_keeps_rising_past_peak(self, curve_params):
        """The curve is not capped after the peak duration."""
        assert duration_multiplier(90, curve_params) > duration_multiplier(59, curve_params)
        assert duration_multiplier(88, curve_params) == pytest.approx(1.0 + 0.8 / 29 * 58)

    def test_monotonic_non_decreasing(self, curve_params):
        """Longer sessions never earn a smaller multiplier."""
        values = [duration_multiplier(d / 4, curve_params) for d in range(0, 600)]
        assert all(b >= a for a, b in zip(values, values[1:]))

    def test_custom_params(self):
        """Curve constants can be overridden."""
        params = CurveParams(baseline_minutes=10, peak_minutes=20, peak_multiplier=2.0)
        assert duration_multiplier(10, params) == 1.0
        assert duration_multiplier(20, params) == pytest.approx(2.0)


# ============================================================================
# Streak Multiplier Tests
# ============================================================================


class TestStreakMultiplier:
    """Tests for streak_multiplier."""

    def test_zero_streak_is_neutral(self, curve_params):
        assert streak_multiplier(0, curve_params) == 1.0

    @pytest.mark.parametrize("streak", [1, 2, 5, 10, 30])
    def test_compounds_five_percent_per_day(self, streak, curve_params):
        assert streak_multiplier(streak, curve_params) == pytest.approx(1.05**streak)

    def test_strictly_increasing(self, curve_params):
        values = [streak_multiplier(n, curve_params) for n in range(50)]
        assert all(b > a for a, b in zip(values, values[1:]))

    def test_negative_streak_rejected(self, curve_params):
        with pytest.raises(ValueError):
            streak_multiplier(-1, curve_params)


# ============================================================================
# Effective Minutes Tests
# ============================================================================


class TestEffectiveMinutes:
    """Tests for effective_minutes."""

    @pytest.mark.parametrize("minutes", [1, 5, 12.5, 20, 30])
    def test_short_sessions_without_streak_count_exactly(self, minutes, curve_params):
        """For d <= 30 and streak 0 the session counts minute for minute."""
        assert effective_minutes(minutes, 0, curve_params) == minutes

    def test_long_session_with_streak(self, curve_params):
        """59 minutes at streak 5: 59 × 1.8 × 1.05^5 ≈ 135.5."""
        delta = effective_minutes(59, 5, curve_params)
        assert delta == pytest.approx(59 * 1.8 * 1.05**5)
        assert delta == pytest.approx(135.54, abs=0.01)

    def test_result_is_non_negative(self, curve_params):
        assert effective_minutes(0.01, 0, curve_params) > 0


# ============================================================================
# Mastery Curve Tests
# ============================================================================


class TestMasteryFromMinutes:
    """Tests for mastery_from_minutes."""

    def test_centre_of_curve_is_fifty(self, curve_params):
        assert mastery_from_minutes(50000, curve_params) == pytest.approx(50.0)

    def test_first_twenty_minutes(self, curve_params):
        """20 effective minutes land far down the curve."""
        expected = 100 / (1 + math.exp(49980 / 9000))
        assert mastery_from_minutes(20, curve_params) == pytest.approx(expected)
        assert mastery_from_minutes(20, curve_params) == pytest.approx(0.386, abs=0.001)

    def test_smallest_at_zero(self, curve_params):
        zero = mastery_from_minutes(0, curve_params)
        assert zero > 0
        assert zero < mastery_from_minutes(1, curve_params)

    def test_strictly_increasing(self, curve_params):
        values = [mastery_from_minutes(e * 1000.0, curve_params) for e in range(0, 150)]
        assert all(b > a for a, b in zip(values, values[1:]))

    @pytest.mark.parametrize("minutes", [0, 1, 50000, 200000, 1e7, 1e12])
    def test_bounded_below_one_hundred(self, minutes, curve_params):
        score = mastery_from_minutes(minutes, curve_params)
        assert 0 < score < 100

    def test_tends_to_one_hundred(self, curve_params):
        assert mastery_from_minutes(200000, curve_params) > 99.99

    @pytest.mark.parametrize(
        "minutes",
        [-0.001, -100, math.inf, math.nan],
        ids=["tiny_negative", "negative", "infinite", "nan"],
    )
    def test_invalid_minutes_rejected(self, minutes, curve_params):
        with pytest.raises(ValueError):
            mastery_from_minutes(minutes, curve_params)

    def test_defaults_come_from_settings(self):
        """Without explicit params the settings constants are used."""
        assert mastery_from_minutes(50000) == pytest.approx(50.0)
