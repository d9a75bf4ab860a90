"""
Unit tests for the daily decay rule.

Tests:
- Activity coupling curve
- Daily decay amount
- Multi-day catch-up and the zero floor
"""

import math

import pytest

from meditrack.services.mastery.decay import (
    DecayParams,
    activity_coupling,
    daily_decay_amount,
    decay_cumulative,
)


class TestActivityCoupling:
    """Tests for activity_coupling."""

    def test_no_decay_on_practice_day(self, decay_params):
        assert activity_coupling(0, decay_params) == pytest.approx(0.0, abs=1e-12)

    def test_practice_elsewhere_today_cancels_decay(self, decay_params):
        """An idle technique loses nothing on a day another one was practiced."""
        assert daily_decay_amount(10000, 10, 0, decay_params) == pytest.approx(0.0, abs=1e-9)

    def test_partial_damping(self):
        params = DecayParams(activity_damping=0.5)
        assert activity_coupling(0, params) == pytest.approx(0.5)

    def test_strictly_increasing_with_inactivity(self, decay_params):
        values = [activity_coupling(g, decay_params) for g in range(0, 30)]
        assert all(b > a for a, b in zip(values, values[1:]))

    def test_approaches_full_decay(self, decay_params):
        assert activity_coupling(30, decay_params) == pytest.approx(1.0, abs=1e-4)
        assert activity_coupling(30, decay_params) < 1.0

    def test_matches_formula(self, decay_params):
        assert activity_coupling(3, decay_params) == pytest.approx(1 - math.exp(-1))


class TestDailyDecayAmount:
    """Tests for daily_decay_amount."""

    def test_practiced_today_never_decays(self, decay_params):
        assert daily_decay_amount(10000, 0, 0, decay_params) == 0.0

    def test_backdated_future_practice_never_decays(self, decay_params):
        assert daily_decay_amount(10000, -2, 0, decay_params) == 0.0

    def test_fraction_plus_fixed_minutes(self, decay_params):
        """(1000 × 1% + 5) scaled by the coupling."""
        amount = daily_decay_amount(1000, 4, 4, decay_params)
        assert amount == pytest.approx(15.0 * activity_coupling(4, decay_params))

    def test_recent_practice_elsewhere_slows_decay(self, decay_params):
        """Practicing another technique yesterday shrinks the decay."""
        active = daily_decay_amount(1000, 10, 1, decay_params)
        idle = daily_decay_amount(1000, 10, 10, decay_params)
        assert active < idle


class TestDecayCumulative:
    """Tests for decay_cumulative."""

    @pytest.mark.parametrize(
        "cumulative,technique_idle,global_idle,days",
        [
            (0.0, 5, 5, 1),
            (3.0, 5, 5, 1),
            (10.0, 30, 30, 30),
            (500.0, 100, 100, 30),
        ],
        ids=["empty", "tiny", "small_catchup", "long_absence"],
    )
    def test_never_negative(self, cumulative, technique_idle, global_idle, days, decay_params):
        result = decay_cumulative(cumulative, technique_idle, global_idle, days, decay_params)
        assert result >= 0.0

    def test_tiny_record_floors_at_zero(self, decay_params):
        assert decay_cumulative(3.0, 10, 10, 1, decay_params) == 0.0

    def test_practiced_today_unchanged(self, decay_params):
        assert decay_cumulative(2500.0, 0, 0, 1, decay_params) == 2500.0

    def test_single_day(self, decay_params):
        expected = 2500.0 - daily_decay_amount(2500.0, 2, 2, decay_params)
        assert decay_cumulative(2500.0, 2, 2, 1, decay_params) == pytest.approx(expected)

    def test_catch_up_applies_oldest_day_first(self, decay_params):
        """Three missed days use idle counts 1, 2 and 3 in order."""
        value = 2500.0
        for idle in (1, 2, 3):
            value -= daily_decay_amount(value, idle, idle, decay_params)

        assert decay_cumulative(2500.0, 3, 3, 3, decay_params) == pytest.approx(value)

    def test_catch_up_skips_days_before_practice(self, decay_params):
        """Days on or before the last practice contribute no decay."""
        # Practiced yesterday; catching up 3 days only decays today
        one_day = decay_cumulative(2500.0, 1, 1, 1, decay_params)
        assert decay_cumulative(2500.0, 1, 1, 3, decay_params) == pytest.approx(one_day)

    def test_catch_up_is_capped(self):
        params = DecayParams(max_catchup_days=2)
        capped = decay_cumulative(5000.0, 50, 50, 10, params)
        two_days = decay_cumulative(5000.0, 50, 50, 2, params)
        assert capped == pytest.approx(two_days)

    def test_zero_days_is_noop(self, decay_params):
        assert decay_cumulative(1234.0, 5, 5, 0, decay_params) == 1234.0
