"""Tests for the Fitness-Fatigue model."""

import math
from datetime import date, timedelta

import pytest

from training_physiology.config import DEFAULT_CONFIG
from training_physiology.exceptions import ErrorCode, ValidationError
from training_physiology.metrics.fitness import (
    FitnessMetric,
    assess_ramp_rate,
    build_fitness_series,
    calculate_ewma,
    calculate_fitness_metrics,
    calculate_optimal_load_range,
    calculate_ramp_rate,
    calculate_rolling_load,
    determine_risk_zone,
    fill_daily_load_gaps,
    get_fitness_status,
    get_training_recommendation,
    weekly_load_rollup,
)
from training_physiology.models.workouts import DailyLoad

START = date(2024, 1, 1)


def series(*loads, start=START):
    return [DailyLoad(start + timedelta(days=i), load) for i, load in enumerate(loads)]


class TestEWMA:
    """Tests for the exponential moving average."""

    def test_decay_formula(self):
        """EWMA_n = EWMA_{n-1} * e^(-1/tau) + value * (1 - e^(-1/tau))."""
        decay = math.exp(-1 / 7)
        assert calculate_ewma(100, 0, 7) == pytest.approx(100 * (1 - decay))
        assert calculate_ewma(0, 100, 7) == pytest.approx(100 * decay)

    def test_steady_input_is_fixed_point(self):
        assert calculate_ewma(50, 50, 42) == pytest.approx(50)

    def test_short_time_constant_reacts_faster(self):
        assert calculate_ewma(100, 0, 7) > calculate_ewma(100, 0, 42)


class TestFitnessMetrics:
    """Tests for CTL/ATL/TSB/ACWR series."""

    def test_constant_load_is_balanced(self):
        """CTL and ATL equal a constant load and TSB stays 0."""
        metrics = calculate_fitness_metrics(series(*[50] * 30))

        assert len(metrics) == 30
        for m in metrics:
            assert m.ctl == 50
            assert m.atl == 50
            assert m.tsb == 0
            assert m.acwr == 1.0
            assert m.risk_zone == "optimal"

    def test_spike_raises_fatigue_faster_than_fitness(self):
        """A hard day lifts ATL more than CTL, and form drops the day after."""
        metrics = calculate_fitness_metrics(series(*([50] * 10 + [200, 0])))
        before, spike, after = metrics[9], metrics[10], metrics[11]

        assert spike.atl - before.atl > spike.ctl - before.ctl
        assert spike.tsb == 0, "Today's load must not change today's form"
        assert after.tsb < 0
        assert spike.acwr > 1.0

    def test_first_day_tsb_is_zero(self):
        metrics = calculate_fitness_metrics(series(120, 0, 0))
        assert metrics[0].tsb == 0
        assert metrics[0].ctl == 120
        assert metrics[0].atl == 120

    def test_small_chronic_base_has_neutral_acwr(self):
        """ACWR is pinned to 1.0 while CTL is 10 or below."""
        metrics = calculate_fitness_metrics(series(5, 20, 0))
        assert all(m.acwr == 1.0 for m in metrics)

    def test_unsorted_input_is_ordered(self):
        loads = series(10, 20, 30)
        metrics = calculate_fitness_metrics(list(reversed(loads)))
        assert [m.date for m in metrics] == [d.date for d in loads]

    def test_gap_raises(self):
        """A missing day is a caller error."""
        loads = [DailyLoad(START, 50), DailyLoad(START + timedelta(days=2), 50)]
        with pytest.raises(ValidationError) as exc_info:
            calculate_fitness_metrics(loads)
        assert exc_info.value.code == ErrorCode.LOAD_SERIES_GAP

    def test_duplicate_day_raises(self):
        loads = [DailyLoad(START, 50), DailyLoad(START, 30), DailyLoad(START + timedelta(days=1), 50)]
        with pytest.raises(ValidationError):
            calculate_fitness_metrics(loads)

    def test_empty(self):
        assert calculate_fitness_metrics([]) == []

    def test_custom_time_constants(self):
        """A shorter chronic constant tracks a change faster."""
        loads = series(*([50] * 5 + [100] * 5))
        default = calculate_fitness_metrics(loads)
        fast = calculate_fitness_metrics(loads, DEFAULT_CONFIG.with_overrides(ctl_time_constant=14))
        assert fast[-1].ctl > default[-1].ctl

    def test_to_dict(self):
        data = calculate_fitness_metrics(series(50))[0].to_dict()
        assert data["date"] == "2024-01-01"
        assert set(data) == {"date", "daily_load", "ctl", "atl", "tsb", "acwr", "risk_zone"}


class TestFillDailyLoadGaps:
    """Tests for building a contiguous daily series."""

    def test_sums_and_zero_fills(self):
        loads = [
            DailyLoad(START, 10),
            DailyLoad(START, 5),
            DailyLoad(START + timedelta(days=3), 20),
            DailyLoad(START + timedelta(days=10), 99),
        ]
        filled = fill_daily_load_gaps(loads, START, START + timedelta(days=4))

        assert [d.load for d in filled] == [15, 0, 0, 20, 0]
        assert [d.date for d in filled] == [START + timedelta(days=i) for i in range(5)]

    def test_single_day_range(self):
        filled = fill_daily_load_gaps([], START, START)
        assert len(filled) == 1
        assert filled[0].load == 0

    def test_inverted_range_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            fill_daily_load_gaps([], START, START - timedelta(days=1))
        assert exc_info.value.code == ErrorCode.INVALID_DATE_RANGE


class TestBuildFitnessSeries:
    """Tests for workouts to fitness metrics."""

    def test_rest_days_are_filled(self, make_workout):
        workouts = [
            make_workout(days_ago=10, pace=600, miles=6, workout_type="easy"),
            make_workout(days_ago=7, pace=600, miles=6, workout_type="easy"),
        ]
        metrics = build_fitness_series(workouts)

        assert len(metrics) == 4
        assert [m.daily_load for m in metrics] == [36.0, 0, 0, 36.0]

    def test_explicit_range(self, make_workout, as_of):
        workouts = [make_workout(days_ago=3, pace=600, miles=6, workout_type="easy")]
        metrics = build_fitness_series(workouts, start=as_of - timedelta(days=6), end=as_of)

        assert len(metrics) == 7
        assert metrics[0].daily_load == 0
        assert metrics[3].daily_load == 36.0

    def test_no_workouts(self):
        assert build_fitness_series([]) == []


class TestRiskAndStatus:
    """Tests for risk zones, form labels and recommendations."""

    @pytest.mark.parametrize("acwr,zone", [
        (0.5, "undertrained"),
        (1.0, "optimal"),
        (1.3, "optimal"),
        (1.4, "caution"),
        (1.6, "danger"),
    ])
    def test_risk_zone(self, acwr, zone):
        assert determine_risk_zone(acwr) == zone

    @pytest.mark.parametrize("tsb,status", [
        (25, "fresh"),
        (10, "race_ready"),
        (0, "training"),
        (-15, "fatigued"),
        (-30, "overreached"),
    ])
    def test_fitness_status(self, tsb, status):
        assert get_fitness_status(tsb) == status

    def test_recommendation_prioritises_risk(self):
        assert "injury risk" in get_training_recommendation(25, 1.6)
        assert "Fresh" in get_training_recommendation(25, 1.0)


class TestLoadPlanning:
    """Tests for ramp rate, rolling load and weekly rollups."""

    def make_metrics(self, ctls):
        return [
            FitnessMetric(START + timedelta(days=i), 50, ctl, 50, 0, 1.0, "optimal")
            for i, ctl in enumerate(ctls)
        ]

    def test_ramp_rate(self):
        """CTL rising 8 points over 4 weeks is 2 points per week."""
        metrics = self.make_metrics([40 + 8 * i / 28 for i in range(29)])
        assert calculate_ramp_rate(metrics) == 2.0

    def test_ramp_rate_needs_a_week(self):
        assert calculate_ramp_rate(self.make_metrics([40] * 7)) is None

    @pytest.mark.parametrize("rate,level", [
        (None, "insufficient_data"),
        (-1, "decreasing"),
        (3, "safe"),
        (6, "moderate"),
        (9, "elevated"),
        (12, "high"),
    ])
    def test_assess_ramp_rate(self, rate, level):
        assert assess_ramp_rate(rate) == level

    def test_optimal_load_range(self):
        assert calculate_optimal_load_range(50) == {"min": 280, "max": 420}

    def test_rolling_load(self):
        loads = series(*range(1, 11))
        assert calculate_rolling_load(loads, days=3) == 27

    def test_weekly_rollup(self):
        """Weeks are keyed by Monday."""
        monday = date(2024, 6, 24)
        loads = [
            DailyLoad(monday, 10),
            DailyLoad(monday + timedelta(days=6), 20),
            DailyLoad(monday + timedelta(days=7), 5),
        ]
        weeks = weekly_load_rollup(loads)

        assert [(w.date, w.load) for w in weeks] == [
            (monday, 30),
            (monday + timedelta(days=7), 5),
        ]
