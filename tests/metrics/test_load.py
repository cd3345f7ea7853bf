"""Tests for workout training load."""

import math

import pytest

from training_physiology.metrics.load import (
    INTENSITY_FACTORS,
    WorkoutType,
    calculate_workout_load,
    calculate_zone_weighted_load,
    daily_loads_from_workouts,
    resolve_workout_type,
    workout_load,
)


class TestWorkoutLoad:
    """Tests for single-workout load."""

    def test_easy_ninety_minutes_with_endurance_bonus(self):
        """90 minutes easy: 54 x 1.15 endurance bonus."""
        load = calculate_workout_load(90, WorkoutType.EASY)
        assert load == 62.1, f"Expected 62.1, got {load}"

    def test_reference_pace_is_neutral(self):
        """At 10:00/mile the pace adjustment is 1."""
        assert calculate_workout_load(60, "easy", distance_miles=6, avg_pace_seconds=600) == 36.0

    def test_faster_pace_costs_more(self):
        """8:00/mile scales load by sqrt(600/480)."""
        assert calculate_workout_load(60, "easy", distance_miles=7.5, avg_pace_seconds=480) == 40.2

    def test_missing_pace_is_not_scaled(self):
        """Without a pace or distance the load is duration x intensity."""
        assert calculate_workout_load(60, "easy", distance_miles=6, avg_pace_seconds=None) == 36.0
        assert calculate_workout_load(60, "easy", distance_miles=None, avg_pace_seconds=480) == 36.0

    def test_pace_outside_band_scales_like_the_edge(self):
        """Paces beyond 240-900 s/mile are clamped, not dropped."""
        assert calculate_workout_load(30, "tempo", 7.6, 235) == calculate_workout_load(30, "tempo", 7.5, 240)
        assert calculate_workout_load(60, "easy", 3.9, 920) == calculate_workout_load(60, "easy", 4, 900)
        assert calculate_workout_load(60, "easy", 3.6, 1000) == 29.4

    @pytest.mark.parametrize("workout_type", list(WorkoutType))
    def test_faster_pace_never_lowers_load(self, workout_type):
        """Across 180-1000 s/mile, running faster never reduces load."""
        paces = list(range(1000, 175, -5))
        loads = [calculate_workout_load(45, workout_type, 45 * 60 / p, p) for p in paces]
        for slower, faster, pace in zip(loads, loads[1:], paces[1:]):
            assert faster >= slower, f"Load fell from {slower} to {faster} at {pace}s/mi"

    @pytest.mark.parametrize("workout_type", list(WorkoutType))
    def test_longer_duration_never_lowers_load(self, workout_type):
        """For a fixed type and pace, load grows with duration."""
        loads = [calculate_workout_load(minutes, workout_type, minutes / 8, 480) for minutes in range(1, 241)]
        for shorter, longer in zip(loads, loads[1:]):
            assert longer >= shorter, f"Load fell from {shorter} to {longer}"

    @pytest.mark.parametrize("duration", [0, -30, math.nan, math.inf, None])
    def test_invalid_duration_is_zero(self, duration):
        assert calculate_workout_load(duration, "easy") == 0.0

    def test_intensity_ordering(self):
        """Harder workout types carry strictly larger factors."""
        ordered = [
            WorkoutType.RECOVERY,
            WorkoutType.EASY,
            WorkoutType.STEADY,
            WorkoutType.MARATHON,
            WorkoutType.TEMPO,
            WorkoutType.INTERVAL,
            WorkoutType.REPETITION,
        ]
        factors = [INTENSITY_FACTORS[t] for t in ordered]
        assert factors == sorted(set(factors))

    def test_harder_type_more_load(self):
        easy = calculate_workout_load(45, "easy")
        tempo = calculate_workout_load(45, "tempo")
        interval = calculate_workout_load(45, "interval")
        assert easy < tempo < interval

    def test_workout_type_parsing(self):
        """Aliases resolve and unknown labels fall back to other."""
        assert WorkoutType.from_string("Speed") == WorkoutType.INTERVAL
        assert WorkoutType.from_string("general aerobic") == WorkoutType.STEADY
        assert WorkoutType.from_string("cross-train") == WorkoutType.CROSS_TRAIN
        assert WorkoutType.from_string("yoga") == WorkoutType.OTHER
        assert WorkoutType.from_string(None) == WorkoutType.OTHER


class TestZoneWeightedLoad:
    """Tests for load from classified minutes."""

    def test_anomaly_minutes_carry_no_load(self):
        load = calculate_zone_weighted_load({"easy": 30, "tempo": 20, "anomaly": 5})
        assert load == 35.0

    def test_unknown_and_invalid_minutes_ignored(self):
        assert calculate_zone_weighted_load({"swim": 30, "easy": -5, "tempo": math.nan}) == 0.0


class TestResolveWorkoutType:
    """Tests for deciding which intensity applies to a workout."""

    def test_explicit_type_wins(self, make_workout, make_splits):
        workout = make_workout(days_ago=1, pace=500, miles=6,
                               splits=make_splits(500, 6), workout_type="tempo")
        assert resolve_workout_type(workout) == WorkoutType.TEMPO

    def test_classified_from_splits(self, make_workout, make_splits):
        """Uniform splits at the run's own pace classify as steady."""
        workout = make_workout(days_ago=1, pace=500, miles=6, splits=make_splits(500, 6))
        assert resolve_workout_type(workout) == WorkoutType.STEADY

    def test_no_splits_counts_as_easy(self, make_workout):
        workout = make_workout(days_ago=1, pace=500, miles=6)
        assert resolve_workout_type(workout) == WorkoutType.EASY

    def test_workout_load_uses_record_fields(self, make_workout):
        workout = make_workout(days_ago=1, pace=600, miles=6, workout_type="easy")
        assert workout_load(workout) == 36.0


class TestDailyLoads:
    """Tests for per-day load aggregation."""

    def test_same_day_loads_are_summed(self, make_workout):
        workouts = [
            make_workout(days_ago=1, pace=600, miles=6, workout_type="easy"),
            make_workout(days_ago=1, pace=600, miles=3, workout_type="easy"),
            make_workout(days_ago=3, pace=600, miles=6, workout_type="easy"),
        ]
        loads = daily_loads_from_workouts(workouts)

        assert len(loads) == 2
        assert loads[0].date < loads[1].date
        assert loads[0].load == 36.0
        assert loads[1].load == 54.0

    def test_unusable_workouts_skipped(self, make_workout):
        workouts = [
            make_workout(days_ago=1, pace=600, miles=6, workout_type="easy"),
            make_workout(days_ago=2, pace=100, miles=6, workout_type="easy"),
        ]
        assert len(daily_loads_from_workouts(workouts)) == 1
