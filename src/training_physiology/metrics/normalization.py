"""Workout filtering applied before any estimator runs.

Records that are incomplete or physiologically implausible are excluded,
never corrected, and never cause an exception. One bad export row must
not abort an analysis of the whole history.
"""

import logging
import math
from datetime import date, timedelta
from typing import Iterable, List, Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..models.workouts import SplitRecord, WorkoutRecord

logger = logging.getLogger(__name__)


def is_finite_number(value) -> bool:
    """True for real, finite numbers (bools and NaN excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def is_plausible_pace(pace, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """Pace within the plausible running band, in seconds per mile."""
    return (
        is_finite_number(pace)
        and config.min_pace_seconds <= pace <= config.max_pace_seconds
    )


def is_usable_workout(workout: WorkoutRecord, config: EngineConfig = DEFAULT_CONFIG) -> bool:
    """
    Check the basic usability invariant of a workout record.

    Distance and duration must be positive finite numbers and the average
    pace must lie in the plausible band.
    """
    if not isinstance(workout.date, date):
        return False
    if not is_finite_number(workout.distance_miles) or workout.distance_miles <= 0:
        return False
    if not is_finite_number(workout.duration_seconds) or workout.duration_seconds <= 0:
        return False
    return is_plausible_pace(workout.average_pace_seconds_per_mile, config)


def filter_valid_workouts(
    workouts: Iterable[WorkoutRecord],
    config: EngineConfig = DEFAULT_CONFIG,
    as_of: Optional[date] = None,
) -> List[WorkoutRecord]:
    """
    Keep workouts every estimator can trust.

    Args:
        workouts: Workout records in any order
        config: Engine tunables (pace band, minimum distance/duration, lookback)
        as_of: Reference date for the lookback window (defaults to today)

    Returns:
        Usable workouts within the lookback window, in input order
    """
    reference = as_of or date.today()
    earliest = reference - timedelta(days=config.lookback_days)

    valid = []
    for workout in workouts:
        if not is_usable_workout(workout, config):
            logger.debug(f"Excluding implausible workout {workout.id or workout.date}")
            continue
        if workout.distance_miles < config.min_distance_miles:
            logger.debug(f"Excluding short workout {workout.id or workout.date}")
            continue
        if workout.duration_seconds < config.min_duration_seconds:
            logger.debug(f"Excluding brief workout {workout.id or workout.date}")
            continue
        if workout.date < earliest or workout.date > reference:
            continue
        valid.append(workout)

    return valid


def valid_splits(splits: Iterable[SplitRecord]) -> List[SplitRecord]:
    """Splits with a finite, positive pace."""
    return [
        s for s in splits
        if is_finite_number(s.pace_seconds_per_mile) and s.pace_seconds_per_mile > 0
    ]


def has_heart_rate(value) -> bool:
    """True for a finite, positive heart rate."""
    return is_finite_number(value) and value > 0
