"""Training load (TRIMP-like impulse) calculations for individual workouts."""

import logging
import math
from collections import defaultdict
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..config import DEFAULT_CONFIG, EngineConfig
from ..models.workouts import DailyLoad, WorkoutRecord
from .effort import ClassificationContext, classify_workout, compute_zone_distribution, derive_workout_type
from .normalization import is_finite_number, is_usable_workout

logger = logging.getLogger(__name__)

# Pace treated as neutral effort when scaling load by pace (10:00/mile)
REFERENCE_PACE_SECONDS = 600
MIN_SCALED_PACE_SECONDS = 240
MAX_SCALED_PACE_SECONDS = 900
ENDURANCE_BONUS_START_MINUTES = 60
ENDURANCE_BONUS_PER_MINUTE = 0.005


class WorkoutType(str, Enum):
    """Workout categories with an associated training intensity."""
    RECOVERY = "recovery"
    EASY = "easy"
    STEADY = "steady"
    LONG = "long"
    MARATHON = "marathon"
    TEMPO = "tempo"
    THRESHOLD = "threshold"
    INTERVAL = "interval"
    REPETITION = "repetition"
    RACE = "race"
    CROSS_TRAIN = "cross_train"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "WorkoutType":
        """Parse a workout type, falling back to OTHER for unknown labels."""
        if not value:
            return cls.OTHER
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {"speed": "interval", "vo2max": "interval", "general_aerobic": "steady"}
        try:
            return cls(aliases.get(normalized, normalized))
        except ValueError:
            return cls.OTHER


# Strictly increasing along recovery < easy < steady < marathon/long
# < tempo/threshold < interval < repetition
INTENSITY_FACTORS: Dict[WorkoutType, float] = {
    WorkoutType.RECOVERY: 0.5,
    WorkoutType.EASY: 0.6,
    WorkoutType.STEADY: 0.7,
    WorkoutType.LONG: 0.75,
    WorkoutType.MARATHON: 0.75,
    WorkoutType.TEMPO: 0.85,
    WorkoutType.THRESHOLD: 0.85,
    WorkoutType.INTERVAL: 1.0,
    WorkoutType.REPETITION: 1.1,
    WorkoutType.RACE: 1.05,
    WorkoutType.CROSS_TRAIN: 0.4,
    WorkoutType.OTHER: 0.6,
}

# Intensity per classified split category, used for zone-weighted load
ZONE_INTENSITY_FACTORS: Dict[str, float] = {
    "recovery": 0.5,
    "easy": 0.6,
    "warmup": 0.6,
    "cooldown": 0.6,
    "steady": 0.7,
    "marathon": 0.75,
    "tempo": 0.85,
    "threshold": 0.85,
    "interval": 1.0,
    "anomaly": 0.0,
}


def calculate_workout_load(
    duration_minutes: float,
    workout_type,
    distance_miles: Optional[float] = None,
    avg_pace_seconds: Optional[float] = None,
) -> float:
    """
    Calculate the training load of one workout.

    Load = duration x intensity factor, with two adjustments:
    - 0.5% bonus per minute beyond 60 minutes (endurance stress)
    - scaled by sqrt(600 / pace) when pace and distance are known, with
      pace clamped to 240-900 s/mile, so faster running never costs less

    Args:
        duration_minutes: Workout duration in minutes
        workout_type: WorkoutType or label such as "tempo"
        distance_miles: Distance, required for the pace adjustment
        avg_pace_seconds: Average pace in seconds per mile

    Returns:
        Load rounded to one decimal (0 for invalid durations)
    """
    if not is_finite_number(duration_minutes) or duration_minutes <= 0:
        return 0.0

    if not isinstance(workout_type, WorkoutType):
        workout_type = WorkoutType.from_string(workout_type)
    load = duration_minutes * INTENSITY_FACTORS[workout_type]

    if duration_minutes > ENDURANCE_BONUS_START_MINUTES:
        load *= 1 + (duration_minutes - ENDURANCE_BONUS_START_MINUTES) * ENDURANCE_BONUS_PER_MINUTE

    if (
        is_finite_number(distance_miles)
        and distance_miles > 0
        and is_finite_number(avg_pace_seconds)
        and avg_pace_seconds > 0
    ):
        # Pace outside the band scales like the nearest edge
        pace = min(max(avg_pace_seconds, MIN_SCALED_PACE_SECONDS), MAX_SCALED_PACE_SECONDS)
        load *= math.sqrt(REFERENCE_PACE_SECONDS / pace)

    return round(load, 1)


def calculate_zone_weighted_load(distribution: Dict[str, float]) -> float:
    """
    Load from minutes spent in each classified effort zone.

    Args:
        distribution: Minutes per zone, as from compute_zone_distribution

    Returns:
        Sum of minutes x zone intensity, rounded to one decimal
    """
    load = sum(
        minutes * ZONE_INTENSITY_FACTORS.get(zone, 0.0)
        for zone, minutes in distribution.items()
        if is_finite_number(minutes) and minutes > 0
    )
    return round(load, 1)


def resolve_workout_type(
    workout: WorkoutRecord,
    context: Optional[ClassificationContext] = None,
) -> WorkoutType:
    """
    Workout type for load purposes.

    An explicit type wins; otherwise the splits are classified and the
    dominant effort names the workout; without splits it counts as easy.
    """
    if workout.workout_type:
        return WorkoutType.from_string(workout.workout_type)
    if not workout.splits:
        return WorkoutType.EASY

    context = context or ClassificationContext(
        average_pace_seconds=workout.average_pace_seconds_per_mile
    )
    classified = classify_workout(workout.splits, context).splits
    distribution = compute_zone_distribution(classified, workout.splits)
    derived = derive_workout_type(distribution, None, workout.distance_miles)
    return WorkoutType.from_string(derived)


def workout_load(
    workout: WorkoutRecord,
    context: Optional[ClassificationContext] = None,
) -> float:
    """Training load of a workout record."""
    return calculate_workout_load(
        workout.duration_minutes,
        resolve_workout_type(workout, context),
        workout.distance_miles,
        workout.average_pace_seconds_per_mile,
    )


def daily_loads_from_workouts(
    workouts: Iterable[WorkoutRecord],
    config: EngineConfig = DEFAULT_CONFIG,
    context: Optional[ClassificationContext] = None,
) -> List[DailyLoad]:
    """
    Sum workout loads per calendar day (only days with workouts).

    Implausible records are skipped.
    """
    totals: Dict[date, float] = defaultdict(float)
    for workout in workouts:
        if not is_usable_workout(workout, config):
            logger.debug(f"Skipping unusable workout {workout.id or workout.date} for load")
            continue
        totals[workout.date] += workout_load(workout, context)

    return [DailyLoad(day, round(load, 1)) for day, load in sorted(totals.items())]
