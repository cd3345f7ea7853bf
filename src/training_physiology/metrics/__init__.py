"""Training physiology metrics calculations."""

from .normalization import filter_valid_workouts, is_usable_workout
from .solver import SolverResult, solve
from .stats import coefficient_of_variation
from .effort import (
    ClassificationContext,
    ClassifiedSplit,
    EffortCategory,
    classify_splits,
    compute_zone_distribution,
    derive_workout_type,
)
from .load import (
    INTENSITY_FACTORS,
    WorkoutType,
    calculate_workout_load,
    calculate_zone_weighted_load,
    daily_loads_from_workouts,
    workout_load,
)
from .fitness import (
    FitnessMetric,
    build_fitness_series,
    calculate_ewma,
    calculate_fitness_metrics,
    fill_daily_load_gaps,
)
from .vdot import (
    DataQuality,
    PaceZone,
    RaceDistance,
    RacePrediction,
    adjust_pace_zones_for_weather,
    pace_zones,
    predict_race,
    predict_race_times,
    race_time_from_vdot,
    vdot_from_performance,
    weather_pace_adjustment,
)
from .threshold import (
    ThresholdEstimate,
    ThresholdMethod,
    detect_threshold_pace,
    validate_against_vdot,
)

__all__ = [
    # Normalization
    "filter_valid_workouts",
    "is_usable_workout",
    # Solver
    "SolverResult",
    "solve",
    "coefficient_of_variation",
    # Effort classification
    "ClassificationContext",
    "ClassifiedSplit",
    "EffortCategory",
    "classify_splits",
    "compute_zone_distribution",
    "derive_workout_type",
    # Load
    "INTENSITY_FACTORS",
    "WorkoutType",
    "calculate_workout_load",
    "calculate_zone_weighted_load",
    "daily_loads_from_workouts",
    "workout_load",
    # Fitness model
    "FitnessMetric",
    "build_fitness_series",
    "calculate_ewma",
    "calculate_fitness_metrics",
    "fill_daily_load_gaps",
    # VDOT
    "DataQuality",
    "PaceZone",
    "RaceDistance",
    "RacePrediction",
    "adjust_pace_zones_for_weather",
    "pace_zones",
    "predict_race",
    "predict_race_times",
    "race_time_from_vdot",
    "vdot_from_performance",
    "weather_pace_adjustment",
    # Threshold
    "ThresholdEstimate",
    "ThresholdMethod",
    "detect_threshold_pace",
    "validate_against_vdot",
]
