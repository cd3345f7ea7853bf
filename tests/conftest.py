"""Shared builders for synthetic training logs."""

from datetime import date, timedelta
from typing import List, Optional

import pytest

from training_physiology.models.workouts import SplitRecord, WorkoutRecord

AS_OF = date(2024, 6, 30)


def build_splits(
    pace: float,
    count: int,
    heart_rate: Optional[float] = None,
    drift: float = 0.0,
) -> List[SplitRecord]:
    """
    Whole-mile splits at a fixed pace.

    With a heart rate, first-half splits sit at ``heart_rate`` and
    second-half splits at ``heart_rate * (1 + drift)``.
    """
    splits = []
    for i in range(count):
        hr = None
        if heart_rate is not None:
            hr = heart_rate if i < count // 2 else heart_rate * (1 + drift)
        splits.append(SplitRecord(
            split_number=i + 1,
            distance_miles=1.0,
            duration_seconds=pace,
            pace_seconds_per_mile=pace,
            heart_rate=hr,
        ))
    return splits


def build_workout(
    days_ago: int,
    pace: float,
    minutes: Optional[float] = None,
    miles: Optional[float] = None,
    heart_rate: Optional[float] = None,
    elevation_gain_feet: Optional[float] = None,
    splits: Optional[List[SplitRecord]] = None,
    workout_type: Optional[str] = None,
) -> WorkoutRecord:
    """A workout ``days_ago`` days before AS_OF, sized by minutes or miles."""
    if minutes is not None:
        duration = minutes * 60
        distance = duration / pace
    else:
        distance = miles
        duration = miles * pace
    return WorkoutRecord(
        date=AS_OF - timedelta(days=days_ago),
        distance_miles=distance,
        duration_seconds=duration,
        average_pace_seconds_per_mile=pace,
        average_heart_rate=heart_rate,
        elevation_gain_feet=elevation_gain_feet,
        splits=splits or [],
        workout_type=workout_type,
    )


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def make_workout():
    return build_workout


@pytest.fixture
def make_splits():
    return build_splits


@pytest.fixture
def threshold_log() -> List[WorkoutRecord]:
    """
    Twenty plausible workouts around a 420 s/mile threshold.

    - 12 easy runs at 520-540 s/mile, HR 140, no drift
    - 3 steady 8-mile runs at 470 s/mile, HR 152, 2% drift
    - 5 flat 30-minute threshold runs at 415-425 s/mile, HR 164, 6% drift
    """
    workouts = []
    easy_paces = [520, 522, 524, 526, 528, 530, 532, 534, 536, 538, 540, 530]
    for i, pace in enumerate(easy_paces):
        workouts.append(build_workout(
            days_ago=2 + i * 7,
            pace=pace,
            miles=5,
            heart_rate=140,
            splits=build_splits(pace, 5, heart_rate=140),
        ))

    for i in range(3):
        workouts.append(build_workout(
            days_ago=5 + i * 21,
            pace=470,
            miles=8,
            heart_rate=152,
            splits=build_splits(470, 8, heart_rate=150, drift=0.02),
        ))

    for i, pace in enumerate([415, 418, 420, 422, 425]):
        workouts.append(build_workout(
            days_ago=4 + i * 14,
            pace=pace,
            minutes=30,
            heart_rate=164,
            elevation_gain_feet=30,
            splits=build_splits(pace, 4, heart_rate=160, drift=0.06),
        ))

    return workouts
