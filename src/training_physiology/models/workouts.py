"""Workout value objects consumed by the estimators."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting snake_case or camelCase."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass(frozen=True)
class SplitRecord:
    """One per-mile (or per-lap) split within a workout."""

    split_number: int  # 1-based
    distance_miles: float
    duration_seconds: float
    pace_seconds_per_mile: float
    heart_rate: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SplitRecord":
        return cls(
            split_number=int(_pick(data, "split_number", "splitNumber", default=0)),
            distance_miles=float(_pick(data, "distance_miles", "distanceMiles", default=0.0)),
            duration_seconds=float(_pick(data, "duration_seconds", "durationSeconds", default=0.0)),
            pace_seconds_per_mile=float(
                _pick(data, "pace_seconds_per_mile", "paceSecondsPerMile", "pace", default=0.0)
            ),
            heart_rate=_pick(data, "heart_rate", "heartRate", "avg_hr"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "split_number": self.split_number,
            "distance_miles": self.distance_miles,
            "duration_seconds": self.duration_seconds,
            "pace_seconds_per_mile": self.pace_seconds_per_mile,
            "heart_rate": self.heart_rate,
        }


@dataclass(frozen=True)
class WorkoutRecord:
    """
    A completed run as supplied by the data-acquisition layer.

    Units are physical: miles, seconds, feet and beats per minute. The record
    is never modified by the engine; implausible records are filtered out.
    """

    date: date
    distance_miles: float
    duration_seconds: float
    average_pace_seconds_per_mile: float
    average_heart_rate: Optional[float] = None
    max_heart_rate: Optional[float] = None
    elevation_gain_feet: Optional[float] = None
    splits: List[SplitRecord] = field(default_factory=list)
    workout_type: Optional[str] = None
    id: Optional[str] = None

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60

    @property
    def elevation_gain_per_mile(self) -> Optional[float]:
        """Feet climbed per mile, or None when elevation was not recorded."""
        if self.elevation_gain_feet is None or self.distance_miles <= 0:
            return None
        return self.elevation_gain_feet / self.distance_miles

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkoutRecord":
        """
        Build a record from an exported dictionary.

        Missing average pace is derived from duration and distance.
        """
        distance = float(_pick(data, "distance_miles", "distanceMiles", default=0.0))
        duration = float(_pick(data, "duration_seconds", "durationSeconds", default=0.0))
        pace = _pick(data, "average_pace_seconds_per_mile", "avgPaceSeconds", "averagePaceSecondsPerMile")
        if pace is None:
            pace = duration / distance if distance > 0 else 0.0

        return cls(
            date=_parse_date(_pick(data, "date", "workout_date", "workoutDate")),
            distance_miles=distance,
            duration_seconds=duration,
            average_pace_seconds_per_mile=float(pace),
            average_heart_rate=_pick(data, "average_heart_rate", "avgHr", "averageHeartRate"),
            max_heart_rate=_pick(data, "max_heart_rate", "maxHr", "maxHeartRate"),
            elevation_gain_feet=_pick(data, "elevation_gain_feet", "elevationGainFeet"),
            splits=[SplitRecord.from_dict(s) for s in _pick(data, "splits", default=[])],
            workout_type=_pick(data, "workout_type", "workoutType"),
            id=_pick(data, "id"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "distance_miles": self.distance_miles,
            "duration_seconds": self.duration_seconds,
            "average_pace_seconds_per_mile": self.average_pace_seconds_per_mile,
            "average_heart_rate": self.average_heart_rate,
            "max_heart_rate": self.max_heart_rate,
            "elevation_gain_feet": self.elevation_gain_feet,
            "workout_type": self.workout_type,
            "splits": [s.to_dict() for s in self.splits],
        }


@dataclass
class DailyLoad:
    """Training load for one calendar day (0 on rest days)."""

    date: date
    load: float

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "load": self.load}
