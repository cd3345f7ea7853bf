"""Data models for the training physiology engine."""

from .workouts import DailyLoad, SplitRecord, WorkoutRecord

__all__ = [
    "DailyLoad",
    "SplitRecord",
    "WorkoutRecord",
]
