"""Configuration for the training physiology engine.

Two layers live here:

- ``EngineConfig``: the immutable set of tunable constants every estimator
  receives explicitly. Overrides produce a new validated copy, so
  concurrent callers never see each other's tweaks.
- ``Settings``: environment driven defaults (log level, lookback, EWMA time
  constants) for the command line front end.
"""

from functools import lru_cache
from typing import Any, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class EngineConfig(BaseModel):
    """Tunable constants for normalization, load and threshold detection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Normalization
    min_pace_seconds: float = Field(180.0, gt=0)
    max_pace_seconds: float = Field(900.0, gt=0)
    min_distance_miles: float = Field(0.5, ge=0)
    min_duration_seconds: float = Field(300.0, ge=0)
    lookback_days: int = Field(180, ge=1)

    # Threshold effort identification
    min_effort_duration_seconds: float = Field(20 * 60, gt=0)
    max_effort_duration_seconds: float = Field(40 * 60, gt=0)
    ideal_effort_duration_range: Tuple[float, float] = (25.0, 35.0)  # minutes
    max_pace_cv: float = Field(0.06, gt=0)
    max_elevation_gain_per_mile: float = Field(80.0, gt=0)
    flat_elevation_gain_per_mile: float = Field(30.0, ge=0)
    min_pace_ratio_vs_easy: float = Field(0.72, gt=0)
    max_pace_ratio_vs_easy: float = Field(0.92, gt=0)
    ideal_pace_ratio: float = Field(0.80, gt=0)
    easy_pace_percentile: float = Field(0.6, ge=0, le=1)
    hard_effort_heart_rate: float = Field(150.0, gt=0)

    # Heart-rate deflection
    min_deflection_points: int = Field(4, ge=3)
    pace_bin_seconds: float = Field(15.0, gt=0)
    deflection_window: int = Field(3, ge=2)
    deflection_sensitivity: float = Field(0.25, gt=0)
    deflection_baseline_fraction: float = Field(0.4, gt=0, le=1)
    min_baseline_speed_span_mph: float = Field(0.5, ge=0)

    # Sustainability boundary (HR drift)
    min_splits_for_drift: int = Field(3, ge=2)
    min_sustainable_duration_seconds: float = Field(20 * 60, ge=0)
    sustainable_drift: float = Field(0.05, gt=0)
    max_reliable_drift: float = Field(0.08, gt=0)
    max_pace_drift: float = Field(0.08, gt=0)
    min_drift_workouts: int = Field(3, ge=1)

    # Signal combination
    max_efforts_in_blend: int = Field(5, ge=1)
    recency_half_life_days: float = Field(60.0, gt=0)
    high_confidence_efforts: int = Field(3, ge=1)
    medium_confidence_efforts: int = Field(2, ge=1)

    # Training load
    ctl_time_constant: int = Field(42, ge=1)
    atl_time_constant: int = Field(7, ge=1)

    # VDOT solver
    solver_tolerance_seconds: float = Field(0.01, gt=0)
    solver_max_iterations: int = Field(10, ge=1)

    @model_validator(mode="after")
    def check_windows(self) -> "EngineConfig":
        """Reject inverted ranges."""
        if self.min_pace_seconds >= self.max_pace_seconds:
            raise ValueError("min_pace_seconds must be below max_pace_seconds")
        if self.min_effort_duration_seconds >= self.max_effort_duration_seconds:
            raise ValueError(
                "min_effort_duration_seconds must be below max_effort_duration_seconds"
            )
        low, high = self.ideal_effort_duration_range
        if low > high:
            raise ValueError("ideal_effort_duration_range must be (low, high)")
        if self.min_pace_ratio_vs_easy >= self.max_pace_ratio_vs_easy:
            raise ValueError("min_pace_ratio_vs_easy must be below max_pace_ratio_vs_easy")
        if self.sustainable_drift >= self.max_reliable_drift:
            raise ValueError("sustainable_drift must be below max_reliable_drift")
        if self.medium_confidence_efforts > self.high_confidence_efforts:
            raise ValueError("medium_confidence_efforts cannot exceed high_confidence_efforts")
        return self

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        """
        Return a copy with some tunables replaced.

        Unlike ``model_copy(update=...)`` the result is validated again.

        Raises:
            ConfigurationError: If a field is unknown or a value is invalid
        """
        data = self.model_dump()
        data.update(changes)
        try:
            return EngineConfig.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                "Invalid engine configuration",
                details={"errors": [err["msg"] for err in e.errors()]},
            ) from e


DEFAULT_CONFIG = EngineConfig()


class Settings(BaseSettings):
    """Settings loaded from environment variables (TRAINING_PHYSIOLOGY_*)."""

    model_config = SettingsConfigDict(
        env_prefix="TRAINING_PHYSIOLOGY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "WARNING"
    lookback_days: int = 180
    ctl_time_constant: int = 42
    atl_time_constant: int = 7

    def engine_config(self) -> EngineConfig:
        """Build the engine configuration these settings describe."""
        return DEFAULT_CONFIG.with_overrides(
            lookback_days=self.lookback_days,
            ctl_time_constant=self.ctl_time_constant,
            atl_time_constant=self.atl_time_constant,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
