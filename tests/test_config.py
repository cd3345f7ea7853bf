"""Tests for engine configuration, settings and exceptions."""

import pydantic
import pytest

from training_physiology.config import DEFAULT_CONFIG, EngineConfig, Settings
from training_physiology.exceptions import (
    ConfigurationError,
    ErrorCode,
    TrainingPhysiologyError,
    UnknownDistanceError,
    ValidationError,
)


class TestEngineConfig:
    """Tests for the immutable engine configuration."""

    def test_defaults(self):
        assert DEFAULT_CONFIG.min_pace_seconds == 180
        assert DEFAULT_CONFIG.max_pace_seconds == 900
        assert DEFAULT_CONFIG.lookback_days == 180
        assert DEFAULT_CONFIG.ctl_time_constant == 42
        assert DEFAULT_CONFIG.atl_time_constant == 7
        assert DEFAULT_CONFIG.solver_max_iterations == 10

    def test_is_frozen(self):
        """Shared configuration cannot be mutated in place."""
        with pytest.raises(pydantic.ValidationError):
            DEFAULT_CONFIG.lookback_days = 30

    def test_with_overrides_returns_new_copy(self):
        config = DEFAULT_CONFIG.with_overrides(lookback_days=90, max_pace_cv=0.08)

        assert config.lookback_days == 90
        assert config.max_pace_cv == 0.08
        assert DEFAULT_CONFIG.lookback_days == 180

    def test_inverted_window_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            DEFAULT_CONFIG.with_overrides(min_effort_duration_seconds=3000)
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
        assert exc_info.value.details["errors"]

    def test_unknown_field_rejected(self):
        with pytest.raises(ConfigurationError):
            DEFAULT_CONFIG.with_overrides(threshold_magic=1)

    def test_out_of_range_value_rejected(self):
        with pytest.raises(ConfigurationError):
            DEFAULT_CONFIG.with_overrides(solver_max_iterations=0)

    def test_direct_construction_validates(self):
        with pytest.raises(pydantic.ValidationError):
            EngineConfig(min_pace_seconds=600, max_pace_seconds=500)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("TRAINING_PHYSIOLOGY_LOOKBACK_DAYS", "90")
        monkeypatch.setenv("TRAINING_PHYSIOLOGY_LOG_LEVEL", "DEBUG")

        settings = Settings()

        assert settings.lookback_days == 90
        assert settings.log_level == "DEBUG"
        assert settings.engine_config().lookback_days == 90

    def test_defaults_match_engine(self, monkeypatch):
        monkeypatch.delenv("TRAINING_PHYSIOLOGY_LOOKBACK_DAYS", raising=False)
        config = Settings(_env_file=None).engine_config()
        assert config.ctl_time_constant == DEFAULT_CONFIG.ctl_time_constant
        assert config.atl_time_constant == DEFAULT_CONFIG.atl_time_constant

    def test_env_file_read_and_unknown_keys_ignored(self, monkeypatch, tmp_path):
        """A .env file supplies prefixed values; unrelated prefixed keys are ignored."""
        monkeypatch.delenv("TRAINING_PHYSIOLOGY_LOOKBACK_DAYS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text(
            "TRAINING_PHYSIOLOGY_LOOKBACK_DAYS=60\nTRAINING_PHYSIOLOGY_UNUSED_OPTION=1\n"
        )

        settings = Settings(_env_file=env_file)

        assert settings.lookback_days == 60
        assert Settings.model_config["env_prefix"] == "TRAINING_PHYSIOLOGY_"
        assert Settings.model_config["extra"] == "ignore"


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_to_dict(self):
        error = ValidationError("bad time", field="time_seconds", code=ErrorCode.INVALID_PERFORMANCE)
        data = error.to_dict()

        assert data["error"]["code"] == "INVALID_PERFORMANCE"
        assert data["error"]["message"] == "bad time"
        assert data["error"]["details"] == {"field": "time_seconds"}

    def test_hierarchy(self):
        error = UnknownDistanceError("ultra")

        assert isinstance(error, ValidationError)
        assert isinstance(error, TrainingPhysiologyError)
        assert isinstance(error, ValueError)
        assert error.details["label"] == "ultra"

    def test_repr(self):
        assert repr(ConfigurationError("broken")) == (
            "ConfigurationError(code=CONFIGURATION_ERROR, message='broken')"
        )
