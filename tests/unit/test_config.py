"""Unit tests for job graph configuration management.

Tests AppConfig loading from environment variables, validation, and defaults.
"""

from __future__ import annotations

import pytest

from jobgraph.config import AppConfig, ThresholdConfig, get_config


class TestAppConfig:
    """Test AppConfig creation and validation."""

    def test_from_env_defaults(self):
        config = AppConfig.from_env()

        assert config.log_level == "DEBUG"  # set by the autouse fixture
        assert config.log_format == "text"
        assert config.thresholds.milestone_complete_min_confidence == 80
        assert config.thresholds.readiness_min_confidence == 70
        assert config.thresholds.contradiction_critical_min_confidence == 50
        assert config.thresholds.heat_pump_min_fuse_amps == 80

    def test_from_env_with_custom_thresholds(self, monkeypatch):
        monkeypatch.setenv("MILESTONE_COMPLETE_MIN_CONFIDENCE", "90")
        monkeypatch.setenv("READINESS_MIN_CONFIDENCE", "60")
        monkeypatch.setenv("HEAT_PUMP_MIN_FUSE_AMPS", "100")

        config = AppConfig.from_env()

        assert config.thresholds.milestone_complete_min_confidence == 90
        assert config.thresholds.readiness_min_confidence == 60
        assert config.thresholds.heat_pump_min_fuse_amps == 100

    def test_from_env_json_logging(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")

        assert AppConfig.from_env().log_format == "json"

    def test_non_integer_threshold_rejected(self, monkeypatch):
        monkeypatch.setenv("READINESS_MIN_CONFIDENCE", "high")

        with pytest.raises(ValueError) as exc_info:
            AppConfig.from_env()

        assert "READINESS_MIN_CONFIDENCE must be an integer" in str(exc_info.value)

    def test_out_of_range_threshold_rejected(self, monkeypatch):
        monkeypatch.setenv("MILESTONE_COMPLETE_MIN_CONFIDENCE", "120")

        with pytest.raises(ValueError, match="between 0 and 100"):
            AppConfig.from_env()


class TestThresholdConfig:
    def test_defaults(self):
        thresholds = ThresholdConfig()
        assert thresholds.milestone_complete_min_confidence == 80
        assert thresholds.readiness_min_confidence == 70

    def test_negative_confidence_rejected(self):
        with pytest.raises(ValueError):
            ThresholdConfig(readiness_min_confidence=-1)

    def test_non_positive_fuse_rejected(self):
        with pytest.raises(ValueError, match="heat_pump_min_fuse_amps"):
            ThresholdConfig(heat_pump_min_fuse_amps=0)


class TestGetConfig:
    def test_singleton(self):
        assert get_config() is get_config()

    def test_reads_environment_once(self, monkeypatch):
        monkeypatch.setenv("HEAT_PUMP_MIN_FUSE_AMPS", "63")
        first = get_config()
        monkeypatch.setenv("HEAT_PUMP_MIN_FUSE_AMPS", "100")

        assert get_config().thresholds.heat_pump_min_fuse_amps == 63
        assert get_config() is first
