"""Job graph configuration management.

Loads configuration from environment variables with sensible defaults.
Thresholds default to the values the survey team signs off against
(80% to complete a milestone, 70% for output readiness).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class ThresholdConfig:
    """Confidence and capacity thresholds used by the tracker and engines."""

    milestone_complete_min_confidence: int = 80
    readiness_min_confidence: int = 70
    contradiction_critical_min_confidence: int = 50  # Below this a contradiction is only a warning
    heat_pump_min_fuse_amps: int = 80

    def __post_init__(self) -> None:
        for name in (
            "milestone_complete_min_confidence",
            "readiness_min_confidence",
            "contradiction_critical_min_confidence",
        ):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got: {value}")
        if self.heat_pump_min_fuse_amps <= 0:
            raise ValueError(
                f"heat_pump_min_fuse_amps must be positive, got: {self.heat_pump_min_fuse_amps}"
            )


@dataclass
class AppConfig:
    """Root application configuration."""

    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Optional (with defaults):
        - LOG_LEVEL: Logging verbosity (default: "INFO")
        - LOG_FORMAT: "json" or "text" (default: "text")
        - MILESTONE_COMPLETE_MIN_CONFIDENCE (default: 80)
        - READINESS_MIN_CONFIDENCE (default: 70)
        - CONTRADICTION_CRITICAL_MIN_CONFIDENCE (default: 50)
        - HEAT_PUMP_MIN_FUSE_AMPS (default: 80)

        Raises:
            ValueError: If a threshold is not an integer or is out of range
        """
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            thresholds=ThresholdConfig(
                milestone_complete_min_confidence=_get_env_int(
                    "MILESTONE_COMPLETE_MIN_CONFIDENCE", 80
                ),
                readiness_min_confidence=_get_env_int("READINESS_MIN_CONFIDENCE", 70),
                contradiction_critical_min_confidence=_get_env_int(
                    "CONTRADICTION_CRITICAL_MIN_CONFIDENCE", 50
                ),
                heat_pump_min_fuse_amps=_get_env_int("HEAT_PUMP_MIN_FUSE_AMPS", 80),
            ),
        )


def _get_env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from exc


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Returns:
        AppConfig: Application configuration

    Raises:
        ValueError: If environment thresholds are invalid
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config
