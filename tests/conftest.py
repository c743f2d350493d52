"""Pytest configuration and fixtures for job graph tests.

Provides a pinned clock plus fact and decision factories.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

import jobgraph.config as config_module
from jobgraph.config import AppConfig
from jobgraph.models import (
    Decision,
    DecisionCreator,
    DecisionType,
    Fact,
    FactCategory,
    FactSource,
    RuleReference,
    RuleSource,
)

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a pinned time; ``advance`` moves it forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def app_config() -> AppConfig:
    """Default thresholds, independent of the environment."""
    return AppConfig()


@pytest.fixture
def job_graph_id() -> str:
    return "jg-test"


@pytest.fixture
def make_fact(job_graph_id: str):
    """Factory for facts: make_fact("electrical", "main_fuse_rating", 100, confidence=90)."""

    def _make(
        category: FactCategory | str,
        key: str,
        value: Any,
        confidence: int = 80,
        extracted_by: FactSource = FactSource.MANUAL,
        **kwargs: Any,
    ) -> Fact:
        return Fact(
            job_graph_id=job_graph_id,
            category=FactCategory(category),
            key=key,
            value=value,
            confidence=confidence,
            extracted_by=extracted_by,
            created_at=FIXED_NOW,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_decision(job_graph_id: str):
    """Factory for decisions with sensible defaults."""

    def _make(
        decision: str = "Install combi boiler",
        decision_type: DecisionType = DecisionType.SYSTEM_SELECTION,
        confidence: int = 70,
        **kwargs: Any,
    ) -> Decision:
        kwargs.setdefault("reasoning", "Engineer recommendation")
        kwargs.setdefault("created_by", DecisionCreator.AI)
        return Decision(
            job_graph_id=job_graph_id,
            decision_type=decision_type,
            decision=decision,
            confidence=confidence,
            created_at=FIXED_NOW,
            **kwargs,
        )

    return _make


@pytest.fixture
def mi_rule() -> RuleReference:
    return RuleReference(
        source=RuleSource.MANUFACTURER_INSTRUCTIONS,
        standard="Worcester Bosch Greenstar 8000",
        section="Clearances",
        description="Minimum 500mm flue termination clearance",
    )


@pytest.fixture
def regs_rule() -> RuleReference:
    return RuleReference(
        source=RuleSource.BUILDING_REGULATIONS,
        standard="Approved Document J",
        description="Minimum 300mm flue termination clearance",
    )


@pytest.fixture
def critical_facts(make_fact) -> list[Fact]:
    """The four facts the conflict engine requires before nothing is missing."""
    return [
        make_fact("property", "property_type", "semi_detached"),
        make_fact("existing_system", "boiler_type", "combi"),
        make_fact("electrical", "main_fuse_rating", 100),
        make_fact("gas", "meter_location", "external_box"),
    ]


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables and reset the config singleton."""
    for name in (
        "MILESTONE_COMPLETE_MIN_CONFIDENCE",
        "READINESS_MIN_CONFIDENCE",
        "CONTRADICTION_CRITICAL_MIN_CONFIDENCE",
        "HEAT_PUMP_MIN_FUSE_AMPS",
        "LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LOG_DIR", "/nonexistent-jobgraph-logs")
    monkeypatch.setattr(config_module, "_config", None)
