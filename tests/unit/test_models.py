"""Unit tests for job graph Pydantic models.

Tests confidence validation, immutability and derived properties.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from jobgraph.models import (
    Conflict,
    ConflictSeverity,
    ConflictType,
    Criticality,
    Decision,
    DecisionCreator,
    DecisionType,
    Fact,
    FactCategory,
    FactSource,
    JobGraphState,
    Milestone,
    MilestoneStatus,
)
from jobgraph.utils.facts import as_number, as_text, find_fact, serialize_value
from jobgraph.utils.scoring import clamp_confidence, round_half_up


class TestFact:
    def test_defaults(self):
        fact = Fact(category=FactCategory.GAS, key="meter_location", value="hall")

        assert fact.confidence == 50
        assert fact.extracted_by == FactSource.AI
        assert fact.id
        assert fact.qualified_key == "gas:meter_location"

    def test_confidence_out_of_range(self):
        with pytest.raises(ValidationError):
            Fact(category="gas", key="meter_location", value="hall", confidence=101)

    def test_frozen(self):
        fact = Fact(category="gas", key="meter_location", value="hall")
        with pytest.raises(ValidationError):
            fact.value = "garage"

    def test_serialized_value_structural(self):
        a = Fact(category="measurements", key="clearance", value={"top": 150, "sides": 5.0})
        b = Fact(category="measurements", key="clearance", value={"sides": 5, "top": 150.0})

        assert a.serialized_value == b.serialized_value

    def test_unique_ids(self):
        first = Fact(category="gas", key="k", value=1)
        second = Fact(category="gas", key="k", value=1)
        assert first.id != second.id


class TestDecision:
    def test_confidence_validated(self):
        with pytest.raises(ValidationError):
            Decision(
                decision_type=DecisionType.COMPLIANCE,
                decision="Comply",
                reasoning="Required",
                confidence=-5,
            )

    def test_created_by_defaults_to_system(self):
        decision = Decision(
            decision_type="specification",
            decision="Fit magnetic filter",
            reasoning="MI requirement",
            confidence=60,
        )
        assert decision.created_by == DecisionCreator.SYSTEM


class TestConflict:
    def test_blocking_only_when_critical_and_unresolved(self, clock):
        critical = Conflict(
            conflict_type=ConflictType.MISSING_DATA,
            severity=ConflictSeverity.CRITICAL,
            description="Missing critical data: Property Type",
        )
        warning = critical.model_copy(update={"severity": ConflictSeverity.WARNING})
        resolved = critical.model_copy(update={"resolved_at": clock()})

        assert critical.is_blocking
        assert not warning.is_blocking
        assert not resolved.is_blocking
        assert resolved.is_resolved

    def test_signature_ignores_id_and_order(self):
        a = Conflict(
            conflict_type="fact_contradiction",
            severity="critical",
            description="Contradictory values",
            affected_fact_ids=["f2", "f1"],
        )
        b = Conflict(
            conflict_type="fact_contradiction",
            severity="critical",
            description="Contradictory values",
            affected_fact_ids=["f1", "f2"],
        )
        assert a.id != b.id
        assert a.signature == b.signature


class TestMilestone:
    def test_criticality_from_metadata(self):
        milestone = Milestone(
            job_graph_id="jg",
            key="hazards_identified",
            label="Hazards Identified",
            metadata={"criticality_level": "critical"},
        )
        assert milestone.criticality == Criticality.CRITICAL
        assert not milestone.is_complete

    def test_missing_criticality(self):
        milestone = Milestone(job_graph_id="jg", key="x", label="X")
        assert milestone.criticality is None
        assert milestone.status == MilestoneStatus.PENDING


class TestJobGraphState:
    def test_json_round_trip(self, clock):
        from jobgraph.orchestrator import create_job_graph

        _, state = create_job_graph("jg-1", "visit-1", "prop-1", clock=clock)

        restored = JobGraphState.model_validate_json(state.model_dump_json())

        assert restored == state


class TestFactHelpers:
    def test_find_fact_returns_first(self, make_fact):
        first = make_fact("electrical", "main_fuse_rating", 60)
        second = make_fact("electrical", "main_fuse_rating", 100)

        assert find_fact([first, second], FactCategory.ELECTRICAL, "main_fuse_rating") is first
        assert find_fact([first], "gas", "meter_location") is None

    @pytest.mark.parametrize(
        "value,expected",
        [(60, 60.0), ("80", 80.0), (" 22.5 ", 22.5), ("sixty", 0.0), (None, 0.0), (True, 1.0)],
    )
    def test_as_number(self, value, expected):
        assert as_number(value) == expected

    def test_as_text(self):
        assert as_text("Airing Cupboard") == "airing cupboard"
        assert as_text(42) is None

    def test_serialize_value_folds_integral_floats(self):
        assert serialize_value(60.0) == serialize_value(60)
        assert serialize_value("60") != serialize_value(60)


class TestScoring:
    @pytest.mark.parametrize("value,expected", [(72.5, 73), (72.4, 72), (0.5, 1), (-0.5, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_clamp(self):
        assert clamp_confidence(130) == 100
        assert clamp_confidence(-20) == 0
