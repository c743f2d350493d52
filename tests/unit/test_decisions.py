"""Unit tests for decision building, scoring, evidence checks and templates."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from jobgraph.decisions import patterns
from jobgraph.decisions.recorder import (
    DecisionBuilder,
    DecisionRecorder,
    DecisionValidationError,
)
from jobgraph.models import (
    DecisionCreator,
    DecisionType,
    RuleReference,
    RuleSource,
    TimelineEvent,
)


@pytest.fixture
def recorder(job_graph_id, clock) -> DecisionRecorder:
    return DecisionRecorder(job_graph_id, clock=clock)


class TestDecisionBuilder:
    def test_build_round_trip(self, recorder, clock, mi_rule):
        builder = (
            recorder.create_decision()
            .type(DecisionType.SYSTEM_SELECTION)
            .decide("Install air source heat pump")
            .because("Customer wants low-carbon heating")
            .for_milestone("ms-1")
            .applying_rule(mi_rule)
            .based_on("f1", "f2")
            .based_on("f3")
            .with_confidence(75)
            .with_risk("Planning permission")
            .with_risk("Planning permission")
            .by(DecisionCreator.ENGINEER)
        )

        first = builder.build()
        second = builder.build()

        assert first.job_graph_id == "jg-test"
        assert first.decision == "Install air source heat pump"
        assert first.milestone_id == "ms-1"
        assert first.rule_applied == mi_rule
        assert first.evidence_fact_ids == ["f1", "f2", "f3"]
        assert first.risks == ["Planning permission", "Planning permission"]
        assert first.created_by == DecisionCreator.ENGINEER
        assert first.created_at == clock()
        assert first.id != second.id
        assert first.model_dump(exclude={"id"}) == second.model_dump(exclude={"id"})

    def test_defaults_to_system_creator(self, job_graph_id):
        decision = (
            DecisionBuilder(job_graph_id)
            .type("compliance")
            .decide("Fit TPRV")
            .because("Required")
            .with_confidence(50)
            .build()
        )
        assert decision.created_by == DecisionCreator.SYSTEM
        assert decision.evidence_fact_ids == []

    @pytest.mark.parametrize(
        "missing,message",
        [
            ("type", "Decision type is required"),
            ("decide", "Decision text is required"),
            ("because", "Reasoning is required"),
            ("with_confidence", "Confidence is required"),
        ],
    )
    def test_required_fields(self, job_graph_id, missing, message):
        builder = DecisionBuilder(job_graph_id)
        steps = {
            "type": lambda b: b.type(DecisionType.COMPLIANCE),
            "decide": lambda b: b.decide("Comply"),
            "because": lambda b: b.because("Regs"),
            "with_confidence": lambda b: b.with_confidence(60),
        }
        for name, step in steps.items():
            if name != missing:
                step(builder)

        with pytest.raises(DecisionValidationError, match=message):
            builder.build()

    def test_validation_error_is_value_error(self):
        assert issubclass(DecisionValidationError, ValueError)

    def test_confidence_out_of_range(self, job_graph_id):
        builder = (
            DecisionBuilder(job_graph_id)
            .type("compliance")
            .decide("Comply")
            .because("Regs")
            .with_confidence(150)
        )
        with pytest.raises(ValidationError):
            builder.build()


class TestCalculateConfidence:
    def test_no_evidence(self, recorder, make_decision):
        assert recorder.calculate_confidence(make_decision(), []) == 20

    def test_unresolved_evidence(self, recorder, make_decision):
        decision = make_decision(evidence_fact_ids=["missing"])
        assert recorder.calculate_confidence(decision, []) == 30

    def test_average_with_adjustments(self, recorder, make_fact, make_decision, mi_rule):
        facts = [make_fact("gas", "a", 1, confidence=70), make_fact("gas", "b", 2, confidence=75)]
        decision = make_decision(
            evidence_fact_ids=[f.id for f in facts],
            created_by=DecisionCreator.ENGINEER,
            rule_applied=mi_rule,
            risks=["r1", "r2"],
        )
        # 72.5 + 20 + 10 - 10 = 92.5 -> 93
        assert recorder.calculate_confidence(decision, facts) == 93

    def test_clamped(self, recorder, make_fact, make_decision, mi_rule):
        fact = make_fact("gas", "a", 1, confidence=95)
        decision = make_decision(
            evidence_fact_ids=[fact.id],
            created_by=DecisionCreator.ENGINEER,
            rule_applied=mi_rule,
        )
        assert recorder.calculate_confidence(decision, [fact]) == 100

    def test_recalculate_returns_copy(self, recorder, make_decision):
        decision = make_decision(confidence=90)
        updated = recorder.recalculate_confidence(decision, [])

        assert updated.confidence == 20
        assert decision.confidence == 90
        assert updated.id == decision.id


class TestValidateEvidence:
    def test_no_evidence(self, recorder, make_decision):
        result = recorder.validate_evidence(make_decision(), [])
        assert not result.valid
        assert result.issues == ["Decision has no supporting evidence"]

    def test_clean(self, recorder, make_fact, make_decision):
        fact = make_fact("electrical", "main_fuse_rating", 100, confidence=90)
        result = recorder.validate_evidence(make_decision(evidence_fact_ids=[fact.id]), [fact])
        assert result.valid
        assert result.issues == []

    def test_all_issue_kinds(self, recorder, make_fact, make_decision):
        a = make_fact("electrical", "main_fuse_rating", 60, confidence=30)
        b = make_fact("electrical", "main_fuse_rating", 100, confidence=90)
        decision = make_decision(evidence_fact_ids=[a.id, b.id, "ghost"])

        result = recorder.validate_evidence(decision, [a, b])

        assert not result.valid
        assert any("not found" in issue and "ghost" in issue for issue in result.issues)
        assert "1 evidence facts have low confidence" in result.issues
        assert "Contradictory evidence for electrical:main_fuse_rating" in result.issues

    def test_equal_values_not_contradictory(self, recorder, make_fact, make_decision):
        a = make_fact("electrical", "main_fuse_rating", 100)
        b = make_fact("electrical", "main_fuse_rating", 100.0)
        result = recorder.validate_evidence(make_decision(evidence_fact_ids=[a.id, b.id]), [a, b])
        assert result.valid


class TestEvidenceTrail:
    def test_links_facts_and_events(self, recorder, make_fact, make_decision, clock):
        cited = make_fact("gas", "meter_location", "hall", source_event_id="evt-1")
        other = make_fact("gas", "supply_pipe_size", 22, source_event_id="evt-2")
        events = [
            TimelineEvent(event_id="evt-1", type="photo", timestamp=clock()),
            TimelineEvent(event_id="evt-2", type="voice", timestamp=clock()),
        ]
        decision = make_decision(evidence_fact_ids=[cited.id])

        trail = recorder.build_evidence_trail(decision, [cited, other], events)

        assert trail.decision == decision
        assert trail.facts == [cited]
        assert [e.event_id for e in trail.source_events] == ["evt-1"]

    def test_find_dependent_decisions(self, recorder, make_decision):
        citing = make_decision(evidence_fact_ids=["f1", "f2"])
        unrelated = make_decision(evidence_fact_ids=["f3"])

        assert recorder.find_dependent_decisions("f1", [citing, unrelated]) == [citing]


class TestRisks:
    def test_add_risk_dedupes(self, recorder, make_decision):
        decision = recorder.add_risk(make_decision(), "Asbestos")
        again = recorder.add_risk(decision, "Asbestos")
        assert again.risks == ["Asbestos"]

    def test_remove_risk(self, recorder, make_decision):
        decision = make_decision(risks=["Asbestos", "Access"])
        assert recorder.remove_risk(decision, "Asbestos").risks == ["Access"]
        assert decision.risks == ["Asbestos", "Access"]

    def test_record_restamps(self, recorder, make_decision, clock):
        clock.advance(hours=1)
        assert recorder.record(make_decision()).created_at == clock()


class TestPatterns:
    def test_system_selection(self, job_graph_id):
        decision = patterns.system_selection(job_graph_id, "air source heat pump", "Low carbon", ["f1"], 70)

        assert decision.decision == "Install air source heat pump"
        assert decision.decision_type == DecisionType.SYSTEM_SELECTION
        assert decision.created_by == DecisionCreator.AI

    def test_compliance(self, job_graph_id, regs_rule):
        decision = patterns.compliance(job_graph_id, "flue clearance", regs_rule, [], 80)

        assert decision.decision == "Comply with flue clearance"
        assert decision.reasoning == "Required by Approved Document J"
        assert decision.rule_applied == regs_rule
        assert decision.created_by == DecisionCreator.SYSTEM

    def test_upgrade_required(self, job_graph_id):
        decision = patterns.upgrade_required(
            job_graph_id, "Upgrade main fuse to 100A", "Heat pump load", ["f1"], 60, risks=["DNO lead time"]
        )
        assert decision.decision_type == DecisionType.UPGRADE_PATH
        assert decision.risks == ["DNO lead time"]

    def test_mi_precedence(self, job_graph_id, mi_rule, regs_rule):
        decision = patterns.mi_precedence(
            job_graph_id, "500mm flue clearance", mi_rule, regs_rule, ["f1"], 85
        )

        assert decision.decision_type == DecisionType.COMPLIANCE
        assert decision.rule_applied.source == RuleSource.MANUFACTURER_INSTRUCTIONS
        assert decision.reasoning.startswith("Manufacturer Instructions are more restrictive")
        assert decision.risks == [
            "Building Regs (Approved Document J) would permit a less restrictive approach"
        ]

    def test_patterns_accept_clock(self, job_graph_id, clock):
        rule = RuleReference(source=RuleSource.BS_STANDARD, standard="BS 5440-1:2008", description="x")
        decision = patterns.compliance(job_graph_id, "x", rule, [], 50, clock=clock)
        assert decision.created_at == clock()
