"""Decision recording with evidence trails.

Decisions are built incrementally with ``DecisionBuilder`` and validated
before they exist; afterwards only confidence and risks are recomputed, and
only through copies.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from jobgraph.core.clock import Clock, new_id, resolve_clock
from jobgraph.models import (
    Decision,
    DecisionCreator,
    DecisionType,
    EvidenceTrail,
    Fact,
    RuleReference,
    RuleSource,
    TimelineEvent,
)
from jobgraph.utils.scoring import clamp_confidence

LOW_CONFIDENCE_EVIDENCE = 40


class DecisionValidationError(ValueError):
    """A decision is missing a required field at build time."""

    pass


@dataclass(slots=True)
class EvidenceValidation:
    valid: bool
    issues: list[str] = field(default_factory=list)


class DecisionBuilder:
    """Fluent builder for decisions.

    Example:
        >>> decision = (
        ...     DecisionBuilder("jg-1")
        ...     .type(DecisionType.SYSTEM_SELECTION)
        ...     .decide("Install heat pump")
        ...     .because("Customer wants low-carbon heating")
        ...     .with_confidence(80)
        ...     .build()
        ... )
    """

    def __init__(self, job_graph_id: str, clock: Clock | None = None) -> None:
        self.job_graph_id = job_graph_id
        self.clock = resolve_clock(clock)
        self._decision_type: DecisionType | None = None
        self._decision: str | None = None
        self._reasoning: str | None = None
        self._milestone_id: str | None = None
        self._rule: RuleReference | None = None
        self._evidence: list[str] = []
        self._confidence: int | None = None
        self._risks: list[str] = []
        self._created_by = DecisionCreator.SYSTEM

    def type(self, decision_type: DecisionType | str) -> DecisionBuilder:
        self._decision_type = DecisionType(decision_type)
        return self

    def decide(self, decision: str) -> DecisionBuilder:
        self._decision = decision
        return self

    def because(self, reasoning: str) -> DecisionBuilder:
        self._reasoning = reasoning
        return self

    def for_milestone(self, milestone_id: str) -> DecisionBuilder:
        self._milestone_id = milestone_id
        return self

    def applying_rule(self, rule: RuleReference) -> DecisionBuilder:
        self._rule = rule
        return self

    def based_on(self, *fact_ids: str) -> DecisionBuilder:
        self._evidence.extend(fact_ids)
        return self

    def with_confidence(self, confidence: int) -> DecisionBuilder:
        self._confidence = confidence
        return self

    def with_risk(self, risk: str) -> DecisionBuilder:
        self._risks.append(risk)
        return self

    def by(self, creator: DecisionCreator | str) -> DecisionBuilder:
        self._created_by = DecisionCreator(creator)
        return self

    def build(self) -> Decision:
        """Validate required fields and produce an immutable Decision.

        Raises:
            DecisionValidationError: If type, decision text, reasoning or confidence is missing
            pydantic.ValidationError: If confidence is outside 0-100
        """
        if self._decision_type is None:
            raise DecisionValidationError("Decision type is required")
        if not self._decision:
            raise DecisionValidationError("Decision text is required")
        if not self._reasoning:
            raise DecisionValidationError("Reasoning is required")
        if self._confidence is None:
            raise DecisionValidationError("Confidence is required")

        return Decision(
            id=new_id(),
            job_graph_id=self.job_graph_id,
            milestone_id=self._milestone_id,
            decision_type=self._decision_type,
            decision=self._decision,
            reasoning=self._reasoning,
            rule_applied=self._rule,
            evidence_fact_ids=list(self._evidence),
            confidence=self._confidence,
            risks=list(self._risks),
            created_at=self.clock(),
            created_by=self._created_by,
        )


class DecisionRecorder:
    """Manages decision confidence, evidence checks and audit trails."""

    def __init__(self, job_graph_id: str, clock: Clock | None = None) -> None:
        self.job_graph_id = job_graph_id
        self.clock = resolve_clock(clock)

    def create_decision(self) -> DecisionBuilder:
        return DecisionBuilder(self.job_graph_id, clock=self.clock)

    def record(self, decision: Decision) -> Decision:
        """Stamp a decision with the recording time; storage is the caller's job."""
        return decision.model_copy(update={"created_at": self.clock()})

    def build_evidence_trail(
        self,
        decision: Decision,
        facts: Sequence[Fact],
        timeline_events: Sequence[TimelineEvent],
    ) -> EvidenceTrail:
        evidence_ids = set(decision.evidence_fact_ids)
        evidence_facts = [f for f in facts if f.id in evidence_ids]

        event_ids = {f.source_event_id for f in evidence_facts if f.source_event_id}
        source_events = [e for e in timeline_events if e.event_id in event_ids]

        return EvidenceTrail(decision=decision, facts=evidence_facts, source_events=source_events)

    def calculate_confidence(self, decision: Decision, facts: Sequence[Fact]) -> int:
        """Score a decision from its evidence.

        20 with no declared evidence, 30 when none of it resolves, otherwise the
        mean evidence confidence +20 for engineer decisions, +10 for MI rules and
        -5 per declared risk, clamped to 0-100.
        """
        if not decision.evidence_fact_ids:
            return 20

        evidence = self._resolve_evidence(decision, facts)
        if not evidence:
            return 30

        average = sum(f.confidence for f in evidence) / len(evidence)
        creator_boost = 20 if decision.created_by == DecisionCreator.ENGINEER else 0
        rule_boost = (
            10
            if decision.rule_applied is not None
            and decision.rule_applied.source == RuleSource.MANUFACTURER_INSTRUCTIONS
            else 0
        )
        risk_penalty = len(decision.risks) * 5

        return clamp_confidence(average + creator_boost + rule_boost - risk_penalty)

    def recalculate_confidence(self, decision: Decision, facts: Sequence[Fact]) -> Decision:
        return decision.model_copy(update={"confidence": self.calculate_confidence(decision, facts)})

    def validate_evidence(self, decision: Decision, facts: Sequence[Fact]) -> EvidenceValidation:
        """Report evidence problems without raising; callers decide whether to block."""
        issues: list[str] = []

        if not decision.evidence_fact_ids:
            issues.append("Decision has no supporting evidence")

        evidence = self._resolve_evidence(decision, facts)
        found_ids = {f.id for f in evidence}
        missing = [fid for fid in dict.fromkeys(decision.evidence_fact_ids) if fid not in found_ids]
        if missing:
            issues.append(f"Referenced evidence facts not found: {', '.join(missing)}")

        low = [f for f in evidence if f.confidence < LOW_CONFIDENCE_EVIDENCE]
        if low:
            issues.append(f"{len(low)} evidence facts have low confidence")

        grouped: dict[str, list[Fact]] = defaultdict(list)
        for fact in evidence:
            grouped[fact.qualified_key].append(fact)
        for key, group in grouped.items():
            if len({f.serialized_value for f in group}) > 1:
                issues.append(f"Contradictory evidence for {key}")

        return EvidenceValidation(valid=not issues, issues=issues)

    def find_dependent_decisions(self, fact_id: str, decisions: Sequence[Decision]) -> list[Decision]:
        """Decisions citing a fact, i.e. those needing re-confirmation if it is corrected."""
        return [d for d in decisions if fact_id in d.evidence_fact_ids]

    def add_risk(self, decision: Decision, risk: str) -> Decision:
        if risk in decision.risks:
            return decision
        return decision.model_copy(update={"risks": [*decision.risks, risk]})

    def remove_risk(self, decision: Decision, risk: str) -> Decision:
        return decision.model_copy(update={"risks": [r for r in decision.risks if r != risk]})

    def _resolve_evidence(self, decision: Decision, facts: Sequence[Fact]) -> list[Fact]:
        evidence_ids = set(decision.evidence_fact_ids)
        return [f for f in facts if f.id in evidence_ids]
