"""Milestone lifecycle: status, confidence and blockers.

State machine: pending -> in_progress -> complete, with blocked reachable from
any state while a blocker or blocking conflict exists. Complete only regresses
to blocked.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from jobgraph.config import AppConfig, get_config
from jobgraph.core.clock import Clock, new_id, resolve_clock
from jobgraph.milestones.catalog import can_start, definition_of
from jobgraph.models import (
    Conflict,
    ConflictSeverity,
    Criticality,
    Decision,
    DecisionCreator,
    Fact,
    FactCategory,
    Milestone,
    MilestoneStatus,
)
from jobgraph.utils.scoring import clamp_confidence, round_half_up

BASE_CONFIDENCE = 50
HIGH_CONFIDENCE_FACT = 70
LOW_CONFIDENCE_FACT = 40


@dataclass(slots=True)
class ConfidenceFactor:
    factor: str
    impact: int  # -100 to +100
    reason: str


@dataclass(slots=True)
class MilestoneProgress:
    milestone: Milestone
    can_start: bool
    can_complete: bool
    missing_requirements: list[str] = field(default_factory=list)
    blocking_conflicts: list[Conflict] = field(default_factory=list)
    confidence_factors: list[ConfidenceFactor] = field(default_factory=list)


class MilestoneTracker:
    """Computes milestone progress and owns milestone status transitions."""

    def __init__(
        self,
        job_graph_id: str,
        clock: Clock | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.job_graph_id = job_graph_id
        self.clock = resolve_clock(clock)
        self.thresholds = (config or get_config()).thresholds

    def create(self, key: str) -> Milestone:
        """Instantiate a pending milestone from the catalog.

        Raises:
            UnknownMilestoneError: If the key is not in the catalog
        """
        definition = definition_of(key)
        now = self.clock()
        return Milestone(
            id=new_id(),
            job_graph_id=self.job_graph_id,
            key=definition.key,
            label=definition.label,
            status=MilestoneStatus.PENDING,
            confidence=0,
            blockers=[],
            metadata={
                "description": definition.description,
                "criticality_level": definition.criticality.value,
                "required_fact_categories": [
                    category.value for category in definition.required_fact_categories
                ],
            },
            created_at=now,
            updated_at=now,
        )

    def update_status(
        self,
        milestone: Milestone,
        status: MilestoneStatus,
        confidence: int | None = None,
    ) -> Milestone:
        now = self.clock()
        completed_at = milestone.completed_at
        if status == MilestoneStatus.COMPLETE and (
            milestone.status != MilestoneStatus.COMPLETE or completed_at is None
        ):
            completed_at = now
        return milestone.model_copy(
            update={
                "status": status,
                "confidence": milestone.confidence if confidence is None else confidence,
                "completed_at": completed_at,
                "updated_at": now,
            }
        )

    def add_blocker(self, milestone: Milestone, blocker: str) -> Milestone:
        blockers = list(milestone.blockers)
        if blocker not in blockers:
            blockers.append(blocker)
        return milestone.model_copy(
            update={
                "blockers": blockers,
                "status": MilestoneStatus.BLOCKED if blockers else milestone.status,
                "updated_at": self.clock(),
            }
        )

    def remove_blocker(self, milestone: Milestone, blocker: str) -> Milestone:
        blockers = [b for b in milestone.blockers if b != blocker]
        return milestone.model_copy(
            update={
                "blockers": blockers,
                "status": MilestoneStatus.BLOCKED if blockers else MilestoneStatus.IN_PROGRESS,
                "updated_at": self.clock(),
            }
        )

    def calculate_progress(
        self,
        milestone: Milestone,
        all_milestones: Sequence[Milestone],
        facts: Sequence[Fact],
        decisions: Sequence[Decision],
        conflicts: Sequence[Conflict],
    ) -> MilestoneProgress:
        """Evaluate whether a milestone can start and complete.

        Args:
            milestone: Milestone to evaluate
            all_milestones: Every milestone of the job (for prerequisite status)
            facts: Current facts
            decisions: Current decisions
            conflicts: Current conflicts (every blocking conflict affects every milestone)

        Returns:
            MilestoneProgress with requirements, blocking conflicts and confidence factors

        Raises:
            UnknownMilestoneError: If the milestone key is not in the catalog
        """
        definition = definition_of(milestone.key)

        completed_keys = {m.key for m in all_milestones if m.status == MilestoneStatus.COMPLETE}
        startable = can_start(milestone.key, completed_keys)

        missing = self._missing_requirements(definition.required_fact_categories, facts)
        blocking = [c for c in conflicts if c.is_blocking]
        can_complete = startable and not missing and not blocking

        return MilestoneProgress(
            milestone=milestone,
            can_start=startable,
            can_complete=can_complete,
            missing_requirements=missing,
            blocking_conflicts=blocking,
            confidence_factors=self.calculate_confidence_factors(
                milestone, facts, decisions, conflicts
            ),
        )

    def _missing_requirements(
        self, required: Sequence[FactCategory], facts: Sequence[Fact]
    ) -> list[str]:
        present = {f.category for f in facts}
        return [
            f"Missing facts for category: {category.value}"
            for category in required
            if category not in present
        ]

    def calculate_confidence_factors(
        self,
        milestone: Milestone,
        facts: Sequence[Fact],
        decisions: Sequence[Decision],
        conflicts: Sequence[Conflict],
    ) -> list[ConfidenceFactor]:
        """Signed contributions to a milestone's confidence (base 50)."""
        factors: list[ConfidenceFactor] = []

        high = [f for f in facts if f.confidence >= HIGH_CONFIDENCE_FACT]
        low = [f for f in facts if f.confidence < LOW_CONFIDENCE_FACT]

        if high:
            factors.append(
                ConfidenceFactor(
                    factor="High-confidence facts",
                    impact=min(30, len(high) * 5),
                    reason=f"{len(high)} facts verified by engineer or measurement",
                )
            )

        if low:
            factors.append(
                ConfidenceFactor(
                    factor="Low-confidence facts",
                    impact=-min(30, len(low) * 5),
                    reason=f"{len(low)} facts need verification",
                )
            )

        engineer_decisions = [d for d in decisions if d.created_by == DecisionCreator.ENGINEER]
        if engineer_decisions:
            factors.append(
                ConfidenceFactor(
                    factor="Engineer decisions",
                    impact=20,
                    reason=f"{len(engineer_decisions)} decisions made by engineer",
                )
            )

        unresolved = [c for c in conflicts if not c.is_resolved]
        if unresolved:
            critical = [c for c in unresolved if c.severity == ConflictSeverity.CRITICAL]
            others = len(unresolved) - len(critical)
            factors.append(
                ConfidenceFactor(
                    factor="Unresolved conflicts",
                    impact=-(len(critical) * 20 + others * 5),
                    reason=f"{len(critical)} critical, {others} warnings",
                )
            )

        if milestone.blockers:
            factors.append(
                ConfidenceFactor(
                    factor="Active blockers",
                    impact=-50,
                    reason=f"{len(milestone.blockers)} blockers preventing completion",
                )
            )

        definition = definition_of(milestone.key)
        present = {f.category for f in facts}
        if all(category in present for category in definition.required_fact_categories):
            factors.append(
                ConfidenceFactor(
                    factor="All requirements met",
                    impact=20,
                    reason="All required fact categories present",
                )
            )

        return factors

    def recalculate_confidence(
        self,
        milestone: Milestone,
        facts: Sequence[Fact],
        decisions: Sequence[Decision],
        conflicts: Sequence[Conflict],
    ) -> Milestone:
        factors = self.calculate_confidence_factors(milestone, facts, decisions, conflicts)
        confidence = clamp_confidence(BASE_CONFIDENCE + sum(f.impact for f in factors))
        return milestone.model_copy(update={"confidence": confidence, "updated_at": self.clock()})

    def auto_update_status(self, milestone: Milestone, progress: MilestoneProgress) -> Milestone:
        """Apply the deterministic status transition for one pass."""
        if milestone.blockers or progress.blocking_conflicts:
            return self.update_status(milestone, MilestoneStatus.BLOCKED)

        if milestone.status == MilestoneStatus.COMPLETE:
            return milestone

        if not progress.can_start:
            return self.update_status(milestone, MilestoneStatus.PENDING)

        if (
            progress.can_complete
            and milestone.confidence >= self.thresholds.milestone_complete_min_confidence
        ):
            return self.update_status(milestone, MilestoneStatus.COMPLETE)

        # Blocked milestones whose blockers have cleared resume work
        if milestone.status in (MilestoneStatus.PENDING, MilestoneStatus.BLOCKED):
            return self.update_status(milestone, MilestoneStatus.IN_PROGRESS)

        return milestone

    def overall_completion(self, milestones: Sequence[Milestone]) -> int:
        if not milestones:
            return 0
        completed = sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETE)
        return round_half_up(completed / len(milestones) * 100)

    def overall_confidence(self, milestones: Sequence[Milestone]) -> int:
        """Critical milestones weigh 70%, important 30%; empty tiers count as 100."""
        if not milestones:
            return 0

        critical = [m.confidence for m in milestones if m.criticality == Criticality.CRITICAL]
        important = [m.confidence for m in milestones if m.criticality == Criticality.IMPORTANT]

        critical_avg = sum(critical) / len(critical) if critical else 100.0
        important_avg = sum(important) / len(important) if important else 100.0

        return round_half_up(critical_avg * 0.7 + important_avg * 0.3)

    def ready_for_outputs(self, milestones: Sequence[Milestone]) -> bool:
        return all(
            m.status == MilestoneStatus.COMPLETE
            and m.confidence >= self.thresholds.readiness_min_confidence
            for m in milestones
            if m.criticality == Criticality.CRITICAL
        )
