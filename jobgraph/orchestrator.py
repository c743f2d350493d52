"""Job graph orchestrator - one deterministic processing pass per call.

Coordinates the conflict engine, the regulatory validators, the milestone
tracker and the decision recorder over a caller-supplied JobGraphState.

Key features:
- Pure: the input state is never mutated, the updated state is returned
- Auditable: every blocker traces back to a conflict description
- Idempotent: conflict-derived blockers are released and re-derived each pass
- Resolution-preserving: engineer resolutions survive re-detection
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Optional

from jobgraph.config import AppConfig, get_config
from jobgraph.conflicts.engine import ConflictEngine
from jobgraph.core.clock import Clock, new_id, resolve_clock
from jobgraph.decisions.recorder import DecisionRecorder
from jobgraph.milestones.catalog import STANDARD_MILESTONE_KEYS
from jobgraph.milestones.tracker import MilestoneTracker
from jobgraph.models import (
    CompletenessAssessment,
    Conflict,
    ConflictSeverity,
    Fact,
    FactCategory,
    FactSource,
    JobGraph,
    JobGraphState,
    JobGraphStatus,
    JobGraphSummary,
    Milestone,
    MissingFact,
    ProcessResult,
)
from jobgraph.validators import Validator, get_all_validators

logger = logging.getLogger(__name__)

CONFLICT_BLOCKERS_KEY = "conflict_blockers"

# Facts every quote needs, reported in the completeness assessment
CRITICAL_FACT_CHECKS: tuple[tuple[FactCategory, str, str], ...] = (
    (FactCategory.PROPERTY, "property_type", "Property type"),
    (FactCategory.EXISTING_SYSTEM, "boiler_type", "Existing boiler type"),
    (FactCategory.ELECTRICAL, "main_fuse_rating", "Main fuse rating"),
    (FactCategory.GAS, "meter_location", "Gas meter location"),
    (FactCategory.CUSTOMER, "budget", "Customer budget"),
)


class JobGraphOrchestrator:
    """Runs the full pipeline for one job graph.

    Responsibilities:
    1. Detect conflicts and run every regulatory validator
    2. Keep engineer resolutions of conflicts that are detected again
    3. Recompute milestone confidence, progress, status and blockers
    4. Recompute decision confidence from current evidence
    5. Derive overall status, summary and completeness
    """

    def __init__(
        self,
        job_graph_id: str,
        visit_id: str,
        property_id: str,
        clock: Clock | None = None,
        config: AppConfig | None = None,
        validators: Optional[Sequence[Validator]] = None,
    ):
        """Initialize orchestrator for one job graph.

        Args:
            job_graph_id: Identifier stamped on everything produced
            visit_id: Survey visit the graph belongs to
            property_id: Property being surveyed
            clock: Time source (defaults to UTC now)
            config: Thresholds (defaults to environment configuration)
            validators: Validators to run (defaults to all, MI first)
        """
        self.job_graph_id = job_graph_id
        self.visit_id = visit_id
        self.property_id = property_id
        self.clock = resolve_clock(clock)
        self.config = config or get_config()

        self.milestone_tracker = MilestoneTracker(job_graph_id, clock=self.clock, config=self.config)
        self.conflict_engine = ConflictEngine(job_graph_id, clock=self.clock, config=self.config)
        self.decision_recorder = DecisionRecorder(job_graph_id, clock=self.clock)
        self.validators = list(validators) if validators is not None else get_all_validators(self.clock)

    def initialize_job_graph(self) -> JobGraph:
        now = self.clock()
        return JobGraph(
            id=self.job_graph_id,
            visit_id=self.visit_id,
            property_id=self.property_id,
            status=JobGraphStatus.IN_PROGRESS,
            overall_confidence=0,
            created_at=now,
            updated_at=now,
        )

    def create_standard_milestones(self) -> list[Milestone]:
        return [self.milestone_tracker.create(key) for key in STANDARD_MILESTONE_KEYS]

    def add_fact(
        self,
        category: FactCategory | str,
        key: str,
        value: Any,
        source_event_id: str | None = None,
        unit: str | None = None,
        confidence: int = 50,
        extracted_by: FactSource | str = FactSource.AI,
        notes: str | None = None,
    ) -> Fact:
        """Build a fact for this job; the caller appends it to the state."""
        return Fact(
            id=new_id(),
            job_graph_id=self.job_graph_id,
            source_event_id=source_event_id,
            category=FactCategory(category),
            key=key,
            value=value,
            unit=unit,
            confidence=confidence,
            extracted_by=FactSource(extracted_by),
            notes=notes,
            created_at=self.clock(),
        )

    def process_state(self, state: JobGraphState) -> ProcessResult:
        """Execute one full orchestration pass.

        Args:
            state: Current job graph state (not modified)

        Returns:
            ProcessResult with updated state, summary, completeness and
            pooled validator warnings and recommendations
        """
        facts = list(state.facts)

        # 1. Conflict detection
        detection = self.conflict_engine.detect_conflicts(facts, state.decisions)
        detected: list[Conflict] = [*detection.conflicts, *detection.resolved_conflicts]

        # 2. Regulatory validation
        warnings: list[str] = []
        recommendations: list[str] = []
        for validator in self.validators:
            result = validator.validate(facts, state.decisions)
            logger.debug(
                "Validator %s: valid=%s conflicts=%d warnings=%d",
                validator.name,
                result.valid,
                len(result.conflicts),
                len(result.warnings),
            )
            detected.extend(
                c.model_copy(update={"job_graph_id": self.job_graph_id}) for c in result.conflicts
            )
            warnings.extend(result.warnings)
            recommendations.extend(result.recommendations)

        # 3. Keep resolutions recorded against earlier passes
        conflicts = self._carry_forward_resolutions(detected, state.conflicts)
        blocking = self.conflict_engine.get_blocking_conflicts(conflicts)

        # 4. Milestones
        milestones = [
            self._update_milestone(m, state, facts, conflicts, blocking) for m in state.milestones
        ]

        # 5. Decisions
        decisions = [
            self.decision_recorder.recalculate_confidence(d, facts) for d in state.decisions
        ]

        # 6. Overall status
        overall_confidence = self.milestone_tracker.overall_confidence(milestones)
        ready = self.milestone_tracker.ready_for_outputs(milestones)
        graph = state.graph.model_copy(
            update={
                "status": self._derive_status(state.graph.status, bool(blocking), ready),
                "overall_confidence": overall_confidence,
                "updated_at": self.clock(),
            }
        )

        updated_state = JobGraphState(
            graph=graph,
            milestones=milestones,
            facts=facts,
            decisions=decisions,
            conflicts=conflicts,
        )

        # 7. Summary and completeness
        summary = self._summarize(graph, milestones, conflicts)
        completeness = self._assess_completeness(milestones, facts, conflicts)

        logger.info(
            "Processed job graph %s: status=%s confidence=%d critical=%d warnings=%d",
            graph.id,
            graph.status.value,
            graph.overall_confidence,
            summary.critical_conflicts,
            summary.warning_conflicts,
        )

        return ProcessResult(
            updated_state=updated_state,
            summary=summary,
            completeness=completeness,
            warnings=warnings,
            recommendations=recommendations,
        )

    def _carry_forward_resolutions(
        self, detected: Sequence[Conflict], previous: Sequence[Conflict]
    ) -> list[Conflict]:
        resolved_before = {c.signature: c for c in previous if c.is_resolved}
        carried: list[Conflict] = []
        for conflict in detected:
            earlier = resolved_before.get(conflict.signature)
            carried.append(earlier if earlier is not None else conflict)
        return carried

    def _update_milestone(
        self,
        milestone: Milestone,
        state: JobGraphState,
        facts: Sequence[Fact],
        conflicts: Sequence[Conflict],
        blocking: Sequence[Conflict],
    ) -> Milestone:
        tracker = self.milestone_tracker

        # Release blockers this orchestrator added on the previous pass
        derived = set(milestone.metadata.get(CONFLICT_BLOCKERS_KEY, []))
        metadata = {k: v for k, v in milestone.metadata.items() if k != CONFLICT_BLOCKERS_KEY}
        updated = milestone.model_copy(
            update={
                "blockers": [b for b in milestone.blockers if b not in derived],
                "metadata": metadata,
            }
        )

        # Re-derive before scoring so the active-blocker penalty applies this pass
        added: list[str] = []
        for conflict in blocking:
            if conflict.description not in updated.blockers:
                added.append(conflict.description)
            updated = tracker.add_blocker(updated, conflict.description)

        if added:
            updated = updated.model_copy(
                update={"metadata": {**updated.metadata, CONFLICT_BLOCKERS_KEY: added}}
            )

        updated = tracker.recalculate_confidence(updated, facts, state.decisions, conflicts)
        progress = tracker.calculate_progress(
            updated, state.milestones, facts, state.decisions, conflicts
        )
        return tracker.auto_update_status(updated, progress)

    @staticmethod
    def _derive_status(current: JobGraphStatus, has_blocking: bool, ready: bool) -> JobGraphStatus:
        if current == JobGraphStatus.COMPLETE:
            return current
        if has_blocking:
            return JobGraphStatus.BLOCKED
        if ready:
            return JobGraphStatus.READY_FOR_OUTPUTS
        return JobGraphStatus.IN_PROGRESS

    def _summarize(
        self, graph: JobGraph, milestones: Sequence[Milestone], conflicts: Sequence[Conflict]
    ) -> JobGraphSummary:
        unresolved = [c for c in conflicts if not c.is_resolved]
        return JobGraphSummary(
            id=graph.id,
            visit_id=graph.visit_id,
            property_id=graph.property_id,
            status=graph.status,
            overall_confidence=graph.overall_confidence,
            completed_milestones=sum(1 for m in milestones if m.is_complete),
            total_milestones=len(milestones),
            critical_conflicts=sum(1 for c in unresolved if c.severity == ConflictSeverity.CRITICAL),
            warning_conflicts=sum(1 for c in unresolved if c.severity == ConflictSeverity.WARNING),
            updated_at=graph.updated_at,
        )

    def _assess_completeness(
        self,
        milestones: Sequence[Milestone],
        facts: Sequence[Fact],
        conflicts: Sequence[Conflict],
    ) -> CompletenessAssessment:
        ready = self.milestone_tracker.ready_for_outputs(milestones)
        present = {f.qualified_key for f in facts}
        missing = [
            MissingFact(category=category, key=key, description=description)
            for category, key, description in CRITICAL_FACT_CHECKS
            if f"{category.value}:{key}" not in present
        ]
        return CompletenessAssessment(
            overall_percentage=self.milestone_tracker.overall_completion(milestones),
            ready_for_quote=ready,
            ready_for_pdf=ready,
            ready_for_portal=ready,
            missing_critical_facts=missing,
            unresolved_conflicts=[c for c in conflicts if not c.is_resolved],
        )

    def mark_complete(self, graph: JobGraph) -> JobGraph:
        """Record that outputs were generated.

        Raises:
            ValueError: If the graph is not ready for outputs
        """
        if graph.status != JobGraphStatus.READY_FOR_OUTPUTS:
            raise ValueError(
                f"Job graph {graph.id} is {graph.status.value}; only a graph ready for outputs "
                "can be marked complete"
            )
        return graph.model_copy(
            update={"status": JobGraphStatus.COMPLETE, "updated_at": self.clock()}
        )


def create_job_graph(
    job_graph_id: str,
    visit_id: str,
    property_id: str,
    clock: Clock | None = None,
    config: AppConfig | None = None,
) -> tuple[JobGraphOrchestrator, JobGraphState]:
    """Create an orchestrator and the initial state (standard milestones, nothing else)."""
    orchestrator = JobGraphOrchestrator(
        job_graph_id, visit_id, property_id, clock=clock, config=config
    )
    state = JobGraphState(
        graph=orchestrator.initialize_job_graph(),
        milestones=orchestrator.create_standard_milestones(),
    )
    return orchestrator, state
