"""Conflict detection for the job graph.

Produces Conflict models for MI-vs-Regs pairs, contradictory facts, missing
critical data and incompatible system selections. Nothing is hidden: every
problem becomes a conflict, and critical unresolved ones block progress.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from jobgraph.config import AppConfig, get_config
from jobgraph.core.clock import Clock, new_id, resolve_clock
from jobgraph.models import (
    Conflict,
    ConflictSeverity,
    ConflictType,
    Decision,
    DecisionType,
    Fact,
    FactCategory,
    RuleSource,
)
from jobgraph.utils.facts import as_number, find_fact

logger = logging.getLogger(__name__)

MI_VS_REGS_DESCRIPTION = (
    "Manufacturer Instructions are more restrictive than Building Regulations. "
    "MI takes precedence."
)

# (category, key, label) that every survey must capture
CRITICAL_FACTS: tuple[tuple[FactCategory, str, str], ...] = (
    (FactCategory.PROPERTY, "property_type", "Property Type"),
    (FactCategory.EXISTING_SYSTEM, "boiler_type", "Existing Boiler Type"),
    (FactCategory.ELECTRICAL, "main_fuse_rating", "Main Fuse Rating"),
    (FactCategory.GAS, "meter_location", "Gas Meter Location"),
)


@dataclass(slots=True)
class ConflictSummary:
    critical: int = 0
    warnings: int = 0
    info: int = 0
    auto_resolved: int = 0


@dataclass(slots=True)
class ConflictDetectionResult:
    conflicts: list[Conflict] = field(default_factory=list)  # Unresolved
    resolved_conflicts: list[Conflict] = field(default_factory=list)  # Auto-resolved
    summary: ConflictSummary = field(default_factory=ConflictSummary)


class ConflictEngine:
    """Detects and resolves conflicts across facts and decisions."""

    def __init__(
        self,
        job_graph_id: str,
        clock: Clock | None = None,
        config: AppConfig | None = None,
    ) -> None:
        self.job_graph_id = job_graph_id
        self.clock = resolve_clock(clock)
        self.thresholds = (config or get_config()).thresholds

    def detect_conflicts(
        self, facts: Sequence[Fact], decisions: Sequence[Decision]
    ) -> ConflictDetectionResult:
        """Run every detector in a fixed order.

        Args:
            facts: Current facts
            decisions: Current decisions

        Returns:
            ConflictDetectionResult with unresolved conflicts, auto-resolved
            conflicts and counts
        """
        resolved = self._detect_mi_vs_regs(decisions)

        conflicts: list[Conflict] = []
        conflicts.extend(self._detect_fact_contradictions(facts))
        conflicts.extend(self._detect_missing_critical_data(facts))
        conflicts.extend(self._detect_incompatibilities(facts, decisions))

        summary = ConflictSummary(
            critical=sum(1 for c in conflicts if c.severity == ConflictSeverity.CRITICAL),
            warnings=sum(1 for c in conflicts if c.severity == ConflictSeverity.WARNING),
            info=sum(1 for c in conflicts if c.severity == ConflictSeverity.INFO),
            auto_resolved=len(resolved),
        )
        logger.debug(
            "Conflict detection for %s: %d critical, %d warnings, %d info, %d auto-resolved",
            self.job_graph_id,
            summary.critical,
            summary.warnings,
            summary.info,
            summary.auto_resolved,
        )
        return ConflictDetectionResult(
            conflicts=conflicts, resolved_conflicts=resolved, summary=summary
        )

    def _detect_mi_vs_regs(self, decisions: Sequence[Decision]) -> list[Conflict]:
        by_type: dict[DecisionType, list[Decision]] = defaultdict(list)
        for decision in decisions:
            by_type[decision.decision_type].append(decision)

        resolved: list[Conflict] = []
        for group in by_type.values():
            for i, first in enumerate(group):
                for second in group[i + 1 :]:
                    if first.rule_applied is None or second.rule_applied is None:
                        continue
                    sources = {first.rule_applied.source, second.rule_applied.source}
                    if sources != {
                        RuleSource.MANUFACTURER_INSTRUCTIONS,
                        RuleSource.BUILDING_REGULATIONS,
                    }:
                        continue

                    if first.rule_applied.source == RuleSource.MANUFACTURER_INSTRUCTIONS:
                        mi_decision, regs_decision = first, second
                    else:
                        mi_decision, regs_decision = second, first

                    now = self.clock()
                    resolved.append(
                        Conflict(
                            id=new_id(),
                            job_graph_id=self.job_graph_id,
                            conflict_type=ConflictType.MI_VS_REGS,
                            severity=ConflictSeverity.INFO,
                            description=MI_VS_REGS_DESCRIPTION,
                            rule1=mi_decision.rule_applied,
                            rule2=regs_decision.rule_applied,
                            resolution=(
                                "Manufacturer Instructions take precedence: "
                                f"{mi_decision.decision}"
                            ),
                            affected_decision_ids=[first.id, second.id],
                            resolved_at=now,
                            created_at=now,
                        )
                    )
        return resolved

    def _detect_fact_contradictions(self, facts: Sequence[Fact]) -> list[Conflict]:
        grouped: dict[str, list[Fact]] = defaultdict(list)
        for fact in facts:
            grouped[fact.qualified_key].append(fact)

        conflicts: list[Conflict] = []
        for key, group in grouped.items():
            if len(group) < 2:
                continue
            values = list(dict.fromkeys(f.serialized_value for f in group))
            if len(values) < 2:
                continue

            highest = max(f.confidence for f in group)
            severity = (
                ConflictSeverity.WARNING
                if highest < self.thresholds.contradiction_critical_min_confidence
                else ConflictSeverity.CRITICAL
            )
            conflicts.append(
                self._conflict(
                    ConflictType.FACT_CONTRADICTION,
                    severity,
                    f"Contradictory values for {key}: {', '.join(values)}",
                    affected_fact_ids=[f.id for f in group],
                )
            )
        return conflicts

    def _detect_missing_critical_data(self, facts: Sequence[Fact]) -> list[Conflict]:
        present = {f.qualified_key for f in facts}
        return [
            self._conflict(
                ConflictType.MISSING_DATA,
                ConflictSeverity.CRITICAL,
                f"Missing critical data: {label}",
            )
            for category, key, label in CRITICAL_FACTS
            if f"{category.value}:{key}" not in present
        ]

    def _detect_incompatibilities(
        self, facts: Sequence[Fact], decisions: Sequence[Decision]
    ) -> list[Conflict]:
        fuse = find_fact(facts, FactCategory.ELECTRICAL, "main_fuse_rating")
        if fuse is None:
            return []

        heat_pump_decisions = [
            d
            for d in decisions
            if d.decision_type == DecisionType.SYSTEM_SELECTION
            and "heat pump" in d.decision.lower()
        ]
        if not heat_pump_decisions:
            return []

        rating = as_number(fuse.value)
        minimum = self.thresholds.heat_pump_min_fuse_amps
        if rating >= minimum:
            return []

        return [
            self._conflict(
                ConflictType.INCOMPATIBILITY,
                ConflictSeverity.CRITICAL,
                f"Main fuse ({rating:g}A) insufficient for heat pump installation. "
                f"Minimum {minimum}A required.",
                affected_fact_ids=[fuse.id],
                affected_decision_ids=[d.id for d in heat_pump_decisions],
            )
        ]

    def _conflict(
        self,
        conflict_type: ConflictType,
        severity: ConflictSeverity,
        description: str,
        affected_fact_ids: list[str] | None = None,
        affected_decision_ids: list[str] | None = None,
    ) -> Conflict:
        return Conflict(
            id=new_id(),
            job_graph_id=self.job_graph_id,
            conflict_type=conflict_type,
            severity=severity,
            description=description,
            affected_fact_ids=affected_fact_ids or [],
            affected_decision_ids=affected_decision_ids or [],
            created_at=self.clock(),
        )

    def resolve_conflict(self, conflict: Conflict, resolution: str) -> Conflict:
        return conflict.model_copy(update={"resolution": resolution, "resolved_at": self.clock()})

    @staticmethod
    def is_blocking_conflict(conflict: Conflict) -> bool:
        return conflict.is_blocking

    def get_blocking_conflicts(self, conflicts: Sequence[Conflict]) -> list[Conflict]:
        return [c for c in conflicts if self.is_blocking_conflict(c)]
