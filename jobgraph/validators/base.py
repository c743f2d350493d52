"""Base class for regulatory validators.

Defines the contract every standard-specific validator implements and the
conflict factory they share.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

from jobgraph.core.clock import Clock, new_id, resolve_clock
from jobgraph.models import (
    Conflict,
    ConflictSeverity,
    ConflictType,
    Decision,
    Fact,
    RuleReference,
)


@dataclass(slots=True)
class ValidationResult:
    valid: bool  # No critical conflicts
    conflicts: list[Conflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ValidationContext:
    """Mutable accumulator passed through a validator's individual checks."""

    facts: Sequence[Fact]
    decisions: Sequence[Decision]
    conflicts: list[Conflict] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def fmt(value: float) -> str:
    """Render a measured number without a trailing ``.0``."""
    return f"{value:g}"


class Validator(ABC):
    """Abstract base class for regulatory validators.

    Key principles:
    1. Each validator checks exactly ONE standard
    2. Validators are pure: same facts and decisions, same result
    3. Failures are data - conflicts, warnings and recommendations - never exceptions
    4. Conflicts carry no job graph id; the orchestrator stamps it
    """

    name: str
    standard: str

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = resolve_clock(clock)
        self.logger = logging.getLogger(f"{__name__}.{type(self).__name__}")

    @abstractmethod
    def check(self, ctx: ValidationContext) -> None:
        """Run the standard's checks, appending findings to ``ctx``."""
        pass

    def validate(self, facts: Sequence[Fact], decisions: Sequence[Decision]) -> ValidationResult:
        """Public entry point called by the orchestrator."""
        ctx = ValidationContext(facts=facts, decisions=decisions)
        self.check(ctx)

        valid = not any(c.severity == ConflictSeverity.CRITICAL for c in ctx.conflicts)
        self.logger.debug(
            "%s: %d conflicts, %d warnings", self.name, len(ctx.conflicts), len(ctx.warnings)
        )
        return ValidationResult(
            valid=valid,
            conflicts=ctx.conflicts,
            warnings=ctx.warnings,
            recommendations=ctx.recommendations,
        )

    def conflict(
        self,
        description: str,
        rule1: RuleReference,
        affected_fact_ids: list[str],
        conflict_type: ConflictType = ConflictType.VALIDATION_FAILURE,
        severity: ConflictSeverity = ConflictSeverity.CRITICAL,
        rule2: RuleReference | None = None,
        resolution: str | None = None,
        affected_decision_ids: list[str] | None = None,
    ) -> Conflict:
        return Conflict(
            id=new_id(),
            job_graph_id="",
            conflict_type=conflict_type,
            severity=severity,
            description=description,
            rule1=rule1,
            rule2=rule2,
            resolution=resolution,
            affected_fact_ids=affected_fact_ids,
            affected_decision_ids=affected_decision_ids or [],
            created_at=self.clock(),
        )
