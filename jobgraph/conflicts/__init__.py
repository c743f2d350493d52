"""Conflict detection and rule precedence."""

from jobgraph.conflicts.comparator import PrecedenceOutcome, RuleComparator
from jobgraph.conflicts.engine import (
    CRITICAL_FACTS,
    ConflictDetectionResult,
    ConflictEngine,
    ConflictSummary,
)

__all__ = [
    "CRITICAL_FACTS",
    "ConflictDetectionResult",
    "ConflictEngine",
    "ConflictSummary",
    "PrecedenceOutcome",
    "RuleComparator",
]
