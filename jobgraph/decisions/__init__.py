"""Decision recording, evidence checks and decision templates."""

from jobgraph.decisions import patterns
from jobgraph.decisions.recorder import (
    DecisionBuilder,
    DecisionRecorder,
    DecisionValidationError,
    EvidenceValidation,
)

__all__ = [
    "DecisionBuilder",
    "DecisionRecorder",
    "DecisionValidationError",
    "EvidenceValidation",
    "patterns",
]
