"""Job graph orchestration for heating survey-to-quote."""

from jobgraph.models import (
    CompletenessAssessment,
    Conflict,
    ConflictSeverity,
    ConflictType,
    Criticality,
    Decision,
    DecisionCreator,
    DecisionType,
    EvidenceTrail,
    Fact,
    FactCategory,
    FactSource,
    JobGraph,
    JobGraphState,
    JobGraphStatus,
    JobGraphSummary,
    Milestone,
    MilestoneStatus,
    MissingFact,
    ProcessResult,
    Restrictiveness,
    RuleReference,
    RuleSource,
    TimelineEvent,
)
from jobgraph.orchestrator import JobGraphOrchestrator, create_job_graph

__version__ = "0.1.0"

__all__ = [
    "CompletenessAssessment",
    "Conflict",
    "ConflictSeverity",
    "ConflictType",
    "Criticality",
    "Decision",
    "DecisionCreator",
    "DecisionType",
    "EvidenceTrail",
    "Fact",
    "FactCategory",
    "FactSource",
    "JobGraph",
    "JobGraphOrchestrator",
    "JobGraphState",
    "JobGraphStatus",
    "JobGraphSummary",
    "Milestone",
    "MilestoneStatus",
    "MissingFact",
    "ProcessResult",
    "Restrictiveness",
    "RuleReference",
    "RuleSource",
    "TimelineEvent",
    "create_job_graph",
]
