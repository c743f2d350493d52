"""Job graph Pydantic models for type-safe data validation.

Facts, decisions and conflicts are frozen: corrections are recorded as new
records rather than edits, so every output can be traced back to the evidence
that produced it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from jobgraph.core.clock import new_id, utc_now
from jobgraph.utils.facts import qualified_key, serialize_value


class JobGraphStatus(str, Enum):
    """Overall job state for a property visit."""

    IN_PROGRESS = "in_progress"  # Actively capturing and processing data
    READY_FOR_OUTPUTS = "ready_for_outputs"  # All critical milestones complete
    COMPLETE = "complete"  # Outputs generated, set externally
    BLOCKED = "blocked"  # Unresolved critical conflict


class MilestoneStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"


class Criticality(str, Enum):
    CRITICAL = "critical"
    IMPORTANT = "important"
    OPTIONAL = "optional"


class FactCategory(str, Enum):
    """Logical grouping of facts."""

    PROPERTY = "property"  # Building characteristics
    EXISTING_SYSTEM = "existing_system"  # Current heating/electrical/gas setup
    ELECTRICAL = "electrical"
    GAS = "gas"
    WATER = "water"
    STRUCTURE = "structure"  # Walls, roof, ventilation openings
    ACCESS = "access"
    MEASUREMENTS = "measurements"
    REGULATORY = "regulatory"
    CUSTOMER = "customer"
    HAZARDS = "hazards"
    OTHER = "other"


class FactSource(str, Enum):
    """How a fact was obtained."""

    AI = "ai"  # Extracted from voice/images
    MANUAL = "manual"  # Engineer entered
    MEASUREMENT = "measurement"  # LiDAR, thermal, meters
    CALCULATION = "calculation"  # Derived from other facts
    LOOKUP = "lookup"  # External data source


class DecisionType(str, Enum):
    SYSTEM_SELECTION = "system_selection"
    COMPLIANCE = "compliance"
    UPGRADE_PATH = "upgrade_path"
    SPECIFICATION = "specification"
    RISK_MITIGATION = "risk_mitigation"
    CUSTOMER_OPTION = "customer_option"


class DecisionCreator(str, Enum):
    AI = "ai"
    ENGINEER = "engineer"
    SYSTEM = "system"


class RuleSource(str, Enum):
    """Where a rule comes from."""

    MANUFACTURER_INSTRUCTIONS = "manufacturer_instructions"  # Wins when more restrictive
    BUILDING_REGULATIONS = "building_regulations"
    BS_STANDARD = "bs_standard"
    HSG_GUIDANCE = "hsg_guidance"
    INDUSTRY_BEST_PRACTICE = "industry_best_practice"
    LOCAL_AUTHORITY = "local_authority"


class Restrictiveness(str, Enum):
    """Restrictiveness relative to Building Regulations."""

    MORE = "more"
    LESS = "less"
    EQUAL = "equal"


class ConflictType(str, Enum):
    MI_VS_REGS = "mi_vs_regs"
    FACT_CONTRADICTION = "fact_contradiction"
    VALIDATION_FAILURE = "validation_failure"
    INCOMPATIBILITY = "incompatibility"
    MISSING_DATA = "missing_data"
    RISK_UNMITIGATED = "risk_unmitigated"


class ConflictSeverity(str, Enum):
    CRITICAL = "critical"  # Blocks progress until resolved
    WARNING = "warning"  # Should be addressed, can proceed
    INFO = "info"  # No action required


def _check_confidence(v: int) -> int:
    if not 0 <= v <= 100:
        raise ValueError("confidence must be between 0 and 100")
    return v


class JobGraph(BaseModel):
    """Orchestration state for one property visit."""

    id: str = Field(default_factory=new_id)
    visit_id: str
    property_id: str
    status: JobGraphStatus = JobGraphStatus.IN_PROGRESS
    overall_confidence: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Milestone(BaseModel):
    """A progress checkpoint, e.g. "Electrical Capacity Confirmed"."""

    id: str = Field(default_factory=new_id)
    job_graph_id: str
    key: str  # Stable catalog key like "heating_system_spec"
    label: str
    status: MilestoneStatus = MilestoneStatus.PENDING
    confidence: int = 0
    blockers: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def criticality(self) -> Criticality | None:
        level = self.metadata.get("criticality_level")
        if level is None:
            return None
        return Criticality(level)

    @property
    def is_complete(self) -> bool:
        return self.status == MilestoneStatus.COMPLETE

    class Config:
        json_schema_extra = {
            "example": {
                "job_graph_id": "jg-42",
                "key": "electrical_capacity_confirmed",
                "label": "Electrical Capacity Confirmed",
                "status": "pending",
                "confidence": 0,
                "blockers": [],
                "metadata": {
                    "description": "Electrical supply adequate for new system",
                    "criticality_level": "critical",
                    "required_fact_categories": ["electrical"],
                },
            }
        }


class Fact(BaseModel):
    """Atomic piece of evidence captured on site."""

    id: str = Field(default_factory=new_id)
    job_graph_id: str = ""
    source_event_id: str | None = None  # Timeline event it came from
    category: FactCategory
    key: str  # e.g. "boiler_age", "main_fuse_rating"
    value: Any
    unit: str | None = None  # "A", "mm", "kW", ...
    confidence: int = 50
    extracted_by: FactSource = FactSource.AI
    notes: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: int) -> int:
        return _check_confidence(v)

    @property
    def qualified_key(self) -> str:
        return qualified_key(self.category, self.key)

    @property
    def serialized_value(self) -> str:
        return serialize_value(self.value)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "job_graph_id": "jg-42",
                "source_event_id": "evt-voice-0007",
                "category": "electrical",
                "key": "main_fuse_rating",
                "value": 100,
                "unit": "A",
                "confidence": 85,
                "extracted_by": "measurement",
            }
        }


class RuleReference(BaseModel):
    """Pointer to a regulation or manufacturer instruction."""

    source: RuleSource
    standard: str  # "BS 5440-1:2008", "Worcester Bosch Greenstar 8000"
    section: str | None = None
    description: str
    restrictiveness: Restrictiveness | None = None

    class Config:
        frozen = True


class Decision(BaseModel):
    """A choice made with evidence and reasoning."""

    id: str = Field(default_factory=new_id)
    job_graph_id: str = ""
    milestone_id: str | None = None
    decision_type: DecisionType
    decision: str
    reasoning: str
    rule_applied: RuleReference | None = None
    evidence_fact_ids: list[str] = Field(default_factory=list)
    confidence: int
    risks: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    created_by: DecisionCreator = DecisionCreator.SYSTEM

    @field_validator("confidence")
    @classmethod
    def validate_confidence(cls, v: int) -> int:
        return _check_confidence(v)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "job_graph_id": "jg-42",
                "decision_type": "system_selection",
                "decision": "Install air source heat pump",
                "reasoning": "Customer wants low-carbon heating; 100A supply confirmed",
                "evidence_fact_ids": ["fact-1", "fact-2"],
                "confidence": 80,
                "risks": [],
                "created_by": "engineer",
            }
        }


class Conflict(BaseModel):
    """A detected contradiction, compliance failure or incompatibility."""

    id: str = Field(default_factory=new_id)
    job_graph_id: str = ""
    conflict_type: ConflictType
    severity: ConflictSeverity
    description: str
    rule1: RuleReference | None = None
    rule2: RuleReference | None = None
    resolution: str | None = None
    affected_fact_ids: list[str] = Field(default_factory=list)
    affected_decision_ids: list[str] = Field(default_factory=list)
    resolved_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def is_blocking(self) -> bool:
        """Critical and unresolved: blocks milestones and output readiness."""
        return self.severity == ConflictSeverity.CRITICAL and self.resolved_at is None

    @property
    def signature(self) -> tuple[str, str, tuple[str, ...], tuple[str, ...]]:
        """Identity of the underlying problem, stable across detection passes."""
        return (
            self.conflict_type.value,
            self.description,
            tuple(sorted(self.affected_fact_ids)),
            tuple(sorted(self.affected_decision_ids)),
        )

    class Config:
        frozen = True


class TimelineEvent(BaseModel):
    """Capture event (photo, voice note, measurement) that sourced facts."""

    event_id: str
    type: str
    timestamp: datetime


class EvidenceTrail(BaseModel):
    """Links a decision back to its facts and originating capture events."""

    decision: Decision
    facts: list[Fact] = Field(default_factory=list)
    source_events: list[TimelineEvent] = Field(default_factory=list)


class JobGraphSummary(BaseModel):
    """Lightweight view for dashboards."""

    id: str
    visit_id: str
    property_id: str
    status: JobGraphStatus
    overall_confidence: int
    completed_milestones: int
    total_milestones: int
    critical_conflicts: int
    warning_conflicts: int
    updated_at: datetime


class MissingFact(BaseModel):
    category: FactCategory
    key: str
    description: str


class CompletenessAssessment(BaseModel):
    """Gates quote, PDF and portal generation."""

    overall_percentage: int
    ready_for_quote: bool
    ready_for_pdf: bool
    ready_for_portal: bool
    missing_critical_facts: list[MissingFact] = Field(default_factory=list)
    unresolved_conflicts: list[Conflict] = Field(default_factory=list)


class JobGraphState(BaseModel):
    """Complete state of a job, loaded and persisted by the caller."""

    graph: JobGraph
    milestones: list[Milestone] = Field(default_factory=list)
    facts: list[Fact] = Field(default_factory=list)
    decisions: list[Decision] = Field(default_factory=list)
    conflicts: list[Conflict] = Field(default_factory=list)


class ProcessResult(BaseModel):
    """Output of one orchestration pass."""

    updated_state: JobGraphState
    summary: JobGraphSummary
    completeness: CompletenessAssessment
    warnings: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
