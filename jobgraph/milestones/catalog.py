"""Standard milestones for heating system surveys and their requirements.

Building Regulations and Manufacturer Instructions are separate checkpoints
because the two can disagree; MI wins when it is more restrictive.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from jobgraph.models import Criticality, FactCategory


class UnknownMilestoneError(LookupError):
    """Milestone key is not in the catalog (state/catalog mismatch)."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Unknown milestone: {key}")
        self.key = key


class StandardMilestone(str, Enum):
    # Property assessment
    PROPERTY_SURVEYED = "property_surveyed"
    EXISTING_SYSTEM_ASSESSED = "existing_system_assessed"

    # Technical specification
    HEATING_SYSTEM_SPEC = "heating_system_spec"
    ELECTRICAL_CAPACITY_CONFIRMED = "electrical_capacity_confirmed"
    GAS_SUPPLY_ASSESSED = "gas_supply_assessed"
    WATER_SUPPLY_ASSESSED = "water_supply_assessed"
    FLUE_ROUTE_VALIDATED = "flue_route_validated"

    # Customer requirements
    CUSTOMER_REQUIREMENTS_CAPTURED = "customer_requirements_captured"
    BUDGET_DISCUSSED = "budget_discussed"

    # Compliance
    BUILDING_REGS_CHECKED = "building_regs_checked"
    MANUFACTURER_INSTRUCTIONS_CHECKED = "manufacturer_instructions_checked"
    HAZARDS_IDENTIFIED = "hazards_identified"

    # Outputs
    QUOTE_OPTIONS_GENERATED = "quote_options_generated"
    PDF_REPORT_READY = "pdf_report_ready"
    CUSTOMER_PORTAL_READY = "customer_portal_ready"


@dataclass(frozen=True, slots=True)
class MilestoneDefinition:
    """Template a Milestone is instantiated from."""

    key: str
    label: str
    description: str
    required_fact_categories: tuple[FactCategory, ...]
    criticality: Criticality
    dependencies: tuple[str, ...]  # Direct prerequisites (milestone keys)


def _define(
    key: StandardMilestone,
    label: str,
    description: str,
    categories: Iterable[FactCategory],
    criticality: Criticality,
    dependencies: Iterable[StandardMilestone] = (),
) -> MilestoneDefinition:
    return MilestoneDefinition(
        key=key.value,
        label=label,
        description=description,
        required_fact_categories=tuple(categories),
        criticality=criticality,
        dependencies=tuple(dep.value for dep in dependencies),
    )


_S = StandardMilestone
_C = FactCategory

_DEFINITIONS = [
    _define(
        _S.PROPERTY_SURVEYED,
        "Property Surveyed",
        "Basic property characteristics captured",
        [_C.PROPERTY, _C.STRUCTURE],
        Criticality.CRITICAL,
    ),
    _define(
        _S.EXISTING_SYSTEM_ASSESSED,
        "Existing System Assessed",
        "Current heating system documented",
        [_C.EXISTING_SYSTEM],
        Criticality.CRITICAL,
        [_S.PROPERTY_SURVEYED],
    ),
    _define(
        _S.HEATING_SYSTEM_SPEC,
        "Heating System Specification",
        "New heating system fully specified",
        [_C.EXISTING_SYSTEM, _C.CUSTOMER],
        Criticality.CRITICAL,
        [_S.EXISTING_SYSTEM_ASSESSED, _S.CUSTOMER_REQUIREMENTS_CAPTURED],
    ),
    _define(
        _S.ELECTRICAL_CAPACITY_CONFIRMED,
        "Electrical Capacity Confirmed",
        "Electrical supply adequate for new system",
        [_C.ELECTRICAL],
        Criticality.CRITICAL,
        [_S.HEATING_SYSTEM_SPEC],
    ),
    _define(
        _S.GAS_SUPPLY_ASSESSED,
        "Gas Supply Assessed",
        "Gas supply and pipework evaluated",
        [_C.GAS],
        Criticality.CRITICAL,
        [_S.EXISTING_SYSTEM_ASSESSED],
    ),
    _define(
        _S.WATER_SUPPLY_ASSESSED,
        "Water Supply Assessed",
        "Water supply pressure and pipework checked",
        [_C.WATER],
        Criticality.IMPORTANT,
        [_S.PROPERTY_SURVEYED],
    ),
    _define(
        _S.FLUE_ROUTE_VALIDATED,
        "Flue Route Validated",
        "Flue termination complies with BS 5440",
        [_C.STRUCTURE, _C.REGULATORY],
        Criticality.CRITICAL,
        [_S.HEATING_SYSTEM_SPEC],
    ),
    _define(
        _S.CUSTOMER_REQUIREMENTS_CAPTURED,
        "Customer Requirements Captured",
        "Customer needs and preferences documented",
        [_C.CUSTOMER],
        Criticality.CRITICAL,
    ),
    _define(
        _S.BUDGET_DISCUSSED,
        "Budget Discussed",
        "Budget expectations and constraints captured",
        [_C.CUSTOMER],
        Criticality.IMPORTANT,
        [_S.CUSTOMER_REQUIREMENTS_CAPTURED],
    ),
    _define(
        _S.BUILDING_REGS_CHECKED,
        "Building Regulations Checked",
        "Compliance with Building Regs verified",
        [_C.REGULATORY],
        Criticality.CRITICAL,
        [_S.HEATING_SYSTEM_SPEC],
    ),
    _define(
        _S.MANUFACTURER_INSTRUCTIONS_CHECKED,
        "Manufacturer Instructions Checked",
        "MI requirements verified (takes precedence over Building Regs)",
        [_C.REGULATORY],
        Criticality.CRITICAL,
        [_S.HEATING_SYSTEM_SPEC],
    ),
    _define(
        _S.HAZARDS_IDENTIFIED,
        "Hazards Identified",
        "Safety hazards and risks documented",
        [_C.HAZARDS],
        Criticality.CRITICAL,
        [_S.PROPERTY_SURVEYED],
    ),
    _define(
        _S.QUOTE_OPTIONS_GENERATED,
        "Quote Options Generated",
        "Multiple quote options ready for customer",
        [_C.CUSTOMER],
        Criticality.CRITICAL,
        [
            _S.HEATING_SYSTEM_SPEC,
            _S.ELECTRICAL_CAPACITY_CONFIRMED,
            _S.BUILDING_REGS_CHECKED,
            _S.MANUFACTURER_INSTRUCTIONS_CHECKED,
        ],
    ),
    _define(
        _S.PDF_REPORT_READY,
        "PDF Report Ready",
        "Conservative PDF report ready to leave with customer",
        [],
        Criticality.IMPORTANT,
        [_S.QUOTE_OPTIONS_GENERATED],
    ),
    _define(
        _S.CUSTOMER_PORTAL_READY,
        "Customer Portal Ready",
        "Interactive portal showing options and trade-offs",
        [],
        Criticality.OPTIONAL,
        [_S.QUOTE_OPTIONS_GENERATED],
    ),
]

MILESTONE_DEFINITIONS: Mapping[str, MilestoneDefinition] = MappingProxyType(
    {definition.key: definition for definition in _DEFINITIONS}
)

# Milestones instantiated for every new job graph
STANDARD_MILESTONE_KEYS: tuple[str, ...] = tuple(
    key.value
    for key in (
        _S.PROPERTY_SURVEYED,
        _S.EXISTING_SYSTEM_ASSESSED,
        _S.CUSTOMER_REQUIREMENTS_CAPTURED,
        _S.HEATING_SYSTEM_SPEC,
        _S.ELECTRICAL_CAPACITY_CONFIRMED,
        _S.GAS_SUPPLY_ASSESSED,
        _S.WATER_SUPPLY_ASSESSED,
        _S.FLUE_ROUTE_VALIDATED,
        _S.BUILDING_REGS_CHECKED,
        _S.MANUFACTURER_INSTRUCTIONS_CHECKED,
        _S.HAZARDS_IDENTIFIED,
        _S.QUOTE_OPTIONS_GENERATED,
    )
)


def get_definition(key: str) -> MilestoneDefinition | None:
    return MILESTONE_DEFINITIONS.get(key)


def definition_of(key: str) -> MilestoneDefinition:
    """Look up a milestone definition.

    Raises:
        UnknownMilestoneError: If the key is not in the catalog
    """
    definition = MILESTONE_DEFINITIONS.get(key)
    if definition is None:
        raise UnknownMilestoneError(key)
    return definition


def critical_definitions() -> list[MilestoneDefinition]:
    return [
        definition
        for definition in MILESTONE_DEFINITIONS.values()
        if definition.criticality == Criticality.CRITICAL
    ]


def transitive_dependencies(key: str) -> list[str]:
    """All prerequisites of a milestone, breadth-first.

    Unknown keys (including unknown prerequisites) contribute nothing.
    """
    definition = MILESTONE_DEFINITIONS.get(key)
    if definition is None:
        return []

    visited: set[str] = set()
    ordered: list[str] = []
    queue = deque(definition.dependencies)

    while queue:
        dep = queue.popleft()
        if dep in visited:
            continue
        visited.add(dep)
        ordered.append(dep)
        dep_definition = MILESTONE_DEFINITIONS.get(dep)
        if dep_definition is not None:
            queue.extend(dep_definition.dependencies)

    return ordered


def can_start(key: str, completed_keys: Iterable[str]) -> bool:
    """True when every direct prerequisite is complete.

    Only direct dependencies gate starting; the transitive closure does not.
    """
    definition = MILESTONE_DEFINITIONS.get(key)
    if definition is None:
        return False
    completed = set(completed_keys)
    return all(dep in completed for dep in definition.dependencies)
