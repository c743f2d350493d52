"""Milestone catalog and tracker."""

from jobgraph.milestones.catalog import (
    MILESTONE_DEFINITIONS,
    STANDARD_MILESTONE_KEYS,
    MilestoneDefinition,
    StandardMilestone,
    UnknownMilestoneError,
    can_start,
    critical_definitions,
    definition_of,
    get_definition,
    transitive_dependencies,
)
from jobgraph.milestones.tracker import ConfidenceFactor, MilestoneProgress, MilestoneTracker

__all__ = [
    "MILESTONE_DEFINITIONS",
    "STANDARD_MILESTONE_KEYS",
    "ConfidenceFactor",
    "MilestoneDefinition",
    "MilestoneProgress",
    "MilestoneTracker",
    "StandardMilestone",
    "UnknownMilestoneError",
    "can_start",
    "critical_definitions",
    "definition_of",
    "get_definition",
    "transitive_dependencies",
]
