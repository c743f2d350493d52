"""Ready-made decision templates for recurring survey outcomes."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from jobgraph.core.clock import Clock
from jobgraph.decisions.recorder import DecisionBuilder
from jobgraph.models import Decision, DecisionCreator, DecisionType, RuleReference

MI_PRECEDENCE_REASONING = (
    "Manufacturer Instructions are more restrictive than Building Regulations "
    "and take precedence"
)


def system_selection(
    job_graph_id: str,
    system_type: str,
    reasoning: str,
    evidence_fact_ids: Sequence[str],
    confidence: int,
    clock: Clock | None = None,
) -> Decision:
    return (
        DecisionBuilder(job_graph_id, clock=clock)
        .type(DecisionType.SYSTEM_SELECTION)
        .decide(f"Install {system_type}")
        .because(reasoning)
        .based_on(*evidence_fact_ids)
        .with_confidence(confidence)
        .by(DecisionCreator.AI)
        .build()
    )


def compliance(
    job_graph_id: str,
    requirement: str,
    rule: RuleReference,
    evidence_fact_ids: Sequence[str],
    confidence: int,
    clock: Clock | None = None,
) -> Decision:
    return (
        DecisionBuilder(job_graph_id, clock=clock)
        .type(DecisionType.COMPLIANCE)
        .decide(f"Comply with {requirement}")
        .because(f"Required by {rule.standard}")
        .applying_rule(rule)
        .based_on(*evidence_fact_ids)
        .with_confidence(confidence)
        .by(DecisionCreator.SYSTEM)
        .build()
    )


def upgrade_required(
    job_graph_id: str,
    upgrade: str,
    reasoning: str,
    evidence_fact_ids: Sequence[str],
    confidence: int,
    risks: Iterable[str] = (),
    clock: Clock | None = None,
) -> Decision:
    builder = (
        DecisionBuilder(job_graph_id, clock=clock)
        .type(DecisionType.UPGRADE_PATH)
        .decide(upgrade)
        .because(reasoning)
        .based_on(*evidence_fact_ids)
        .with_confidence(confidence)
        .by(DecisionCreator.AI)
    )
    for risk in risks:
        builder.with_risk(risk)
    return builder.build()


def mi_precedence(
    job_graph_id: str,
    requirement: str,
    mi_rule: RuleReference,
    building_regs_rule: RuleReference,
    evidence_fact_ids: Sequence[str],
    confidence: int,
    clock: Clock | None = None,
) -> Decision:
    """Compliance decision following MI where it is stricter than Building Regs.

    The less restrictive Building Regs route is kept on the decision as a risk.
    """
    return (
        DecisionBuilder(job_graph_id, clock=clock)
        .type(DecisionType.COMPLIANCE)
        .decide(requirement)
        .because(MI_PRECEDENCE_REASONING)
        .applying_rule(mi_rule)
        .based_on(*evidence_fact_ids)
        .with_confidence(confidence)
        .with_risk(
            f"Building Regs ({building_regs_rule.standard}) would permit a less restrictive approach"
        )
        .by(DecisionCreator.SYSTEM)
        .build()
    )
