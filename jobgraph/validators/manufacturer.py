"""Manufacturer Instructions validator.

Runs first: MI governs wherever it is at least as restrictive as Building
Regulations, so its findings frame everything the other standards report.
"""

from __future__ import annotations

from jobgraph.conflicts.comparator import RuleComparator
from jobgraph.models import (
    ConflictType,
    DecisionType,
    FactCategory,
    Restrictiveness,
    RuleReference,
    RuleSource,
)
from jobgraph.utils.facts import as_number, find_fact
from jobgraph.validators.base import ValidationContext, Validator, fmt

BS5440_TERMINATION_CLEARANCE_MM = 300

_BS5440_TERMINATION_RULE = RuleReference(
    source=RuleSource.BS_STANDARD,
    standard="BS 5440-1:2008",
    description=f"Minimum {BS5440_TERMINATION_CLEARANCE_MM}mm flue termination clearance",
    restrictiveness=Restrictiveness.LESS,
)

# (side, label suffix, rule description suffix)
_CLEARANCES = (
    ("top", "Top clearance", "top clearance required"),
    ("sides", "Side clearance", "side clearance required"),
    ("front", "Front clearance", "front clearance required for servicing access"),
)


def _mi_rule(description: str, restrictive: bool = True) -> RuleReference:
    return RuleReference(
        source=RuleSource.MANUFACTURER_INSTRUCTIONS,
        standard="Manufacturer Instructions",
        description=description,
        restrictiveness=Restrictiveness.MORE if restrictive else None,
    )


class ManufacturerInstructionsValidator(Validator):
    name = "Manufacturer Instructions"
    standard = "Various (Product-specific)"

    def check(self, ctx: ValidationContext) -> None:
        self._check_documentation(ctx)
        self._check_clearances(ctx)
        self._check_flue(ctx)
        self._check_system_requirements(ctx)
        self._note_precedence(ctx)

    def _check_documentation(self, ctx: ValidationContext) -> None:
        make = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "selected_boiler_make")
        model = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "selected_boiler_model")
        documented = find_fact(ctx.facts, FactCategory.REGULATORY, "mi_documented")

        if make is None or model is None:
            ctx.warnings.append("Selected boiler make/model not documented - required to check MI")
            return

        if documented is None or documented.value is not True:
            ctx.warnings.append(
                f"Manufacturer Instructions for {make.value} {model.value} not documented "
                "- CRITICAL for compliance"
            )
            ctx.recommendations.append("Download and review MI before finalizing specification")

    def _check_clearances(self, ctx: ValidationContext) -> None:
        for side, label, rule_text in _CLEARANCES:
            required_fact = find_fact(ctx.facts, FactCategory.REGULATORY, f"mi_clearance_{side}_mm")
            actual_fact = find_fact(ctx.facts, FactCategory.MEASUREMENTS, f"boiler_clearance_{side}")
            if required_fact is None or actual_fact is None:
                continue

            required = as_number(required_fact.value)
            actual = as_number(actual_fact.value)
            if actual >= required:
                continue

            servicing = " for servicing" if side == "front" else ""
            ctx.conflicts.append(
                self.conflict(
                    f"{label} ({fmt(actual)}mm) insufficient{servicing}. "
                    f"MI requires {fmt(required)}mm minimum.",
                    rule1=_mi_rule(f"Minimum {fmt(required)}mm {rule_text}"),
                    affected_fact_ids=[required_fact.id, actual_fact.id],
                )
            )

    def _check_flue(self, ctx: ValidationContext) -> None:
        max_length = find_fact(ctx.facts, FactCategory.REGULATORY, "mi_max_flue_length_m")
        proposed = find_fact(ctx.facts, FactCategory.MEASUREMENTS, "proposed_flue_length_m")
        if max_length is not None and proposed is not None:
            limit = as_number(max_length.value)
            actual = as_number(proposed.value)
            if actual > limit:
                ctx.conflicts.append(
                    self.conflict(
                        f"Proposed flue length ({fmt(actual)}m) exceeds MI maximum ({fmt(limit)}m).",
                        rule1=_mi_rule(f"Maximum flue length {fmt(limit)}m"),
                        affected_fact_ids=[max_length.id, proposed.id],
                    )
                )

        termination = find_fact(
            ctx.facts, FactCategory.REGULATORY, "mi_flue_termination_clearance_mm"
        )
        to_window = find_fact(ctx.facts, FactCategory.MEASUREMENTS, "flue_clearance_to_window")
        if termination is None or to_window is None:
            return

        required = as_number(termination.value)
        actual = as_number(to_window.value)
        if actual >= required:
            return

        mi_rule = _mi_rule(f"Minimum {fmt(required)}mm flue termination clearance")
        outcome = RuleComparator.apply_mi_precedence(
            mi_rule,
            _BS5440_TERMINATION_RULE,
            "clearance",
            required,
            BS5440_TERMINATION_CLEARANCE_MM,
        )
        affected = [termination.id, to_window.id]

        if outcome.winner.source == RuleSource.MANUFACTURER_INSTRUCTIONS:
            ctx.conflicts.append(
                self.conflict(
                    f"Flue termination clearance ({fmt(actual)}mm) insufficient. "
                    f"MI requires {fmt(required)}mm (more restrictive than BS 5440).",
                    rule1=mi_rule,
                    rule2=_BS5440_TERMINATION_RULE,
                    conflict_type=ConflictType.MI_VS_REGS,
                    resolution=f"Follow MI requirement: {fmt(required)}mm clearance",
                    affected_fact_ids=affected,
                )
            )
        else:
            # Short of both figures; the stricter BS 5440 minimum governs
            ctx.conflicts.append(
                self.conflict(
                    f"Flue termination clearance ({fmt(actual)}mm) insufficient. "
                    f"Minimum {fmt(BS5440_TERMINATION_CLEARANCE_MM)}mm required "
                    f"(MI figure {fmt(required)}mm): {outcome.reason}.",
                    rule1=outcome.winner,
                    rule2=mi_rule,
                    affected_fact_ids=affected,
                )
            )

    def _check_system_requirements(self, ctx: ValidationContext) -> None:
        min_pressure = find_fact(ctx.facts, FactCategory.REGULATORY, "mi_min_water_pressure_bar")
        mains = find_fact(ctx.facts, FactCategory.WATER, "mains_pressure_bar")
        if min_pressure is not None and mains is not None:
            required = as_number(min_pressure.value)
            actual = as_number(mains.value)
            if actual < required:
                ctx.conflicts.append(
                    self.conflict(
                        f"Water pressure ({fmt(actual)} bar) insufficient for selected boiler. "
                        f"MI requires minimum {fmt(required)} bar.",
                        rule1=_mi_rule(
                            f"Minimum {fmt(required)} bar water pressure required",
                            restrictive=False,
                        ),
                        conflict_type=ConflictType.INCOMPATIBILITY,
                        affected_fact_ids=[min_pressure.id, mains.id],
                    )
                )

        filter_required = find_fact(ctx.facts, FactCategory.REGULATORY, "mi_filter_required")
        if filter_required is None or filter_required.value is not True:
            return

        filter_specified = any(
            d.decision_type == DecisionType.SPECIFICATION and "filter" in d.decision.lower()
            for d in ctx.decisions
        )
        if not filter_specified:
            ctx.warnings.append(
                "MI requires system filter - ensure specification includes magnetic filter"
            )

    def _note_precedence(self, ctx: ValidationContext) -> None:
        if any(
            f.category == FactCategory.REGULATORY and f.key.startswith("mi_clearance")
            for f in ctx.facts
        ):
            ctx.recommendations.append(
                "Manufacturer Instructions specify clearances - these override Building Regs "
                "if more restrictive"
            )

        mi_decisions = [
            d
            for d in ctx.decisions
            if d.rule_applied is not None
            and d.rule_applied.source == RuleSource.MANUFACTURER_INSTRUCTIONS
            and d.rule_applied.restrictiveness == Restrictiveness.MORE
        ]
        if mi_decisions:
            ctx.recommendations.append(
                f"{len(mi_decisions)} decision(s) based on MI taking precedence over Building Regs"
            )
