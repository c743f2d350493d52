"""BS 7671 validator: supply capacity, earthing, RCD protection and bonding."""

from __future__ import annotations

from jobgraph.models import ConflictType, DecisionType, FactCategory, RuleReference, RuleSource
from jobgraph.utils.facts import as_number, as_text, find_fact
from jobgraph.validators.base import ValidationContext, Validator, fmt

HEAT_PUMP_MIN_FUSE_A = 80
HEAT_PUMP_RECOMMENDED_FUSE_A = 100
EV_CHARGER_MIN_FUSE_A = 80
MODERN_HEATING_MIN_FUSE_A = 60


class BS7671Validator(Validator):
    name = "BS 7671 - Electrical Safety"
    standard = "BS 7671:2018+A2:2022"

    def check(self, ctx: ValidationContext) -> None:
        self._check_main_fuse(ctx)
        self._check_earthing(ctx)
        self._check_rcd_protection(ctx)
        self._check_bonding(ctx)

    def _selection_mentioning(self, ctx: ValidationContext, phrase: str):
        return next(
            (
                d
                for d in ctx.decisions
                if d.decision_type == DecisionType.SYSTEM_SELECTION
                and phrase in d.decision.lower()
            ),
            None,
        )

    def _check_main_fuse(self, ctx: ValidationContext) -> None:
        fuse_fact = find_fact(ctx.facts, FactCategory.ELECTRICAL, "main_fuse_rating")
        if fuse_fact is None:
            ctx.warnings.append("Main fuse rating not documented")
            return

        rating = as_number(fuse_fact.value)

        heat_pump = self._selection_mentioning(ctx, "heat pump")
        if heat_pump is not None:
            if rating < HEAT_PUMP_MIN_FUSE_A:
                ctx.conflicts.append(
                    self.conflict(
                        f"Main fuse ({fmt(rating)}A) insufficient for heat pump. "
                        f"Minimum {HEAT_PUMP_MIN_FUSE_A}A required.",
                        rule1=RuleReference(
                            source=RuleSource.BS_STANDARD,
                            standard="BS 7671:2018",
                            section="Section 331",
                            description="Adequate supply capacity required for heat pumps",
                        ),
                        conflict_type=ConflictType.INCOMPATIBILITY,
                        affected_fact_ids=[fuse_fact.id],
                        affected_decision_ids=[heat_pump.id],
                    )
                )
            elif rating < HEAT_PUMP_RECOMMENDED_FUSE_A:
                ctx.warnings.append(
                    f"Main fuse ({fmt(rating)}A) may be marginal for heat pump. "
                    "Consider 100A upgrade."
                )

        ev_charger = self._selection_mentioning(ctx, "ev charger")
        if ev_charger is not None and rating < EV_CHARGER_MIN_FUSE_A:
            ctx.warnings.append(
                f"Main fuse ({fmt(rating)}A) may be insufficient for EV charger with other loads."
            )

        if rating < MODERN_HEATING_MIN_FUSE_A:
            ctx.warnings.append(
                f"Main fuse ({fmt(rating)}A) is low for modern heating systems. "
                "Consider 80-100A upgrade."
            )

    def _check_earthing(self, ctx: ValidationContext) -> None:
        earthing_fact = find_fact(ctx.facts, FactCategory.ELECTRICAL, "earthing_type")
        if earthing_fact is None:
            ctx.warnings.append("Earthing system type not documented - critical for EV chargers")
            return

        earthing = str(earthing_fact.value).lower()
        if "tn-c-s" in earthing or "pme" in earthing:
            ctx.warnings.append(
                "TN-C-S (PME) earthing: EV charger requires additional earthing electrode "
                "per BS 7671 Section 722"
            )
        if "tt" in earthing:
            ctx.warnings.append(
                "TT earthing system: Ensure RCD protection in place per BS 7671 Section 411.5"
            )

    def _check_rcd_protection(self, ctx: ValidationContext) -> None:
        location_fact = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "boiler_location")
        rcd = find_fact(ctx.facts, FactCategory.ELECTRICAL, "rcd_protection")

        location = as_text(location_fact.value) if location_fact is not None else None
        if not location or ("bathroom" not in location and "wet room" not in location):
            return

        if rcd is None or rcd.value is not True:
            ctx.conflicts.append(
                self.conflict(
                    "Appliance in bathroom/wet room requires RCD protection",
                    rule1=RuleReference(
                        source=RuleSource.BS_STANDARD,
                        standard="BS 7671:2018",
                        section="Section 701 (Locations containing bath or shower)",
                        description="RCD protection required for electrical equipment in bathrooms",
                    ),
                    affected_fact_ids=[location_fact.id],
                )
            )

    def _check_bonding(self, ctx: ValidationContext) -> None:
        for key, supply in (("gas_bonding_present", "Gas"), ("water_bonding_present", "Water")):
            bonding = find_fact(ctx.facts, FactCategory.ELECTRICAL, key)
            if bonding is None or bonding.value is not True:
                ctx.warnings.append(
                    f"{supply} supply bonding not documented - required per BS 7671 "
                    "Section 411.3.1.2"
                )
