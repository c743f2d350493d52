"""BS 5440 validator: flue termination and ventilation."""

from __future__ import annotations

from jobgraph.models import FactCategory, RuleReference, RuleSource
from jobgraph.utils.facts import as_number, as_text, find_fact
from jobgraph.validators.base import ValidationContext, Validator, fmt

HORIZONTAL_FLUE_TYPES = frozenset({"fanned_round", "fanned_square", "balanced"})
MIN_CLEARANCE_TO_WINDOW_MM = 300
MIN_CLEARANCE_TO_OPENING_MM = 600
MIN_HEIGHT_ABOVE_ROOF_MM = 600


def _rule(standard: str, section: str, description: str) -> RuleReference:
    return RuleReference(
        source=RuleSource.BS_STANDARD,
        standard=standard,
        section=section,
        description=description,
    )


class BS5440Validator(Validator):
    name = "BS 5440 - Flues and Ventilation"
    standard = "BS 5440-1:2008 & BS 5440-2:2009"

    def check(self, ctx: ValidationContext) -> None:
        self._check_flue_termination(ctx)
        self._check_ventilation(ctx)
        self._check_clearances_documented(ctx)

    def _check_flue_termination(self, ctx: ValidationContext) -> None:
        flue_type = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "flue_type")
        flue_route = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "flue_route")

        if flue_type is None:
            ctx.warnings.append("Flue type not documented")
            return

        if isinstance(flue_type.value, str) and flue_type.value in HORIZONTAL_FLUE_TYPES:
            self._check_horizontal_clearances(ctx)

        route = as_text(flue_route.value) if flue_route is not None else None
        if route and ("vertical" in route or "ridge" in route):
            self._check_vertical_height(ctx)

    def _check_horizontal_clearances(self, ctx: ValidationContext) -> None:
        to_window = find_fact(ctx.facts, FactCategory.MEASUREMENTS, "flue_clearance_to_window")
        if to_window is not None:
            clearance = as_number(to_window.value)
            if clearance < MIN_CLEARANCE_TO_WINDOW_MM:
                ctx.conflicts.append(
                    self.conflict(
                        f"Flue termination too close to window: {fmt(clearance)}mm. "
                        f"Minimum {MIN_CLEARANCE_TO_WINDOW_MM}mm required.",
                        rule1=_rule(
                            "BS 5440-1:2008",
                            "Table A.2",
                            "Minimum 300mm clearance from opening windows",
                        ),
                        affected_fact_ids=[to_window.id],
                    )
                )

        to_opening = find_fact(ctx.facts, FactCategory.MEASUREMENTS, "flue_clearance_to_opening")
        if to_opening is not None:
            clearance = as_number(to_opening.value)
            if clearance < MIN_CLEARANCE_TO_OPENING_MM:
                ctx.conflicts.append(
                    self.conflict(
                        f"Flue termination too close to building opening: {fmt(clearance)}mm. "
                        f"Minimum {MIN_CLEARANCE_TO_OPENING_MM}mm required.",
                        rule1=_rule(
                            "BS 5440-1:2008",
                            "Table A.2",
                            "Minimum 600mm clearance from openings into buildings",
                        ),
                        affected_fact_ids=[to_opening.id],
                    )
                )

    def _check_vertical_height(self, ctx: ValidationContext) -> None:
        height_fact = find_fact(ctx.facts, FactCategory.MEASUREMENTS, "flue_height_above_roof")
        if height_fact is None:
            return
        height = as_number(height_fact.value)
        if height < MIN_HEIGHT_ABOVE_ROOF_MM:
            ctx.conflicts.append(
                self.conflict(
                    f"Vertical flue height insufficient: {fmt(height)}mm. "
                    f"Minimum {MIN_HEIGHT_ABOVE_ROOF_MM}mm above roof required.",
                    rule1=_rule(
                        "BS 5440-1:2008",
                        "Section 4.3",
                        "Minimum 600mm flue height above roof penetration",
                    ),
                    affected_fact_ids=[height_fact.id],
                )
            )

    def _check_ventilation(self, ctx: ValidationContext) -> None:
        location_fact = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "boiler_location")
        ventilation = find_fact(ctx.facts, FactCategory.STRUCTURE, "permanent_ventilation")

        location = as_text(location_fact.value) if location_fact is not None else None
        if not location or ("cupboard" not in location and "compartment" not in location):
            return

        if ventilation is None or ventilation.value is False:
            ctx.conflicts.append(
                self.conflict(
                    "Boiler in cupboard/compartment requires permanent ventilation",
                    rule1=_rule(
                        "BS 5440-2:2009",
                        "Section 5",
                        "Permanent ventilation required for appliances in cupboards",
                    ),
                    affected_fact_ids=[location_fact.id],
                )
            )

    def _check_clearances_documented(self, ctx: ValidationContext) -> None:
        documented = any(
            find_fact(ctx.facts, FactCategory.MEASUREMENTS, f"boiler_clearance_{side}") is not None
            for side in ("top", "sides", "front")
        )
        if not documented:
            ctx.warnings.append(
                "Boiler clearances not documented - check Manufacturer Instructions"
            )
