"""HSG264 validator: gas meter access, pipe sizing, supply pressure, combustion air.

Normal mains gas pressure is 19-23 mbar at the meter.
"""

from __future__ import annotations

from jobgraph.models import FactCategory, RuleReference, RuleSource
from jobgraph.utils.facts import as_number, as_text, find_fact
from jobgraph.validators.base import ValidationContext, Validator, fmt

PRESSURE_CRITICAL_BELOW_MBAR = 17
PRESSURE_NORMAL_MIN_MBAR = 19
PRESSURE_NORMAL_MAX_MBAR = 23
PRESSURE_HIGH_ABOVE_MBAR = 25
MIN_ROOM_VOLUME_M3 = 5

# 22mm pipe: max 60kW under 20m, max 44kW for 20-30m
SMALL_PIPE_MM = 22
SMALL_PIPE_MAX_KW_SHORT = 60
SMALL_PIPE_MAX_KW_MEDIUM = 44


def _rule(section: str, description: str) -> RuleReference:
    return RuleReference(
        source=RuleSource.HSG_GUIDANCE,
        standard="HSG264",
        section=section,
        description=description,
    )


class HSG264Validator(Validator):
    name = "HSG264 - Gas Safety"
    standard = "HSG264"

    def check(self, ctx: ValidationContext) -> None:
        self._check_meter_access(ctx)
        self._check_pipework(ctx)
        self._check_pressure(ctx)
        self._check_combustion_air(ctx)

    def _check_meter_access(self, ctx: ValidationContext) -> None:
        location = find_fact(ctx.facts, FactCategory.GAS, "meter_location")
        accessible = find_fact(ctx.facts, FactCategory.GAS, "meter_accessible")

        if location is None:
            ctx.warnings.append("Gas meter location not documented")
            return

        if accessible is not None and accessible.value is False:
            ctx.conflicts.append(
                self.conflict(
                    "Gas meter not accessible - requires accessible location for emergency isolation",
                    rule1=_rule(
                        "Emergency controls",
                        "Gas emergency control valve must be readily accessible",
                    ),
                    affected_fact_ids=[accessible.id],
                )
            )

    def _check_pipework(self, ctx: ValidationContext) -> None:
        size_fact = find_fact(ctx.facts, FactCategory.GAS, "supply_pipe_size")
        length_fact = find_fact(ctx.facts, FactCategory.GAS, "supply_pipe_length")
        kw_fact = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "boiler_kw_rating")

        if size_fact is None:
            ctx.warnings.append(
                "Gas supply pipe size not documented - required for capacity calculation"
            )
            return
        if kw_fact is None:
            ctx.warnings.append(
                "Boiler kW rating not documented - required for pipe sizing validation"
            )
            return

        size = as_number(size_fact.value)
        length = as_number(length_fact.value) if length_fact is not None else 0.0
        kw = as_number(kw_fact.value)

        if size != SMALL_PIPE_MM:
            return

        if kw > SMALL_PIPE_MAX_KW_SHORT and length < 20:
            ctx.warnings.append(
                f"22mm gas pipe may be undersized for {fmt(kw)}kW boiler. Consider 28mm pipe."
            )

        if kw > SMALL_PIPE_MAX_KW_MEDIUM and 20 <= length <= 30:
            ctx.conflicts.append(
                self.conflict(
                    f"22mm gas pipe undersized for {fmt(kw)}kW boiler over {fmt(length)}m. "
                    "Requires 28mm minimum.",
                    rule1=_rule(
                        "Pipe sizing",
                        "Gas pipe must be adequately sized for appliance load and length",
                    ),
                    affected_fact_ids=[size_fact.id, kw_fact.id],
                )
            )

    def _check_pressure(self, ctx: ValidationContext) -> None:
        pressure_fact = find_fact(ctx.facts, FactCategory.GAS, "supply_pressure_mbar")
        if pressure_fact is None:
            ctx.warnings.append("Gas supply pressure not measured - required for commissioning")
            return

        pressure = as_number(pressure_fact.value)
        normal = f"Normal range {PRESSURE_NORMAL_MIN_MBAR}-{PRESSURE_NORMAL_MAX_MBAR} mbar."

        if pressure < PRESSURE_CRITICAL_BELOW_MBAR:
            ctx.conflicts.append(
                self.conflict(
                    f"Gas supply pressure too low: {fmt(pressure)}mbar. {normal}",
                    rule1=_rule(
                        "Gas pressure",
                        "Adequate gas pressure required for appliance operation",
                    ),
                    affected_fact_ids=[pressure_fact.id],
                )
            )
        elif pressure < PRESSURE_NORMAL_MIN_MBAR:
            ctx.warnings.append(
                f"Gas supply pressure low: {fmt(pressure)}mbar. {normal} "
                "May affect appliance performance."
            )
        elif pressure > PRESSURE_HIGH_ABOVE_MBAR:
            ctx.warnings.append(
                f"Gas supply pressure high: {fmt(pressure)}mbar. {normal} Check for issues."
            )
        elif pressure > PRESSURE_NORMAL_MAX_MBAR:
            ctx.warnings.append(
                f"Gas supply pressure above normal: {fmt(pressure)}mbar. {normal} "
                "Monitor at commissioning."
            )

    def _check_combustion_air(self, ctx: ValidationContext) -> None:
        boiler_type = find_fact(ctx.facts, FactCategory.EXISTING_SYSTEM, "boiler_type")
        ventilation = find_fact(ctx.facts, FactCategory.STRUCTURE, "permanent_ventilation")

        type_text = as_text(boiler_type.value) if boiler_type is not None else None
        if type_text and "open flue" in type_text:
            if ventilation is None or ventilation.value is not True:
                ctx.conflicts.append(
                    self.conflict(
                        "Open flue appliance requires permanent ventilation for combustion air",
                        rule1=_rule("Ventilation", "Open flue appliances require adequate ventilation"),
                        affected_fact_ids=[boiler_type.id],
                    )
                )

        volume_fact = find_fact(ctx.facts, FactCategory.STRUCTURE, "boiler_room_volume_m3")
        if volume_fact is not None:
            volume = as_number(volume_fact.value)
            if volume < MIN_ROOM_VOLUME_M3:
                ctx.warnings.append(
                    f"Small boiler room ({fmt(volume)}m³). Ensure adequate ventilation per HSG264."
                )
