"""Unit tests for the milestone catalog."""

from __future__ import annotations

import pytest

from jobgraph.milestones.catalog import (
    MILESTONE_DEFINITIONS,
    STANDARD_MILESTONE_KEYS,
    StandardMilestone,
    UnknownMilestoneError,
    can_start,
    critical_definitions,
    definition_of,
    get_definition,
    transitive_dependencies,
)
from jobgraph.models import Criticality, FactCategory


class TestDefinitions:
    def test_every_standard_milestone_defined(self):
        assert set(MILESTONE_DEFINITIONS) == {m.value for m in StandardMilestone}
        assert len(MILESTONE_DEFINITIONS) == 15

    def test_standard_keys_subset(self):
        assert len(STANDARD_MILESTONE_KEYS) == 12
        assert set(STANDARD_MILESTONE_KEYS) <= set(MILESTONE_DEFINITIONS)
        assert "pdf_report_ready" not in STANDARD_MILESTONE_KEYS
        assert "budget_discussed" not in STANDARD_MILESTONE_KEYS

    def test_dependencies_reference_known_keys(self):
        for definition in MILESTONE_DEFINITIONS.values():
            for dep in definition.dependencies:
                assert dep in MILESTONE_DEFINITIONS

    def test_quote_options_definition(self):
        definition = definition_of("quote_options_generated")

        assert definition.criticality == Criticality.CRITICAL
        assert definition.required_fact_categories == (FactCategory.CUSTOMER,)
        assert set(definition.dependencies) == {
            "heating_system_spec",
            "electrical_capacity_confirmed",
            "building_regs_checked",
            "manufacturer_instructions_checked",
        }

    def test_catalog_is_read_only(self):
        with pytest.raises(TypeError):
            MILESTONE_DEFINITIONS["new"] = MILESTONE_DEFINITIONS["property_surveyed"]


class TestLookups:
    def test_get_definition_unknown(self):
        assert get_definition("not_a_milestone") is None

    def test_definition_of_unknown_raises(self):
        with pytest.raises(UnknownMilestoneError) as exc_info:
            definition_of("not_a_milestone")

        assert exc_info.value.key == "not_a_milestone"
        assert isinstance(exc_info.value, LookupError)

    def test_critical_definitions(self):
        keys = {d.key for d in critical_definitions()}
        assert "property_surveyed" in keys
        assert "water_supply_assessed" not in keys
        assert "customer_portal_ready" not in keys


class TestDependencies:
    def test_root_has_none(self):
        assert transitive_dependencies("property_surveyed") == []

    def test_transitive_closure(self):
        deps = transitive_dependencies("electrical_capacity_confirmed")

        assert set(deps) == {
            "heating_system_spec",
            "existing_system_assessed",
            "customer_requirements_captured",
            "property_surveyed",
        }
        assert len(deps) == len(set(deps))
        assert deps[0] == "heating_system_spec"

    def test_unknown_key(self):
        assert transitive_dependencies("nope") == []


class TestCanStart:
    def test_no_dependencies(self):
        assert can_start("property_surveyed", [])
        assert can_start("customer_requirements_captured", set())

    def test_quote_options_requires_all_direct_prerequisites(self):
        direct = {
            "heating_system_spec",
            "electrical_capacity_confirmed",
            "building_regs_checked",
            "manufacturer_instructions_checked",
        }
        assert can_start("quote_options_generated", direct)
        for missing in direct:
            assert not can_start("quote_options_generated", direct - {missing})

    def test_transitive_prerequisites_not_required(self):
        # Only direct prerequisites gate starting
        assert can_start("electrical_capacity_confirmed", {"heating_system_spec"})

    def test_unknown_key(self):
        assert not can_start("nope", {"property_surveyed"})
