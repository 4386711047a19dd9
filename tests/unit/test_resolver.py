"""
Unit tests for the Resolver.

Tests evaluation order, tie-breaking, cycle detection and reporting, and
unsatisfied or unreachable inputs.
"""

from __future__ import annotations

import pytest

from varmap_engine.bindings import BindingSet, EquationInfo, SecondaryModuleInfo
from varmap_engine.catalog import VariableCatalog, VariableSpec
from varmap_engine.exceptions import (
    CyclicDependencyError,
    ErrorCategory,
    ErrorSeverity,
    UnreachablePrimaryInputError,
    UnsatisfiedInputError,
)
from varmap_engine.graph import Resolver


def make_bindings(equations=(), modules=(), **relations) -> BindingSet:
    """BindingSet from (name, inputs, outputs) tuples and relation pair lists."""
    bindings = BindingSet(config_name="test")
    for name, inputs, outputs in equations:
        bindings.equations.append(EquationInfo.create(inputs, outputs, name=name))
    for module, inputs, outputs in modules:
        bindings.secondary_modules.append(SecondaryModuleInfo.create(module, inputs, outputs))
    for kind, pairs in relations.items():
        for source, target in pairs:
            bindings.relation(kind).add(source, target)
    return bindings


@pytest.fixture
def resolver():
    """Resolver over a catalog with one defaulted variable."""
    catalog = VariableCatalog()
    catalog.register(VariableSpec(name="inverter_capacity", default=20.0))
    return Resolver(catalog)


class TestResolutionOrder:
    """Tests for deterministic ordering."""

    def test_biopower_plan(self, biopower_catalog, biopower_store):
        """Test that the Biopower equation runs and feeds the primary input."""
        plan = Resolver(biopower_catalog).resolve(
            biopower_store.get_binding_set("Biopower-LCOE Calculator"),
            provided=["biomass_feed_rate_pct"],
        )

        assert plan.order_ids() == ["eqn[0]:biomass_feed_rate"]
        assert plan.sinks == ["biomass_feed_rate"]
        assert plan.position_of("eqn[0]:biomass_feed_rate") == 1

    def test_ties_follow_declaration_order(self, resolver):
        """Test that ready invocations run earliest-declared first, equations before modules."""
        bindings = make_bindings(
            equations=[("p", [], ["p"]), ("q", [], ["q"]), ("s", ["r"], ["s"])],
            modules=[("m", ["p"], ["r"])],
        )

        plan = resolver.resolve(bindings)

        assert plan.order_ids() == ["eqn[0]:p", "eqn[1]:q", "cmod[0]:m", "eqn[2]:s"]

    def test_consumer_waits_for_aliased_producer(self, resolver):
        """Test that a dependency through an alias edge orders the producer first."""
        bindings = make_bindings(
            equations=[("consume", ["u_in"], ["w"]), ("produce", [], ["u"])],
            ui_to_secondary=[("u", "u_in")],
        )

        plan = resolver.resolve(bindings)

        assert plan.order_ids() == ["eqn[1]:produce", "eqn[0]:consume"]

    def test_order_is_repeatable(self, resolver):
        """Test that resolving twice gives the same order."""
        bindings = make_bindings(
            equations=[("a", [], ["x"]), ("b", ["x"], ["y"]), ("c", [], ["z"])],
            modules=[("m", ["y", "z"], ["out"])],
        )

        first = resolver.resolve(bindings).order_ids()
        second = resolver.resolve(bindings).order_ids()

        assert first == second == ["eqn[0]:a", "eqn[1]:b", "eqn[2]:c", "cmod[0]:m"]

    def test_initially_available(self, resolver):
        """Test that defaults, provided values and their aliases start available."""
        bindings = make_bindings(
            equations=[("count", ["system_capacity", "inverter_capacity"], ["count"])],
            ui_to_secondary=[("system_capacity", "capacity_kw")],
        )
        bindings.primary_inputs.append("system_capacity")

        plan = resolver.resolve(bindings)

        assert plan.initially_available == {"system_capacity", "capacity_kw", "inverter_capacity"}

    def test_empty_configuration(self, resolver):
        plan = resolver.resolve(make_bindings())

        assert plan.order == []
        assert plan.sinks == []


class TestCycleDetection:
    """Tests for CyclicDependencyError and minimal cycle reporting."""

    def test_equation_module_cycle(self, resolver):
        """Test the cycle E -> X -> M -> Y -> E."""
        bindings = make_bindings(
            equations=[("E", ["Y"], ["X"])],
            modules=[("M", ["X"], ["Y"])],
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        error = exc_info.value
        assert error.cycle == ["eqn[0]:E", "(X)", "cmod[0]:M", "(Y)", "eqn[0]:E"]
        assert "Cyclic dependency detected: eqn[0]:E -> (X)" in error.message
        assert error.category is ErrorCategory.DEPENDENCY
        assert error.severity is ErrorSeverity.RECOVERABLE
        assert error.context.config_name == "test"

    def test_self_consuming_invocation(self, resolver):
        """Test that an equation reading its own output is a cycle of length 1."""
        bindings = make_bindings(equations=[("loop", ["a"], ["a"])])

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.cycle == ["eqn[0]:loop", "(a)", "eqn[0]:loop"]

    def test_minimal_cycle_reported(self, resolver):
        """Test that the shortest of several cycles is reported."""
        bindings = make_bindings(equations=[
            ("a", ["c"], ["a"]),
            ("b", ["a"], ["b"]),
            ("c", ["b"], ["c"]),
            ("e", ["d"], ["e"]),
            ("d", ["e"], ["d"]),
        ])

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.cycle == ["eqn[3]:e", "(e)", "eqn[4]:d", "(d)", "eqn[3]:e"]

    def test_equal_cycles_report_earliest_declared(self, resolver):
        """Test that ties between equal-length cycles go to the earliest invocation."""
        bindings = make_bindings(equations=[
            ("c", ["d"], ["c"]),
            ("d", ["c"], ["d"]),
            ("a", ["b"], ["a"]),
            ("b", ["a"], ["b"]),
        ])

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.cycle[0] == "eqn[0]:c"
        assert len(exc_info.value.cycle) == 5

    def test_cycle_through_alias(self, resolver):
        """Test a cycle closed by a relation pair rather than a shared name."""
        bindings = make_bindings(
            equations=[("E", ["y_ui"], ["x"])],
            modules=[("M", ["x"], ["y"])],
            secondary_outputs_to_ui=[("y", "y_ui")],
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.cycle == ["eqn[0]:E", "(x)", "cmod[0]:M", "(y_ui)", "eqn[0]:E"]

    def test_alias_only_cycle(self, resolver):
        """Test that relation pairs forming a loop between variables are rejected."""
        bindings = make_bindings(
            ui_to_secondary=[("x", "y")],
            secondary_outputs_to_ui=[("y", "x")],
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.cycle == ["(y)", "(x)", "(y)"]

    def test_no_partial_order_on_cycle(self, resolver):
        """Test that an unrelated acyclic part does not produce a result."""
        bindings = make_bindings(equations=[
            ("fine", [], ["ok"]),
            ("loop", ["z"], ["z"]),
        ])

        with pytest.raises(CyclicDependencyError):
            resolver.resolve(bindings)


class TestUnsatisfiedAndUnreachable:
    """Tests for inputs and sinks that can never receive a value."""

    def test_unsatisfied_efficiency_factor(self, biopower_catalog, biopower_store):
        """Test that an undeclared equation input with no source is named."""
        bindings = biopower_store.get_binding_set("Biopower-LCOE Calculator")
        bindings.equations[0] = EquationInfo.create(
            ["biomass_feed_rate_pct", "efficiency_factor"], ["biomass_feed_rate"]
        )

        with pytest.raises(UnsatisfiedInputError) as exc_info:
            Resolver(biopower_catalog).resolve(bindings, provided=["biomass_feed_rate_pct"])

        error = exc_info.value
        assert error.variable == "efficiency_factor"
        assert error.invocation == "eqn[0]:biomass_feed_rate"
        assert "efficiency_factor" in error.message

    def test_default_satisfies_input(self, resolver):
        bindings = make_bindings(equations=[("size", ["inverter_capacity"], ["size"])])

        plan = resolver.resolve(bindings, provided=[])

        assert plan.order_ids() == ["eqn[0]:size"]

    def test_missing_raw_value_is_unsatisfied(self, resolver):
        """Test that a declared raw input counts only when it is provided."""
        bindings = make_bindings(equations=[("count", ["system_capacity"], ["count"])])
        bindings.primary_inputs.append("system_capacity")

        resolver.resolve(bindings)
        with pytest.raises(UnsatisfiedInputError):
            resolver.resolve(bindings, provided=[])

    def test_unreachable_primary_input(self, resolver):
        """Test a sink whose only source is never produced."""
        bindings = make_bindings(ssc_to_eval=[("never_computed", "inverter_num_units")])

        with pytest.raises(UnreachablePrimaryInputError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.variable == "inverter_num_units"

    def test_unprovided_primary_input_is_unreachable(self, resolver):
        bindings = make_bindings()
        bindings.primary_inputs.append("system_capacity")

        with pytest.raises(UnreachablePrimaryInputError):
            resolver.resolve(bindings, provided=[])


class TestEvaluatedInputs:
    """Tests for inputs that only equations and modules may produce."""

    def test_raw_value_does_not_feed_evaluated_input(self, resolver):
        """Test that a supplied value for an evaluated input leaves its sink unreachable."""
        bindings = make_bindings(ssc_to_eval=[("inverter_count", "inverter_num_units")])
        bindings.evaluated_inputs.append("inverter_count")

        with pytest.raises(UnreachablePrimaryInputError) as exc_info:
            resolver.resolve(bindings, provided=["inverter_count"])

        assert exc_info.value.variable == "inverter_num_units"

    def test_default_does_not_satisfy_evaluated_input(self, resolver):
        bindings = make_bindings()
        bindings.evaluated_inputs.append("inverter_capacity")

        with pytest.raises(UnsatisfiedInputError) as exc_info:
            resolver.resolve(bindings)

        assert exc_info.value.variable == "inverter_capacity"
        assert exc_info.value.invocation == "evaluated_inputs"

    def test_evaluated_input_consumed_before_production_is_unsatisfied(self, resolver):
        bindings = make_bindings(equations=[("size", ["inverter_count"], ["size"])])
        bindings.evaluated_inputs.append("inverter_count")

        with pytest.raises(UnsatisfiedInputError) as exc_info:
            resolver.resolve(bindings, provided=["inverter_count"])

        assert exc_info.value.invocation == "eqn[0]:size"

    def test_equation_produces_evaluated_input(self, resolver):
        bindings = make_bindings(
            equations=[("inverter_count", ["inverter_capacity"], ["inverter_count"])],
            ssc_to_eval=[("inverter_count", "inverter_num_units")],
        )
        bindings.evaluated_inputs.append("inverter_count")

        plan = resolver.resolve(bindings, provided=["inverter_count"])

        assert plan.order_ids() == ["eqn[0]:inverter_count"]
        assert "inverter_count" not in plan.initially_available
        assert "inverter_num_units" not in plan.initially_available
