"""
Unit tests for the structured exception hierarchy.

Tests context, severity and category defaults, diagnostic formatting and
serialization.
"""

from __future__ import annotations

import pytest

from varmap_engine.exceptions import (
    CatalogFrozenError,
    ConfigurationError,
    ConflictingBindingError,
    CyclicDependencyError,
    ErrorCategory,
    ErrorSeverity,
    ExecutionContext,
    MissingPrimaryInputError,
    ResolutionError,
    ResolutionHint,
    StateError,
    UnknownConfigurationError,
    UnknownVariableError,
    UnreachablePrimaryInputError,
    UnsatisfiedInputError,
    VarmapError,
)


class TestExecutionContext:
    """Tests for ExecutionContext."""

    def test_to_dict_drops_empty_fields(self):
        context = ExecutionContext(config_name="PV", variable="tilt")

        data = context.to_dict()

        assert data["config_name"] == "PV"
        assert data["variable"] == "tilt"
        assert "invocation" not in data
        assert "correlation_id" in data

    def test_format_summary(self):
        context = ExecutionContext(config_name="PV", invocation="eqn[0]:x", correlation_id="abc")

        assert context.format_summary() == "config=PV | invocation=eqn[0]:x | correlation_id=abc"


class TestHierarchy:
    """Tests for categories, severities and inheritance."""

    @pytest.mark.parametrize(
        "error,base,category,severity",
        [
            (UnknownConfigurationError("PV"), ConfigurationError, ErrorCategory.CONFIGURATION, ErrorSeverity.ERROR),
            (UnknownVariableError("x"), ConfigurationError, ErrorCategory.CONFIGURATION, ErrorSeverity.ERROR),
            (ConflictingBindingError("x"), ConfigurationError, ErrorCategory.CONFIGURATION, ErrorSeverity.ERROR),
            (CyclicDependencyError(["a", "a"]), ResolutionError, ErrorCategory.DEPENDENCY, ErrorSeverity.RECOVERABLE),
            (UnsatisfiedInputError("x", "eqn[0]:y"), ResolutionError, ErrorCategory.DEPENDENCY, ErrorSeverity.RECOVERABLE),
            (UnreachablePrimaryInputError("x"), ResolutionError, ErrorCategory.DEPENDENCY, ErrorSeverity.RECOVERABLE),
            (CatalogFrozenError("BindingStore"), StateError, ErrorCategory.STATE, ErrorSeverity.ERROR),
            (MissingPrimaryInputError(["x"]), StateError, ErrorCategory.STATE, ErrorSeverity.CRITICAL),
        ],
    )
    def test_defaults(self, error, base, category, severity):
        assert isinstance(error, base)
        assert isinstance(error, VarmapError)
        assert error.category is category
        assert error.severity is severity

    def test_context_fields_filled(self):
        error = UnsatisfiedInputError("efficiency_factor", "eqn[0]:biomass_feed_rate", config_name="Biopower")

        assert error.context.variable == "efficiency_factor"
        assert error.context.invocation == "eqn[0]:biomass_feed_rate"
        assert error.context.config_name == "Biopower"

    def test_explicit_context_is_kept(self):
        context = ExecutionContext(config_name="PV", correlation_id="fixed")

        error = UnknownVariableError("x", context=context, relation_kind="ssc_to_eval")

        assert error.context is context
        assert error.context.correlation_id == "fixed"
        assert error.context.relation_kind == "ssc_to_eval"

    def test_cycle_recorded_in_metadata(self):
        error = CyclicDependencyError(["eqn[0]:E", "(X)", "eqn[0]:E"])

        assert error.context.metadata["cycle"] == ["eqn[0]:E", "(X)", "eqn[0]:E"]
        assert str(error) == "Cyclic dependency detected: eqn[0]:E -> (X) -> eqn[0]:E"


class TestFormatting:
    """Tests for diagnostic output and serialization."""

    def test_format_diagnostic_message(self):
        error = UnsatisfiedInputError("efficiency_factor", "eqn[0]:biomass_feed_rate")

        message = error.format_diagnostic_message()

        assert "ERROR: Input 'efficiency_factor'" in message
        assert "Severity: RECOVERABLE | Category: dependency" in message
        assert "EXECUTION CONTEXT:" in message
        assert "RESOLUTION HINTS:" in message
        assert "Provide A Source" in message

    def test_original_exception_included(self):
        error = ConfigurationError("bad data", original_exception=KeyError("name"))

        assert "ORIGINAL EXCEPTION:" in error.format_diagnostic_message()
        assert "KeyError" in error.format_diagnostic_message()

    def test_custom_hints_replace_defaults(self):
        hint = ResolutionHint(title="Custom", description="desc", steps=["one"])

        error = UnknownVariableError("x", resolution_hints=[hint])

        assert error.resolution_hints == [hint]

    def test_to_dict(self):
        error = UnreachablePrimaryInputError("tilt", config_name="PV")

        data = error.to_dict()

        assert data["error_type"] == "UnreachablePrimaryInputError"
        assert data["category"] == "dependency"
        assert data["severity"] == "recoverable"
        assert data["context"]["variable"] == "tilt"
        assert data["original_exception"] is None
