#!/usr/bin/env python3
"""
Resolution Engine

Entry point tying the frozen static data to the resolver and evaluator. Each
request builds a fresh dependency graph, order and provenance trace for one
configuration and discards them afterwards; only the catalog and store are
shared, and they are read-only once loaded.

Example:
    data = load_static_data("config/variable_map.yaml")
    callables = CallableRegistry()
    callables.register_equation(
        "biomass_feed_rate",
        lambda v: {"biomass_feed_rate": v["biomass_feed_rate_pct"] * 100},
    )
    engine = ResolutionEngine(data.catalog, data.store, callables)
    result = engine.resolve(
        "Biopower-LCOE Calculator", {"biomass_feed_rate_pct": 0.8}
    )
    result.primary_inputs   # {'biomass_feed_rate': 80.0}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from varmap_engine.bindings.store import BindingStore
from varmap_engine.catalog.registry import VariableCatalog
from varmap_engine.evaluator import CallableRegistry, Evaluator, ProvenanceTrace
from varmap_engine.exporter import export_bindings as _export_bindings
from varmap_engine.exporter import export_provenance
from varmap_engine.graph.resolver import ResolutionPlan, Resolver
from varmap_engine.settings import VarmapSettings

logger = logging.getLogger(__name__)

__all__ = ["ResolutionEngine", "ResolutionResult", "export_provenance"]


class ResolutionResult(NamedTuple):
    """Final primary input set of one resolution and how it was produced.

    Unpacks as ``(primary_inputs, trace)``.
    """
    primary_inputs: Dict[str, Any]
    trace: ProvenanceTrace

    @property
    def order(self) -> List[str]:
        """Invocation ids in the order they ran."""
        return [step.invocation for step in self.trace.steps]


class ResolutionEngine:
    """Resolves configurations of a loaded variable map.

    Thread Safety:
        Safe to call from several threads once the catalog and store are
        frozen; every call works on its own graph and value map.
    """

    def __init__(
        self,
        catalog: VariableCatalog,
        store: BindingStore,
        callables: Optional[CallableRegistry] = None,
        settings: Optional[VarmapSettings] = None,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.callables = callables or CallableRegistry()
        self.settings = settings or VarmapSettings()
        self.resolver = Resolver(catalog)
        self.evaluator = Evaluator(
            catalog,
            self.callables,
            warn_on_undeclared_outputs=self.settings.warn_on_undeclared_outputs,
        )

    def plan(self, config_name: str, provided: Optional[Iterable[str]] = None) -> ResolutionPlan:
        """Evaluation order for a configuration without running anything.

        Raises:
            UnknownConfigurationError: If the configuration is not loaded
            ResolutionError: If no complete order exists
        """
        bindings = self.store.get_binding_set(config_name)
        return self.resolver.resolve(bindings, provided=provided)

    def resolve(self, config_name: str, raw_ui_values: Mapping[str, Any]) -> ResolutionResult:
        """Resolve and evaluate a configuration.

        Args:
            config_name: Name of a loaded configuration
            raw_ui_values: Values entered in the UI, keyed by variable name

        Returns:
            ResolutionResult pairing the primary module's input set with
            the provenance trace

        Raises:
            UnknownConfigurationError: If the configuration is not loaded
            CyclicDependencyError: If the bindings contain a cycle
            UnsatisfiedInputError: If an invocation input can have no value
            UnreachablePrimaryInputError: If a primary input can have no value
            MissingCallableError: If an invocation has no registered callable
        """
        plan = self.plan(config_name, provided=raw_ui_values.keys())
        result = self.evaluator.evaluate(plan, raw_ui_values)
        logger.info(
            f"[{config_name}] resolved {len(result.primary_inputs)} primary inputs "
            f"through {len(plan.order)} invocations"
        )
        return ResolutionResult(result.primary_inputs, result.trace)

    def export_bindings(self, config_name: Optional[str] = None) -> str:
        """Text dump of one configuration's bindings, or of every configuration."""
        if config_name is not None:
            return _export_bindings([self.store.get_binding_set(config_name)])
        return _export_bindings(configuration.bindings for configuration in self.store)
