#!/usr/bin/env python3
"""
Evaluator Module

Walks a ResolutionPlan, calling the equation and secondary module callables
in order and threading their outputs into later consumers. Produces the
primary input values and a provenance trace recording which invocation last
wrote each variable.

Equation and module implementations are opaque: each is a callable taking a
mapping of declared input names to values and returning a mapping of output
names to values. They are registered by name in a CallableRegistry.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import networkx as nx

from varmap_engine.catalog.registry import VariableCatalog
from varmap_engine.exceptions import (
    MissingCallableError,
    MissingPrimaryInputError,
    UnsatisfiedInputError,
)
from varmap_engine.graph.builder import Invocation, NodeKind
from varmap_engine.graph.resolver import ResolutionPlan

logger = logging.getLogger(__name__)

InvocationCallable = Callable[[Mapping[str, Any]], Mapping[str, Any]]


class ProducerKind(str, Enum):
    """Where a variable's value came from."""
    DEFAULT = "default"
    UI = "ui"
    EQUATION = "equation"
    MODULE = "module"


@dataclass(frozen=True)
class ProvenanceEntry:
    """One write to the value map.

    Attributes:
        variable: Variable that was written
        producer: Invocation id, or "default"/"ui" for seeded values
        kind: Kind of producer
        position: 1-based order position of the producing invocation; 0 for seeded values
        alias_of: Variable the value was copied from through an alias edge
    """
    variable: str
    producer: str
    kind: ProducerKind
    position: int
    alias_of: Optional[str] = None


@dataclass(frozen=True)
class InvocationStep:
    """Record of one invocation during evaluation."""
    position: int
    invocation: str
    inputs: Tuple[str, ...]
    outputs: Tuple[str, ...]


@dataclass
class ProvenanceTrace:
    """Provenance of every variable value after evaluation."""
    config_name: str
    steps: List[InvocationStep] = field(default_factory=list)
    history: List[ProvenanceEntry] = field(default_factory=list)
    latest: Dict[str, ProvenanceEntry] = field(default_factory=dict)

    def record(self, entry: ProvenanceEntry) -> None:
        self.history.append(entry)
        self.latest[entry.variable] = entry

    def producer_of(self, variable: str) -> ProvenanceEntry:
        return self.latest[variable]

    def __contains__(self, variable: object) -> bool:
        return variable in self.latest


@dataclass
class EvaluationResult:
    """Output of an evaluation walk."""
    primary_inputs: Dict[str, Any]
    trace: ProvenanceTrace
    values: Dict[str, Any]


class CallableRegistry:
    """Registry of equation and secondary module implementations.

    Example:
        >>> registry = CallableRegistry()
        >>> registry.register_equation(
        ...     "biomass_feed_rate",
        ...     lambda v: {"biomass_feed_rate": v["biomass_feed_rate_pct"] * 100},
        ... )
        >>> registry.has_equation("biomass_feed_rate")
        True
    """

    def __init__(self) -> None:
        self._callables: Dict[NodeKind, Dict[str, InvocationCallable]] = {
            NodeKind.EQUATION: {},
            NodeKind.MODULE: {},
        }

    def register_equation(self, name: str, fn: InvocationCallable) -> None:
        self._callables[NodeKind.EQUATION][name] = fn
        logger.debug(f"Registered equation callable: {name}")

    def register_module(self, name: str, fn: InvocationCallable) -> None:
        self._callables[NodeKind.MODULE][name] = fn
        logger.debug(f"Registered module callable: {name}")

    def equation(self, name: str) -> Callable[[InvocationCallable], InvocationCallable]:
        """Decorator form of register_equation."""
        def decorator(fn: InvocationCallable) -> InvocationCallable:
            self.register_equation(name, fn)
            return fn
        return decorator

    def module(self, name: str) -> Callable[[InvocationCallable], InvocationCallable]:
        """Decorator form of register_module."""
        def decorator(fn: InvocationCallable) -> InvocationCallable:
            self.register_module(name, fn)
            return fn
        return decorator

    def has_equation(self, name: str) -> bool:
        return name in self._callables[NodeKind.EQUATION]

    def has_module(self, name: str) -> bool:
        return name in self._callables[NodeKind.MODULE]

    def lookup(self, invocation: Invocation) -> InvocationCallable:
        """Callable for an invocation.

        Raises:
            MissingCallableError: If nothing is registered under the invocation's name.
        """
        try:
            return self._callables[invocation.kind][invocation.name]
        except KeyError:
            raise MissingCallableError(invocation.name, invocation=invocation.id) from None

    def list_callables(self) -> Dict[str, List[str]]:
        return {
            kind.value: sorted(fns)
            for kind, fns in self._callables.items()
            if fns
        }


class Evaluator:
    """Runs the invocations of a ResolutionPlan against raw UI values."""

    def __init__(
        self,
        catalog: VariableCatalog,
        callables: CallableRegistry,
        warn_on_undeclared_outputs: bool = True,
    ) -> None:
        self.catalog = catalog
        self.callables = callables
        self.warn_on_undeclared_outputs = warn_on_undeclared_outputs

    def evaluate(
        self,
        plan: ResolutionPlan,
        raw_ui_values: Mapping[str, Any],
    ) -> EvaluationResult:
        """Evaluate a plan.

        Seeding:
            1. Catalog defaults of every graph variable; a default also fills
               alias targets that have no default of their own.
            2. Raw UI values, overwriting defaults and propagating through
               aliases. Alias sources are written before their targets, so a
               value supplied for a target wins over one copied from its
               source whatever the key order of ``raw_ui_values``.

        Evaluated inputs take no part in seeding: their defaults are skipped
        and raw values keyed by them are ignored with a warning. Every
        invocation then overwrites its declared outputs, so the last writer
        in order wins.

        Raises:
            UnsatisfiedInputError: If an input has no value at call time
            MissingCallableError: If an invocation has no registered callable
            MissingPrimaryInputError: If a sink holds no value after the walk
        """
        dep = plan.graph
        trace = ProvenanceTrace(config_name=plan.config_name)
        values: Dict[str, Any] = {}

        for name in dep.variables():
            default = None if name in dep.evaluated else self.catalog.default_of(name)
            if default is None:
                continue
            values[name] = default.to_python()
            trace.record(ProvenanceEntry(name, ProducerKind.DEFAULT.value, ProducerKind.DEFAULT, 0))
        for name in list(values):
            for source, target in dep.seed_alias_edges_from(name):
                if target not in values:
                    values[target] = values[source]
                    trace.record(ProvenanceEntry(
                        target, ProducerKind.DEFAULT.value, ProducerKind.DEFAULT, 0, alias_of=source
                    ))

        ignored = sorted(name for name in raw_ui_values if name in dep.evaluated)
        if ignored:
            logger.warning(
                f"[{plan.config_name}] ignoring raw values for evaluated inputs {ignored}"
            )
        for name in self._seed_order(plan, raw_ui_values):
            if name in dep.evaluated:
                continue
            values[name] = raw_ui_values[name]
            trace.record(ProvenanceEntry(name, ProducerKind.UI.value, ProducerKind.UI, 0))
            for source, target in dep.seed_alias_edges_from(name):
                values[target] = values[source]
                trace.record(ProvenanceEntry(
                    target, ProducerKind.UI.value, ProducerKind.UI, 0, alias_of=source
                ))

        for position, inv in enumerate(plan.order, 1):
            self._run(plan, trace, values, inv, position)

        missing = [name for name in plan.sinks if name not in values]
        if missing:
            raise MissingPrimaryInputError(missing, config_name=plan.config_name)

        primary_inputs = {name: values[name] for name in plan.sinks}
        logger.debug(
            f"[{plan.config_name}] evaluated {len(plan.order)} invocations, "
            f"{len(primary_inputs)} primary inputs"
        )
        return EvaluationResult(primary_inputs=primary_inputs, trace=trace, values=values)

    def _run(
        self,
        plan: ResolutionPlan,
        trace: ProvenanceTrace,
        values: Dict[str, Any],
        inv: Invocation,
        position: int,
    ) -> None:
        inputs: Dict[str, Any] = {}
        for name in inv.inputs:
            if name not in values:
                raise UnsatisfiedInputError(name, inv.id, config_name=plan.config_name)
            inputs[name] = values[name]

        fn = self.callables.lookup(inv)
        result = fn(inputs)
        if not isinstance(result, Mapping):
            raise TypeError(
                f"{inv.id} returned {type(result).__name__}; expected a mapping of output values"
            )

        undeclared = sorted(set(result) - set(inv.outputs))
        if undeclared and self.warn_on_undeclared_outputs:
            logger.warning(
                f"[{plan.config_name}] {inv.id} returned undeclared outputs "
                f"{undeclared}; ignoring them"
            )

        kind = ProducerKind.EQUATION if inv.kind is NodeKind.EQUATION else ProducerKind.MODULE
        written = []
        for name in inv.outputs:
            if name not in result:
                logger.debug(f"[{plan.config_name}] {inv.id} did not return declared output '{name}'")
                continue
            self._write(plan, trace, values, name, result[name], inv.id, kind, position)
            written.append(name)

        trace.steps.append(InvocationStep(position, inv.id, inv.inputs, tuple(written)))

    @staticmethod
    def _seed_order(plan: ResolutionPlan, raw_ui_values: Mapping[str, Any]) -> List[str]:
        """Raw value names, alias sources ahead of their targets.

        Names outside the alias graph come first, sorted by name.
        """
        aliases = plan.graph.alias_graph
        rank = {name: i for i, name in enumerate(nx.lexicographical_topological_sort(aliases))}
        return sorted(raw_ui_values, key=lambda name: (rank.get(name, -1), name))

    @staticmethod
    def _write(
        plan: ResolutionPlan,
        trace: ProvenanceTrace,
        values: Dict[str, Any],
        name: str,
        value: Any,
        producer: str,
        kind: ProducerKind,
        position: int,
    ) -> None:
        values[name] = value
        trace.record(ProvenanceEntry(name, producer, kind, position))
        for source, target in plan.graph.alias_edges_from(name):
            values[target] = values[source]
            trace.record(ProvenanceEntry(target, producer, kind, position, alias_of=source))
