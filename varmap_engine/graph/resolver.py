"""
Resolver - deterministic evaluation order for one configuration.

Projects the dependency graph onto invocations (a variable shared between a
producer and a consumer, directly or through alias edges, becomes an edge
between the two invocations) and runs Kahn's algorithm over the projection.
Ties among ready invocations go to the earliest declared one, equations
before modules, so the same bindings always yield the same order.

Resolution either returns a complete ResolutionPlan or raises one of:
    - CyclicDependencyError: the smallest cycle, earliest-declared node first
    - UnsatisfiedInputError: an input with no default, raw value or producer,
      or an evaluated input that no equation or module produces
    - UnreachablePrimaryInputError: a sink that can never receive a value
"""

from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

import networkx as nx

from varmap_engine.bindings.models import BindingSet
from varmap_engine.catalog.registry import VariableCatalog
from varmap_engine.exceptions import (
    CyclicDependencyError,
    UnreachablePrimaryInputError,
    UnsatisfiedInputError,
)
from varmap_engine.graph.builder import (
    DependencyGraph,
    DependencyGraphBuilder,
    Invocation,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolutionPlan:
    """A validated evaluation order for one configuration.

    Attributes:
        config_name: Configuration the plan belongs to
        graph: The dependency graph the plan was computed from
        order: Invocations in evaluation order
        initially_available: Variables with a value before any invocation runs
        sinks: Primary input variables, in declaration order
    """
    config_name: str
    graph: DependencyGraph
    order: List[Invocation]
    initially_available: Set[str] = field(default_factory=set)
    sinks: List[str] = field(default_factory=list)

    def position_of(self, invocation_id: str) -> int:
        """1-based position of an invocation in the order."""
        for position, inv in enumerate(self.order, 1):
            if inv.id == invocation_id:
                return position
        raise KeyError(invocation_id)

    def order_ids(self) -> List[str]:
        return [inv.id for inv in self.order]


def _shortest_cycle(graph: nx.DiGraph, candidates: Sequence[str]) -> Optional[List[str]]:
    """Smallest cycle in ``graph`` among ``candidates``.

    Candidates are tried in the given order and a later cycle replaces the
    current best only when strictly shorter, so ties go to the earliest
    candidate. The returned path starts and ends with the same node.
    """
    rank = {node: i for i, node in enumerate(candidates)}
    best: Optional[List[str]] = None
    for node in candidates:
        if graph.has_edge(node, node):
            if best is None or len(best) > 2:
                best = [node, node]
            continue
        successors = sorted(graph.successors(node), key=lambda n: rank.get(n, len(rank)))
        for succ in successors:
            if not nx.has_path(graph, succ, node):
                continue
            cycle = [node] + nx.shortest_path(graph, succ, node)
            if best is None or len(cycle) < len(best):
                best = cycle
    return best


class Resolver:
    """Computes evaluation orders for the configurations of a catalog."""

    def __init__(self, catalog: VariableCatalog) -> None:
        self.catalog = catalog

    def resolve(
        self,
        bindings: BindingSet,
        provided: Optional[Iterable[str]] = None,
    ) -> ResolutionPlan:
        """Compute the evaluation order for a configuration.

        Args:
            bindings: The configuration's BindingSet
            provided: Names of raw UI values that will be supplied. When None,
                      every declared primary and secondary input is assumed
                      to be supplied by the UI. Names of evaluated inputs
                      are ignored.

        Raises:
            CyclicDependencyError: If the bindings contain a cycle
            UnsatisfiedInputError: If an invocation input can have no value,
                or an evaluated input has no producer
            UnreachablePrimaryInputError: If a sink can have no value
        """
        config_name = bindings.config_name
        dep = DependencyGraphBuilder.build(bindings)

        self._check_alias_cycles(dep)
        projection = self._project(dep)
        order = self._kahn(dep, projection)

        raw = set(bindings.raw_inputs()) if provided is None else set(provided)
        ignored = sorted(raw & dep.evaluated)
        if ignored:
            logger.debug(
                f"[{config_name}] raw values for evaluated inputs {ignored} are ignored"
            )
        available = self._initially_available(dep, raw - dep.evaluated)
        plan = ResolutionPlan(
            config_name=config_name,
            graph=dep,
            order=order,
            initially_available=set(available),
            sinks=list(dep.sinks),
        )

        for inv in order:
            for name in inv.inputs:
                if name not in available:
                    raise UnsatisfiedInputError(name, inv.id, config_name=config_name)
            for name in inv.outputs:
                available.add(name)
                available.update(dep.aliases_of(name))

        for name in dep.sinks:
            if name not in available:
                raise UnreachablePrimaryInputError(name, config_name=config_name)

        for name in bindings.evaluated_inputs:
            if name not in available:
                raise UnsatisfiedInputError(name, "evaluated_inputs", config_name=config_name)

        logger.debug(f"[{config_name}] resolved order: {plan.order_ids()}")
        return plan

    def _initially_available(self, dep: DependencyGraph, raw: Set[str]) -> Set[str]:
        """Variables holding a value before the first invocation.

        Evaluated inputs only ever receive values from equations and modules,
        so neither defaults nor raw values nor aliases make them available here.
        """
        available = set(raw)
        available.update(
            name for name in dep.variables()
            if name not in dep.evaluated and self.catalog.has_default(name)
        )
        for name in list(available):
            available.update(target for _, target in dep.seed_alias_edges_from(name))
        return available

    def _check_alias_cycles(self, dep: DependencyGraph) -> None:
        aliases = dep.alias_graph
        if nx.is_directed_acyclic_graph(aliases):
            return
        cycle = _shortest_cycle(aliases, list(aliases.nodes))
        raise CyclicDependencyError(
            [f"({name})" for name in cycle], config_name=dep.config_name
        )

    def _project(self, dep: DependencyGraph) -> nx.DiGraph:
        """Invocation-level projection: producer -> consumer, labelled with the shared variable."""
        projection = nx.DiGraph()
        for inv in dep.invocations:
            projection.add_node(inv.id, index=inv.index)

        for producer in dep.invocations:
            for output in producer.outputs:
                reached = [output] + sorted(dep.aliases_of(output))
                for name in reached:
                    for consumer in dep.consumers_of(name):
                        if not projection.has_edge(producer.id, consumer.id):
                            projection.add_edge(producer.id, consumer.id, via=name)
        return projection

    def _kahn(self, dep: DependencyGraph, projection: nx.DiGraph) -> List[Invocation]:
        in_degree: Dict[str, int] = {node: projection.in_degree(node) for node in projection}
        by_id = {inv.id: inv for inv in dep.invocations}

        ready = [(by_id[node].index, node) for node, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: List[Invocation] = []

        while ready:
            _, current = heapq.heappop(ready)
            order.append(by_id[current])
            for dependent in projection.successors(current):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, (by_id[dependent].index, dependent))

        if len(order) != len(dep.invocations):
            done = {inv.id for inv in order}
            remaining = [inv.id for inv in dep.invocations if inv.id not in done]
            cycle = _shortest_cycle(projection.subgraph(remaining), remaining)
            raise CyclicDependencyError(
                self._describe_cycle(projection, cycle), config_name=dep.config_name
            )

        return order

    @staticmethod
    def _describe_cycle(projection: nx.DiGraph, cycle: List[str]) -> List[str]:
        """Interleave the linking variables into an invocation cycle."""
        path = [cycle[0]]
        for a, b in zip(cycle, cycle[1:]):
            path.append(f"({projection.edges[a, b]['via']})")
            path.append(b)
        return path
