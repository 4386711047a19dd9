"""
Dependency Graph Builder

Turns one configuration's BindingSet into a directed graph of variables,
equation invocations, secondary module invocations and primary input sinks.
Construction is purely structural; nothing is evaluated here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set, Tuple

import networkx as nx

from varmap_engine.bindings.models import BindingSet, RelationKind

logger = logging.getLogger(__name__)


class NodeKind(str, Enum):
    """Kinds of nodes in the dependency graph."""
    VARIABLE = "variable"
    EQUATION = "equation"
    MODULE = "module"
    SINK = "sink"


class EdgeKind(str, Enum):
    """Kinds of edges in the dependency graph."""
    CONSUMES = "consumes"    # variable -> invocation
    PRODUCES = "produces"    # invocation -> variable
    ALIAS = "alias"          # variable -> variable, from a relation pair
    FEEDS = "feeds"          # variable -> primary input sink


def variable_node(name: str) -> str:
    return f"var:{name}"


def sink_node(name: str) -> str:
    return f"sink:{name}"


@dataclass(frozen=True)
class Invocation:
    """One equation or secondary module call within a configuration.

    Attributes:
        id: Stable node identifier, e.g. ``eqn[0]:biomass_feed_rate``
        kind: NodeKind.EQUATION or NodeKind.MODULE
        index: Declaration order; equations first, then modules
        name: Callable key (equation name or module name)
        inputs: Declared input variables
        outputs: Declared output variables
        ui_form: Declaring UI form, if known
    """
    id: str
    kind: NodeKind
    index: int
    name: str
    inputs: Tuple[str, ...]
    outputs: Tuple[str, ...]
    ui_form: Optional[str] = None


@dataclass
class DependencyGraph:
    """Graph of a single configuration, rebuilt for every resolution request."""
    config_name: str
    graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    alias_graph: nx.DiGraph = field(default_factory=nx.DiGraph)
    invocations: List[Invocation] = field(default_factory=list)
    sinks: List[str] = field(default_factory=list)
    evaluated: Set[str] = field(default_factory=set)

    def invocation(self, invocation_id: str) -> Invocation:
        return self.graph.nodes[invocation_id]["invocation"]

    def variables(self) -> List[str]:
        """Variable names in the order they entered the graph."""
        return [
            data["name"] for _, data in self.graph.nodes(data=True)
            if data["kind"] is NodeKind.VARIABLE
        ]

    def consumers_of(self, variable: str) -> List[Invocation]:
        node = variable_node(variable)
        if node not in self.graph:
            return []
        return [
            self.invocation(succ) for succ in self.graph.successors(node)
            if self.graph.edges[node, succ]["kind"] is EdgeKind.CONSUMES
        ]

    def producers_of(self, variable: str) -> List[Invocation]:
        node = variable_node(variable)
        if node not in self.graph:
            return []
        return [
            self.invocation(pred) for pred in self.graph.predecessors(node)
            if self.graph.edges[pred, node]["kind"] is EdgeKind.PRODUCES
        ]

    def aliases_of(self, variable: str) -> Set[str]:
        """Variables that receive the value of ``variable`` through alias edges."""
        if variable not in self.alias_graph:
            return set()
        return nx.descendants(self.alias_graph, variable)

    def alias_edges_from(self, variable: str) -> List[Tuple[str, str]]:
        """Alias edges reachable from ``variable`` in breadth-first order."""
        if variable not in self.alias_graph:
            return []
        return list(nx.bfs_edges(self.alias_graph, variable))

    def seed_alias_edges_from(self, variable: str) -> List[Tuple[str, str]]:
        """Alias edges a default or raw value travels along.

        Such values never enter an evaluated input, so propagation stops there.
        """
        if variable not in self.alias_graph or variable in self.evaluated:
            return []
        view = nx.restricted_view(self.alias_graph, self.evaluated, [])
        return list(nx.bfs_edges(view, variable))

    def __repr__(self) -> str:
        return (
            f"DependencyGraph({self.config_name!r}, nodes={self.graph.number_of_nodes()}, "
            f"edges={self.graph.number_of_edges()}, invocations={len(self.invocations)})"
        )


class DependencyGraphBuilder:
    """Builds a DependencyGraph from a BindingSet."""

    @staticmethod
    def build(bindings: BindingSet) -> DependencyGraph:
        """Build the dependency graph for one configuration.

        Runs in time linear in the number of relations and variables.
        """
        dep = DependencyGraph(config_name=bindings.config_name)
        g = dep.graph

        def add_variable(name: str) -> str:
            node = variable_node(name)
            if node not in g:
                g.add_node(node, kind=NodeKind.VARIABLE, name=name)
            return node

        for name in bindings.raw_inputs():
            add_variable(name)
        for name in bindings.evaluated_inputs:
            g.nodes[add_variable(name)]["evaluated"] = True
            dep.evaluated.add(name)

        index = 0
        for eqn in bindings.equations:
            dep.invocations.append(Invocation(
                id=f"eqn[{index}]:{eqn.name}",
                kind=NodeKind.EQUATION,
                index=index,
                name=eqn.name,
                inputs=eqn.ui_inputs,
                outputs=eqn.ui_outputs,
                ui_form=eqn.ui_form,
            ))
            index += 1
        for position, cmod in enumerate(bindings.secondary_modules):
            dep.invocations.append(Invocation(
                id=f"cmod[{position}]:{cmod.module}",
                kind=NodeKind.MODULE,
                index=index,
                name=cmod.module,
                inputs=cmod.ui_inputs,
                outputs=cmod.ui_outputs,
                ui_form=cmod.ui_form,
            ))
            index += 1

        for inv in dep.invocations:
            g.add_node(inv.id, kind=inv.kind, name=inv.name, invocation=inv)
            for name in inv.inputs:
                g.add_edge(add_variable(name), inv.id, kind=EdgeKind.CONSUMES)
            for name in inv.outputs:
                g.add_edge(inv.id, add_variable(name), kind=EdgeKind.PRODUCES)

        for kind in RelationKind:
            for binding in bindings.relation(kind):
                source = add_variable(binding.source)
                target = add_variable(binding.target)
                if binding.is_identity:
                    continue
                g.add_edge(source, target, kind=EdgeKind.ALIAS, relation=kind)
                dep.alias_graph.add_edge(binding.source, binding.target, relation=kind)

        for name in bindings.sink_variables():
            sink = sink_node(name)
            g.add_node(sink, kind=NodeKind.SINK, name=name)
            g.add_edge(add_variable(name), sink, kind=EdgeKind.FEEDS)
            dep.sinks.append(name)

        logger.debug(
            f"[{bindings.config_name}] built dependency graph: "
            f"{g.number_of_nodes()} nodes, {g.number_of_edges()} edges, "
            f"{len(dep.invocations)} invocations, {len(dep.sinks)} sinks"
        )
        return dep


def build_dependency_graph(bindings: BindingSet) -> DependencyGraph:
    """Convenience wrapper around DependencyGraphBuilder.build."""
    return DependencyGraphBuilder.build(bindings)
