"""
Dependency graph construction and resolution.

Public API:
    - DependencyGraphBuilder, build_dependency_graph: BindingSet -> DependencyGraph
    - DependencyGraph, Invocation, NodeKind, EdgeKind: graph model
    - Resolver, ResolutionPlan: deterministic evaluation order
"""

from __future__ import annotations

from .builder import (
    DependencyGraph,
    DependencyGraphBuilder,
    EdgeKind,
    Invocation,
    NodeKind,
    build_dependency_graph,
)
from .resolver import ResolutionPlan, Resolver

__all__ = [
    "DependencyGraph",
    "DependencyGraphBuilder",
    "EdgeKind",
    "Invocation",
    "NodeKind",
    "ResolutionPlan",
    "Resolver",
    "build_dependency_graph",
]
