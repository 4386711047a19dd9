"""
Binding Store

Per-configuration record of equation, secondary module and primary module
variable relations.

Public API:
    - Configuration, PageInfo: configuration and UI page records
    - BindingSet, RelationSet, Binding, RelationKind: relation storage
    - EquationInfo, SecondaryModuleInfo: invocation declarations
    - BindingStore: registry that enforces load-time invariants
"""

from __future__ import annotations

from .models import (
    Binding,
    BindingSet,
    Configuration,
    EquationInfo,
    PageInfo,
    RelationKind,
    RelationSet,
    SecondaryModuleInfo,
)
from .store import BindingStore

__all__ = [
    "Binding",
    "BindingSet",
    "BindingStore",
    "Configuration",
    "EquationInfo",
    "PageInfo",
    "RelationKind",
    "RelationSet",
    "SecondaryModuleInfo",
]
