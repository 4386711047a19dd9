"""
Variable Catalog

Process-wide registry of variable declarations, their default values and
the input/output contracts of compute modules.

Public API:
    - VariableSpec: Pydantic model for one variable declaration
    - ModuleContract: Pydantic model for one compute module's inputs and outputs
    - VariableCatalog: Registry of declarations with load-then-freeze lifecycle
"""

from __future__ import annotations

from .contract import ModuleContract, VariableSpec
from .registry import VariableCatalog

__all__ = [
    "ModuleContract",
    "VariableSpec",
    "VariableCatalog",
]
