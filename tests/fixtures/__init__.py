"""
Shared Test Fixtures for the Variable Map Engine

This package contains reusable test fixtures organized by category:
- bindings.py: Biopower scenario catalog, store and callables, plus a
  complete variable map as a mapping and as a YAML file
"""

from .bindings import (
    BIOPOWER,
    VARIABLE_MAP,
    biopower_callables,
    biopower_catalog,
    biopower_store,
    pv_callables,
    static_data,
    variable_map,
    variable_map_file,
)

__all__ = [
    "BIOPOWER",
    "VARIABLE_MAP",
    # Scenario fixtures
    "biopower_catalog",
    "biopower_store",
    "biopower_callables",
    "pv_callables",
    # Variable map fixtures
    "variable_map",
    "static_data",
    "variable_map_file",
]
