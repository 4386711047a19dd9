"""
Variable map engine core package.

Records which UI variables, equations and secondary modules feed the primary
simulation module of each configuration, and resolves them into the primary
module's input set with a provenance trace.
"""

from _version import __version__, get_full_version, get_version_dict

from .bindings import (Binding, BindingSet, BindingStore, Configuration,
                       EquationInfo, PageInfo, RelationKind, RelationSet,
                       SecondaryModuleInfo)
from .catalog import ModuleContract, VariableCatalog, VariableSpec
from .engine import ResolutionEngine, ResolutionResult
from .evaluator import (CallableRegistry, EvaluationResult, Evaluator,
                        ProducerKind, ProvenanceEntry, ProvenanceTrace)
from .exceptions import (CatalogFrozenError, ConfigurationError,
                         ConflictingBindingError, CyclicDependencyError,
                         ErrorCategory, ErrorSeverity, ExecutionContext,
                         MissingCallableError, MissingPrimaryInputError,
                         ModuleContractError, ResolutionError,
                         ResolutionHint, StateError,
                         UnknownConfigurationError, UnknownVariableError,
                         UnreachablePrimaryInputError, UnsatisfiedInputError,
                         VarmapError)
from .exporter import export_bindings, export_provenance
from .graph import (DependencyGraph, DependencyGraphBuilder, EdgeKind,
                    Invocation, NodeKind, ResolutionPlan, Resolver,
                    build_dependency_graph)
from .loader import (LoadReport, StaticData, load_static_data,
                     load_static_data_from_mapping)
from .logger import JSONFormatter, ProductionLogger, get_logger
from .settings import VarmapSettings, load_settings
from .values import VarType, VarValue

__all__ = [
    # Version
    "__version__",
    "get_full_version",
    "get_version_dict",
    # Values and catalog
    "VarType",
    "VarValue",
    "VariableSpec",
    "VariableCatalog",
    "ModuleContract",
    # Bindings
    "Binding",
    "BindingSet",
    "BindingStore",
    "Configuration",
    "EquationInfo",
    "PageInfo",
    "RelationKind",
    "RelationSet",
    "SecondaryModuleInfo",
    # Graph and resolution
    "DependencyGraph",
    "DependencyGraphBuilder",
    "EdgeKind",
    "Invocation",
    "NodeKind",
    "ResolutionPlan",
    "Resolver",
    "build_dependency_graph",
    # Evaluation
    "CallableRegistry",
    "EvaluationResult",
    "Evaluator",
    "ProducerKind",
    "ProvenanceEntry",
    "ProvenanceTrace",
    "ResolutionEngine",
    "ResolutionResult",
    # Export
    "export_bindings",
    "export_provenance",
    # Loading and settings
    "LoadReport",
    "StaticData",
    "load_static_data",
    "load_static_data_from_mapping",
    "VarmapSettings",
    "load_settings",
    # Logging
    "JSONFormatter",
    "ProductionLogger",
    "get_logger",
    # Errors
    "VarmapError",
    "ErrorCategory",
    "ErrorSeverity",
    "ExecutionContext",
    "ResolutionHint",
    "ConfigurationError",
    "UnknownConfigurationError",
    "UnknownVariableError",
    "ConflictingBindingError",
    "MissingCallableError",
    "ModuleContractError",
    "ResolutionError",
    "CyclicDependencyError",
    "UnsatisfiedInputError",
    "UnreachablePrimaryInputError",
    "StateError",
    "CatalogFrozenError",
    "MissingPrimaryInputError",
]
