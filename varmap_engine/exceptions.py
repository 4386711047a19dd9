"""
Structured exception hierarchy with resolution context for the variable map engine.

All exceptions include:
- correlation_id: Trace errors across a single load or resolution request
- execution_context: Configuration, invocation, variable, relation kind
- resolution_hints: Actionable suggestions for fixing the declarative data
- severity: CRITICAL, ERROR, RECOVERABLE, WARNING
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import uuid


class ErrorSeverity(str, Enum):
    """Error severity levels for triage"""
    CRITICAL = "critical"      # Internal invariant breach, treat as a bug
    ERROR = "error"            # Malformed static data, configuration rejected
    RECOVERABLE = "recoverable"  # Resolution failed, caller may fix data and retry
    WARNING = "warning"        # Non-blocking issue


class ErrorCategory(str, Enum):
    """Error categories for diagnostics and resolution routing"""
    CONFIGURATION = "configuration"    # Unknown configuration, bad bindings
    DEPENDENCY = "dependency"          # Cycles, unsatisfied or unreachable inputs
    STATE = "state"                    # Frozen catalog, evaluator invariant breach


@dataclass
class ExecutionContext:
    """Context attached to every engine error"""

    config_name: Optional[str] = None
    invocation: Optional[str] = None
    variable: Optional[str] = None
    relation_kind: Optional[str] = None

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize context for logging"""
        return {
            k: v for k, v in self.__dict__.items()
            if v is not None and not k.startswith('_')
        }

    def format_summary(self) -> str:
        """Human-readable one-line summary"""
        parts = []
        if self.config_name:
            parts.append(f"config={self.config_name}")
        if self.invocation:
            parts.append(f"invocation={self.invocation}")
        if self.variable:
            parts.append(f"variable={self.variable}")
        if self.relation_kind:
            parts.append(f"relation={self.relation_kind}")
        if self.correlation_id:
            parts.append(f"correlation_id={self.correlation_id}")
        return " | ".join(parts)


@dataclass
class ResolutionHint:
    """Actionable guidance for fixing a declarative data problem"""

    title: str
    description: str
    steps: List[str]


class VarmapError(Exception):
    """
    Base exception for the variable map engine with structured context.

    Every engine exception inherits from this class so callers can catch
    one type and still get a diagnostic message naming what to fix.
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[ExecutionContext] = None,
        category: ErrorCategory = ErrorCategory.CONFIGURATION,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        resolution_hints: Optional[List[ResolutionHint]] = None,
        original_exception: Optional[Exception] = None,
        **kwargs
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ExecutionContext()
        self.category = category
        self.severity = severity
        self.resolution_hints = resolution_hints or []
        self.original_exception = original_exception
        self.additional_data = kwargs

    def format_diagnostic_message(self) -> str:
        """
        Format a multi-line diagnostic message for logs and the CLI.

        Includes the message, severity, execution context, resolution hints
        and the original exception when there is one.
        """
        lines = [
            f"{'='*80}",
            f"ERROR: {self.message}",
            f"Severity: {self.severity.value.upper()} | Category: {self.category.value}",
            f"{'='*80}",
            "",
            "EXECUTION CONTEXT:",
        ]

        context_dict = self.context.to_dict()
        for key, value in context_dict.items():
            if key == 'metadata' and isinstance(value, dict):
                for meta_key, meta_value in value.items():
                    lines.append(f"  {meta_key}: {meta_value}")
            else:
                lines.append(f"  {key}: {value}")

        if self.resolution_hints:
            lines.append("")
            lines.append("RESOLUTION HINTS:")
            for i, hint in enumerate(self.resolution_hints, 1):
                lines.append(f"\n{i}. {hint.title}")
                lines.append(f"   {hint.description}")
                if hint.steps:
                    lines.append("   Steps:")
                    for step in hint.steps:
                        lines.append(f"     - {step}")

        if self.original_exception:
            lines.append("")
            lines.append("ORIGINAL EXCEPTION:")
            lines.append(f"  {type(self.original_exception).__name__}: {str(self.original_exception)}")

        lines.append("")
        lines.append(f"{'='*80}")

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for structured logging"""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "context": self.context.to_dict(),
            "resolution_hints": [
                {
                    "title": hint.title,
                    "description": hint.description,
                    "steps": hint.steps,
                }
                for hint in self.resolution_hints
            ],
            "original_exception": str(self.original_exception) if self.original_exception else None,
            **self.additional_data
        }


def _context(kwargs: Dict[str, Any], **fields: Any) -> ExecutionContext:
    """Pop or build the ExecutionContext and fill in any empty fields."""
    context = kwargs.pop("context", None) or ExecutionContext()
    for name, value in fields.items():
        if value is not None and getattr(context, name) is None:
            setattr(context, name, value)
    return context


# Load-time errors
class ConfigurationError(VarmapError):
    """Malformed static configuration data"""
    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.CONFIGURATION, **kwargs)


class UnknownConfigurationError(ConfigurationError):
    """Configuration name is not registered in the binding store"""
    def __init__(self, config_name: str, available: Sequence[str] = (), **kwargs):
        listing = ", ".join(sorted(available)) or "(none)"
        message = (
            f"Configuration '{config_name}' is not registered. "
            f"Available configurations: [{listing}]"
        )
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Check Configuration Name",
                    description="Names are matched exactly, including case and spacing",
                    steps=[
                        "List configurations: varmap configs",
                        "Check the load report for rejected configurations: varmap validate",
                    ],
                )
            ]
        context = _context(kwargs, config_name=config_name)
        self.config_name = config_name
        super().__init__(message, context=context, severity=ErrorSeverity.ERROR, **kwargs)


class UnknownVariableError(ConfigurationError):
    """Relation target is not declared in the variable catalog"""
    def __init__(
        self,
        variable: str,
        *,
        config_name: Optional[str] = None,
        relation_kind: Optional[str] = None,
        **kwargs
    ):
        message = f"Variable '{variable}' is not declared in the variable catalog"
        if relation_kind:
            message = f"{message} (relation: {relation_kind})"
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Declare The Variable",
                    description="Every relation target must exist in the catalog",
                    steps=[
                        f"Add '{variable}' under the 'variables' section of the data file",
                        "Or correct the spelling of the relation target",
                    ],
                )
            ]
        context = _context(
            kwargs, config_name=config_name, variable=variable, relation_kind=relation_kind
        )
        self.variable = variable
        super().__init__(message, context=context, severity=ErrorSeverity.ERROR, **kwargs)


class ConflictingBindingError(ConfigurationError):
    """Variable is declared both as a raw input and as an evaluated input"""
    def __init__(
        self,
        variable: str,
        *,
        config_name: Optional[str] = None,
        existing_role: Optional[str] = None,
        new_role: Optional[str] = None,
        **kwargs
    ):
        message = f"Variable '{variable}' has conflicting sources"
        if existing_role and new_role:
            message = f"{message} (already {existing_role}, cannot also be {new_role})"
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Pick One Source",
                    description="A variable is either raw UI input or computed, never both",
                    steps=[
                        "Remove the variable from primary_inputs/secondary_inputs, or",
                        "Remove it from evaluated_inputs",
                    ],
                )
            ]
        context = _context(kwargs, config_name=config_name, variable=variable)
        self.variable = variable
        super().__init__(message, context=context, severity=ErrorSeverity.ERROR, **kwargs)


class MissingCallableError(ConfigurationError):
    """No callable is registered for an equation or secondary module"""
    def __init__(self, name: str, *, invocation: Optional[str] = None, **kwargs):
        message = f"No callable registered for '{name}'"
        context = _context(kwargs, invocation=invocation or name)
        self.name = name
        super().__init__(message, context=context, severity=ErrorSeverity.ERROR, **kwargs)


class ModuleContractError(ConfigurationError):
    """A secondary module call uses a variable the module does not declare"""
    def __init__(
        self,
        variable: str,
        module: str,
        *,
        direction: str = "output",
        config_name: Optional[str] = None,
        **kwargs
    ):
        message = f"Module '{module}' has no {direction} '{variable}'"
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Match The Module Contract",
                    description=f"Secondary module calls may only use declared module {direction}s",
                    steps=[
                        f"Check the '{module}' entry under the 'modules' section of the data file",
                        f"Or correct the {direction} list of the module call",
                    ],
                )
            ]
        context = _context(kwargs, config_name=config_name, variable=variable, invocation=module)
        self.variable = variable
        self.module = module
        self.direction = direction
        super().__init__(message, context=context, severity=ErrorSeverity.ERROR, **kwargs)


# Resolution-time errors
class ResolutionError(VarmapError):
    """Dependency resolution failure for a single configuration"""
    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            severity=ErrorSeverity.RECOVERABLE,
            **kwargs
        )


class CyclicDependencyError(ResolutionError):
    """Bindings form a cycle, so no evaluation order exists"""
    def __init__(self, cycle: Sequence[str], *, config_name: Optional[str] = None, **kwargs):
        self.cycle = list(cycle)
        message = f"Cyclic dependency detected: {' -> '.join(self.cycle)}"
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Break The Cycle",
                    description="One of the equations or modules in the path consumes its own result",
                    steps=[
                        "Inspect the path above; variables are shown in parentheses",
                        "Remove one input or output declaration along the path",
                        "Re-run: varmap plan <config>",
                    ],
                )
            ]
        context = _context(kwargs, config_name=config_name)
        context.metadata.setdefault("cycle", self.cycle)
        super().__init__(message, context=context, **kwargs)


class UnsatisfiedInputError(ResolutionError):
    """An invocation input has no default, no raw value and no producer"""
    def __init__(
        self,
        variable: str,
        invocation: str,
        *,
        config_name: Optional[str] = None,
        **kwargs
    ):
        self.variable = variable
        self.invocation = invocation
        message = f"Input '{variable}' of {invocation} has no default, raw value or producer"
        if "resolution_hints" not in kwargs:
            kwargs["resolution_hints"] = [
                ResolutionHint(
                    title="Provide A Source",
                    description="Every consumed variable needs a value before the invocation runs",
                    steps=[
                        f"Give '{variable}' a default in the variable catalog, or",
                        f"Supply '{variable}' as a raw UI value, or",
                        f"Declare an equation or module that outputs '{variable}'",
                    ],
                )
            ]
        context = _context(kwargs, config_name=config_name, variable=variable, invocation=invocation)
        super().__init__(message, context=context, **kwargs)


class UnreachablePrimaryInputError(ResolutionError):
    """A primary input sink can never receive a value"""
    def __init__(self, variable: str, *, config_name: Optional[str] = None, **kwargs):
        self.variable = variable
        message = f"Primary input '{variable}' is unreachable: no default, raw value or producer"
        context = _context(kwargs, config_name=config_name, variable=variable)
        super().__init__(message, context=context, **kwargs)


# State errors
class StateError(VarmapError):
    """Catalog lifecycle and evaluator state errors"""
    def __init__(self, message: str, **kwargs):
        super().__init__(message, category=ErrorCategory.STATE, **kwargs)


class CatalogFrozenError(StateError):
    """Mutation attempted after load-then-freeze"""
    def __init__(self, owner: str, **kwargs):
        message = f"{owner} is frozen; static data cannot change after load"
        super().__init__(message, severity=ErrorSeverity.ERROR, **kwargs)


class MissingPrimaryInputError(StateError):
    """A sink holds no value after evaluation; the resolver should have prevented this"""
    def __init__(self, variables: Sequence[str], *, config_name: Optional[str] = None, **kwargs):
        self.variables = list(variables)
        message = f"Primary inputs missing after evaluation: {', '.join(self.variables)}"
        context = _context(kwargs, config_name=config_name)
        context.metadata.setdefault("missing", self.variables)
        super().__init__(message, context=context, severity=ErrorSeverity.CRITICAL, **kwargs)
