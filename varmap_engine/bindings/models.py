#!/usr/bin/env python3
"""
Binding Data Model

Defines configurations, UI pages, equation and secondary module records, and
the per-configuration BindingSet that the graph builder consumes.

This is a pure data definition module with no dependencies on the store,
graph or evaluator - it is the foundational layer for resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple


class RelationKind(str, Enum):
    """The four relation sets a configuration declares.

    Values sort in the order the exporter prints them.
    """
    EQN_OUTPUTS_TO_PRIMARY = "eqn_outputs_to_primary"
    SECONDARY_OUTPUTS_TO_UI = "secondary_outputs_to_ui"
    SSC_TO_EVAL = "ssc_to_eval"
    UI_TO_SECONDARY = "ui_to_secondary"

    @classmethod
    def parse(cls, value: "RelationKind | str") -> "RelationKind":
        if isinstance(value, RelationKind):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(kind.value for kind in cls)
            raise ValueError(f"Unknown relation kind '{value}'. Valid kinds: {valid}") from None


# Relation targets that feed the primary module directly
SINK_RELATIONS = (RelationKind.EQN_OUTPUTS_TO_PRIMARY, RelationKind.SSC_TO_EVAL)


@dataclass(frozen=True, order=True)
class Binding:
    """One (source, target) pair of a relation set."""
    source: str
    target: str

    @property
    def is_identity(self) -> bool:
        return self.source == self.target


class RelationSet:
    """Insertion-ordered set of Bindings.

    Iteration follows insertion order; membership uses a hash set so
    re-adding an identical pair is a no-op.
    """

    def __init__(self, kind: RelationKind) -> None:
        self.kind = kind
        self._items: List[Binding] = []
        self._seen: Set[Binding] = set()

    def add(self, source: str, target: str) -> bool:
        """Add a pair; returns False when it was already present."""
        binding = Binding(source, target)
        if binding in self._seen:
            return False
        self._seen.add(binding)
        self._items.append(binding)
        return True

    def targets(self) -> List[str]:
        return [b.target for b in self._items]

    def __contains__(self, item: object) -> bool:
        if isinstance(item, tuple):
            item = Binding(*item)
        return item in self._seen

    def __iter__(self) -> Iterator[Binding]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"RelationSet({self.kind.value}, {len(self._items)} pairs)"


@dataclass(frozen=True)
class EquationInfo:
    """UI inputs and outputs of one equation.

    Attributes:
        ui_inputs: Variables read by the equation, in display order
        ui_outputs: Variables written by the equation, in display order
        name: Key of the equation callable; defaults to a name derived from outputs
        ui_form: UI form that declares the equation, if any
    """
    ui_inputs: Tuple[str, ...]
    ui_outputs: Tuple[str, ...]
    name: str = ""
    ui_form: Optional[str] = None

    @classmethod
    def create(
        cls,
        ui_inputs: Sequence[str],
        ui_outputs: Sequence[str],
        name: str = "",
        ui_form: Optional[str] = None,
    ) -> "EquationInfo":
        return cls(tuple(ui_inputs), tuple(ui_outputs), name or "+".join(ui_outputs), ui_form)


@dataclass(frozen=True)
class SecondaryModuleInfo:
    """UI inputs and outputs of one secondary compute module invocation."""
    module: str
    ui_inputs: Tuple[str, ...]
    ui_outputs: Tuple[str, ...]
    ui_form: Optional[str] = None

    @classmethod
    def create(
        cls,
        module: str,
        ui_inputs: Sequence[str],
        ui_outputs: Sequence[str],
        ui_form: Optional[str] = None,
    ) -> "SecondaryModuleInfo":
        return cls(module, tuple(ui_inputs), tuple(ui_outputs), ui_form)


@dataclass(frozen=True)
class PageInfo:
    """One input page of the configuration UI.

    Attributes:
        sidebar_title: Title shown in the sidebar
        common_uiforms: Forms shown regardless of the exclusive selection
        exclusive_var: Variable selecting which exclusive form is shown
        exclusive_uiforms: Forms of which only one is shown at a time
    """
    sidebar_title: str
    common_uiforms: Tuple[str, ...] = ()
    exclusive_var: str = ""
    exclusive_uiforms: Tuple[str, ...] = ()


@dataclass
class BindingSet:
    """All declared relations of one configuration."""
    config_name: str
    primary_inputs: List[str] = field(default_factory=list)
    secondary_inputs: List[str] = field(default_factory=list)
    evaluated_inputs: List[str] = field(default_factory=list)
    equations: List[EquationInfo] = field(default_factory=list)
    secondary_modules: List[SecondaryModuleInfo] = field(default_factory=list)
    relations: Dict[RelationKind, RelationSet] = field(
        default_factory=lambda: {kind: RelationSet(kind) for kind in RelationKind}
    )

    def relation(self, kind: "RelationKind | str") -> RelationSet:
        return self.relations[RelationKind.parse(kind)]

    @property
    def ssc_to_eval(self) -> RelationSet:
        return self.relations[RelationKind.SSC_TO_EVAL]

    @property
    def eqn_outputs_to_primary(self) -> RelationSet:
        return self.relations[RelationKind.EQN_OUTPUTS_TO_PRIMARY]

    @property
    def ui_to_secondary(self) -> RelationSet:
        return self.relations[RelationKind.UI_TO_SECONDARY]

    @property
    def secondary_outputs_to_ui(self) -> RelationSet:
        return self.relations[RelationKind.SECONDARY_OUTPUTS_TO_UI]

    def raw_inputs(self) -> List[str]:
        """Primary then secondary raw inputs, without duplicates."""
        return list(dict.fromkeys(self.primary_inputs + self.secondary_inputs))

    def sink_variables(self) -> List[str]:
        """Variables the primary module consumes, in first-declared order."""
        names = list(self.primary_inputs)
        for kind in SINK_RELATIONS:
            names.extend(self.relations[kind].targets())
        return list(dict.fromkeys(names))


@dataclass
class Configuration:
    """One technology/financial configuration."""
    name: str
    pages: List[PageInfo] = field(default_factory=list)
    primary_modules: List[str] = field(default_factory=list)
    secondary_modules: List[str] = field(default_factory=list)
    bindings: Optional[BindingSet] = None

    def __post_init__(self) -> None:
        if self.bindings is None:
            self.bindings = BindingSet(config_name=self.name)

    def ui_forms(self) -> List[str]:
        """Every form of every page, common forms before exclusive ones."""
        forms: List[str] = []
        for page in self.pages:
            forms.extend(page.common_uiforms)
            forms.extend(page.exclusive_uiforms)
        return forms
