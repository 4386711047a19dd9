"""
Static data loader.

Reads the declarative variable map (variables, UI forms, module contracts and
configurations) from YAML into a frozen VariableCatalog and BindingStore. The
file layout is:

    variables:
      biomass_feed_rate_pct:
        default: 0.8
        referenced_by: [biomass_feed_rate]
    ui_forms:
      Biopower Feedstock:
        defaults: {biomass_moisture: 0.2}
        equations:
          - name: biomass_feed_rate
            inputs: [biomass_feed_rate_pct]
            outputs: [biomass_feed_rate]
        secondary_modules: []
    modules:
      biomass:
        inputs: [biomass_feed_rate, biomass_moisture]
    configurations:
      Biopower-LCOE Calculator:
        pages:
          - sidebar_title: Feedstock
            common_uiforms: [Biopower Feedstock]
        primary_modules: [biomass]
        primary_inputs: [biomass_moisture]
        bindings:
          eqn_outputs_to_primary:
            - [biomass_feed_rate, biomass_feed_rate]

Equations and secondary module calls declared on a form are attached to every
configuration that shows the form. A malformed configuration is rejected on
its own and recorded in the LoadReport; the rest still load.

Module contracts are optional. Where one is declared, secondary module calls
must stay within it, and primary module inputs that no primary input
supplies are listed in LoadReport.uncovered_inputs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from varmap_engine.bindings.models import (
    Configuration,
    EquationInfo,
    PageInfo,
    SecondaryModuleInfo,
)
from varmap_engine.bindings.store import BindingStore
from varmap_engine.catalog.contract import ModuleContract, VariableSpec
from varmap_engine.catalog.registry import VariableCatalog
from varmap_engine.exceptions import ConfigurationError, ExecutionContext, VarmapError

logger = logging.getLogger(__name__)


# File schema

class EquationEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = ""
    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(..., min_length=1)


class ModuleCallEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    module: str
    inputs: List[str] = Field(default_factory=list)
    outputs: List[str] = Field(default_factory=list)


class FormEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    defaults: Dict[str, Any] = Field(default_factory=dict)
    equations: List[EquationEntry] = Field(default_factory=list)
    secondary_modules: List[ModuleCallEntry] = Field(default_factory=list)


class PageEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sidebar_title: str
    common_uiforms: List[str] = Field(default_factory=list)
    exclusive_var: str = ""
    exclusive_uiforms: List[str] = Field(default_factory=list)


class ConfigurationEntry(BaseModel):
    """One entry of the ``configurations`` section."""

    model_config = ConfigDict(extra="forbid")

    pages: List[PageEntry] = Field(default_factory=list)
    primary_modules: List[str] = Field(default_factory=list)
    secondary_modules: List[str] = Field(default_factory=list)
    primary_inputs: List[str] = Field(default_factory=list)
    secondary_inputs: List[str] = Field(default_factory=list)
    evaluated_inputs: List[str] = Field(default_factory=list)
    equations: List[EquationEntry] = Field(default_factory=list)
    secondary_module_calls: List[ModuleCallEntry] = Field(default_factory=list)
    bindings: Dict[str, List[Tuple[str, str]]] = Field(default_factory=dict)

    @field_validator("bindings", mode="before")
    @classmethod
    def validate_bindings(cls, v: Any) -> Any:
        return v or {}


# Load report

@dataclass
class LoadReport:
    """Outcome of a static data load."""
    source: Optional[str] = None
    variables: int = 0
    loaded: List[str] = field(default_factory=list)
    rejected: Dict[str, VarmapError] = field(default_factory=dict)
    uncovered_inputs: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejected

    def summary(self) -> str:
        lines = [
            f"Loaded {len(self.loaded)} configurations, rejected {len(self.rejected)} "
            f"({self.variables} variables)"
        ]
        for name in sorted(self.rejected):
            lines.append(f"  - {name}: {self.rejected[name].message}")
        for name in sorted(self.uncovered_inputs):
            lines.append(
                f"  ! {name}: primary module inputs without a source: "
                f"{', '.join(self.uncovered_inputs[name])}"
            )
        return "\n".join(lines)


@dataclass
class StaticData:
    """Frozen catalog and store produced by a load."""
    catalog: VariableCatalog
    store: BindingStore
    report: LoadReport


# Form tracking

@dataclass
class _FormCursor:
    """Collects what each UI form declares while the forms section is read.

    Only lives for the duration of one load; the active form is passed along
    explicitly rather than held anywhere global.
    """
    active_form: Optional[str] = None
    equations: Dict[str, List[EquationInfo]] = field(default_factory=dict)
    modules: Dict[str, List[SecondaryModuleInfo]] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)
    referenced_by: Dict[str, List[str]] = field(default_factory=dict)

    def enter(self, form: str) -> None:
        self.active_form = form
        self.equations.setdefault(form, [])
        self.modules.setdefault(form, [])

    def leave(self) -> None:
        self.active_form = None

    def add_default(self, variable: str, value: Any) -> None:
        if variable in self.defaults and self.defaults[variable] != value:
            logger.warning(
                f"Form '{self.active_form}' redeclares default of '{variable}'; "
                f"keeping {self.defaults[variable]!r}"
            )
            return
        self.defaults.setdefault(variable, value)

    def add_equation(self, entry: EquationEntry) -> EquationInfo:
        eqn = EquationInfo.create(entry.inputs, entry.outputs, name=entry.name, ui_form=self.active_form)
        if self.active_form is not None:
            self.equations[self.active_form].append(eqn)
        self.reference(eqn.name, eqn.ui_inputs + eqn.ui_outputs)
        return eqn

    def add_module(self, entry: ModuleCallEntry) -> SecondaryModuleInfo:
        cmod = SecondaryModuleInfo.create(entry.module, entry.inputs, entry.outputs, ui_form=self.active_form)
        if self.active_form is not None:
            self.modules[self.active_form].append(cmod)
        self.reference(cmod.module, cmod.ui_inputs + cmod.ui_outputs)
        return cmod

    def reference(self, owner: str, variables: Tuple[str, ...]) -> None:
        for name in variables:
            owners = self.referenced_by.setdefault(name, [])
            if owner not in owners:
                owners.append(owner)


# Loading

def load_static_data(path: Path | str) -> StaticData:
    """Load a YAML variable map file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the variables or forms sections are malformed
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Variable map file not found: {p}")
    with open(p, "r") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Variable map file {p} must contain a mapping at top level")
    return load_static_data_from_mapping(data, source=str(p))


def load_static_data_from_mapping(data: Mapping[str, Any], source: Optional[str] = None) -> StaticData:
    """Build frozen static data from an already-parsed mapping.

    Variables and forms are global: a problem there aborts the whole load.
    Configurations are loaded one at a time and a failing configuration is
    discarded and recorded in the report.
    """
    report = LoadReport(source=source)
    cursor = _FormCursor()

    forms = data.get("ui_forms") or {}
    for form_name, raw_form in forms.items():
        form = _validate(FormEntry, raw_form or {}, f"UI form '{form_name}'")
        cursor.enter(form_name)
        for variable, value in form.defaults.items():
            cursor.add_default(variable, value)
        for entry in form.equations:
            cursor.add_equation(entry)
        for entry in form.secondary_modules:
            cursor.add_module(entry)
        cursor.leave()

    catalog = _build_catalog(data.get("variables") or {}, data.get("modules") or {}, cursor)
    report.variables = catalog.count()

    store = BindingStore(catalog)
    for config_name, raw_config in (data.get("configurations") or {}).items():
        try:
            _load_configuration(store, cursor, config_name, raw_config or {})
        except VarmapError as e:
            store.discard(config_name)
            report.rejected[config_name] = e
            logger.warning(f"Rejected configuration '{config_name}': {e.message}")
        else:
            report.loaded.append(config_name)
            uncovered = store.uncovered_module_inputs(config_name)
            if uncovered:
                report.uncovered_inputs[config_name] = uncovered
                logger.warning(
                    f"[{config_name}] primary module inputs without a source: {uncovered}"
                )

    catalog.freeze()
    store.freeze()
    logger.info(
        f"Loaded static data: {catalog.count()} variables, "
        f"{len(report.loaded)} configurations, {len(report.rejected)} rejected"
    )
    return StaticData(catalog=catalog, store=store, report=report)


def _validate(model: type, raw: Any, what: str, config_name: Optional[str] = None):
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid {what}: {e}",
            context=ExecutionContext(config_name=config_name),
            original_exception=e,
        ) from e


def _build_catalog(
    variables: Mapping[str, Any],
    modules: Mapping[str, Any],
    cursor: _FormCursor,
) -> VariableCatalog:
    """Catalog of declared variables, every variable a form gives a default,
    and the module contracts."""
    catalog = VariableCatalog()
    names = list(variables) + [name for name in cursor.defaults if name not in variables]
    for name in names:
        raw = variables.get(name)
        entry = dict(raw) if isinstance(raw, Mapping) else {"default": raw}
        if entry.get("default") is None and name in cursor.defaults:
            entry["default"] = cursor.defaults[name]
        referenced_by = list(entry.get("referenced_by") or [])
        for owner in cursor.referenced_by.get(name, []):
            if owner not in referenced_by:
                referenced_by.append(owner)
        entry["referenced_by"] = referenced_by
        declared = _validate(VariableSpec, {"name": name, **entry}, f"variable '{name}'")
        catalog.register(declared)
    for module, raw in modules.items():
        if not isinstance(raw or {}, Mapping):
            raise ConfigurationError(f"Invalid module '{module}': expected inputs and outputs")
        contract = _validate(ModuleContract, {"name": module, **(raw or {})}, f"module '{module}'")
        catalog.register_module(contract)
    return catalog


def _load_configuration(
    store: BindingStore,
    cursor: _FormCursor,
    config_name: str,
    raw: Mapping[str, Any],
) -> None:
    entry: ConfigurationEntry = _validate(
        ConfigurationEntry, raw, f"configuration '{config_name}'", config_name=config_name
    )
    configuration = store.register_configuration(Configuration(
        name=config_name,
        pages=[
            PageInfo(
                sidebar_title=page.sidebar_title,
                common_uiforms=tuple(page.common_uiforms),
                exclusive_var=page.exclusive_var,
                exclusive_uiforms=tuple(page.exclusive_uiforms),
            )
            for page in entry.pages
        ],
        primary_modules=list(entry.primary_modules),
        secondary_modules=list(entry.secondary_modules),
    ))

    for name in entry.primary_inputs:
        store.add_primary_input(config_name, name)
    for name in entry.secondary_inputs:
        store.add_secondary_input(config_name, name)
    for name in entry.evaluated_inputs:
        store.add_evaluated_input(config_name, name)

    for form in dict.fromkeys(configuration.ui_forms()):
        if form not in cursor.equations:
            logger.debug(f"[{config_name}] form '{form}' declares no equations or modules")
            continue
        for eqn in cursor.equations[form]:
            store.add_equation(config_name, eqn)
        for cmod in cursor.modules[form]:
            store.add_secondary_module(config_name, cmod)

    for eqn_entry in entry.equations:
        store.add_equation(config_name, EquationInfo.create(
            eqn_entry.inputs, eqn_entry.outputs, name=eqn_entry.name
        ))
    for call in entry.secondary_module_calls:
        store.add_secondary_module(config_name, SecondaryModuleInfo.create(
            call.module, call.inputs, call.outputs
        ))

    for kind, pairs in entry.bindings.items():
        for source, target in pairs:
            store.add_binding(config_name, kind, source, target)

    logger.debug(f"[{config_name}] loaded {len(configuration.ui_forms())} forms")
