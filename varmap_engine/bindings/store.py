"""
BindingStore - per-configuration record of declared variable relations.

Enforces the static-data invariants at insertion time so malformed data is
rejected while loading rather than when a simulation is resolved:

- every relation target must be declared in the VariableCatalog
- a variable is either a raw input or an evaluated input, never both
- relation sets are true sets; repeated pairs are no-ops
- secondary module calls stay within the module's registered contract

Example:
    store = BindingStore(catalog)
    store.register_configuration(Configuration(name="Biopower-LCOE Calculator"))
    store.add_primary_input("Biopower-LCOE Calculator", "biomass_feed_rate")
    store.add_binding(
        "Biopower-LCOE Calculator",
        "eqn_outputs_to_primary",
        "biomass_feed_rate",
        "biomass_feed_rate",
    )
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List

from varmap_engine.bindings.models import (
    BindingSet,
    Configuration,
    EquationInfo,
    RelationKind,
    SecondaryModuleInfo,
)
from varmap_engine.catalog.registry import VariableCatalog
from varmap_engine.exceptions import (
    CatalogFrozenError,
    ConfigurationError,
    ConflictingBindingError,
    ExecutionContext,
    ModuleContractError,
    UnknownConfigurationError,
    UnknownVariableError,
)

logger = logging.getLogger(__name__)

_RAW_ROLES = ("primary_inputs", "secondary_inputs")
_EVALUATED_ROLE = "evaluated_inputs"


class BindingStore:
    """Registry of configurations and their BindingSets.

    Thread Safety:
        Not thread-safe while loading. After ``freeze()`` the store is
        read-only and may be shared by concurrent resolutions.
    """

    def __init__(self, catalog: VariableCatalog) -> None:
        self.catalog = catalog
        self._configurations: Dict[str, Configuration] = {}
        self._frozen = False

    # Registration

    def register_configuration(self, configuration: Configuration) -> Configuration:
        """Register a new configuration.

        Raises:
            CatalogFrozenError: If the store has been frozen.
            ValueError: If the name is already registered.
        """
        self._check_mutable()
        if configuration.name in self._configurations:
            raise ValueError(
                f"Configuration '{configuration.name}' is already registered. "
                f"Each configuration can only be registered once."
            )
        self._configurations[configuration.name] = configuration
        logger.debug(f"Registered configuration: {configuration.name}")
        return configuration

    def discard(self, config_name: str) -> None:
        """Remove a configuration, used to abort loading a malformed one."""
        self._check_mutable()
        if self._configurations.pop(config_name, None) is not None:
            logger.debug(f"Discarded configuration: {config_name}")

    # Lookup

    def get_configuration(self, config_name: str) -> Configuration:
        """Get a configuration by name.

        Raises:
            UnknownConfigurationError: If the name is not registered.
        """
        try:
            return self._configurations[config_name]
        except KeyError:
            raise UnknownConfigurationError(
                config_name, available=list(self._configurations)
            ) from None

    def get_binding_set(self, config_name: str) -> BindingSet:
        """Get the BindingSet of a configuration.

        Raises:
            UnknownConfigurationError: If the name is not registered.
        """
        return self.get_configuration(config_name).bindings

    def is_registered(self, config_name: str) -> bool:
        return config_name in self._configurations

    def list_all(self) -> List[str]:
        """Sorted list of registered configuration names."""
        return sorted(self._configurations.keys())

    def count(self) -> int:
        return len(self._configurations)

    # Relations

    def add_binding(
        self,
        config_name: str,
        relation_kind: "RelationKind | str",
        source: str,
        target: str,
    ) -> bool:
        """Insert a (source, target) pair into a relation set.

        Returns:
            True if the pair was added, False if it was already present.

        Raises:
            UnknownConfigurationError: If the configuration is not registered.
            UnknownVariableError: If the target is not in the catalog.
            ConfigurationError: If the relation kind is unknown or source is empty.
        """
        self._check_mutable()
        bindings = self.get_binding_set(config_name)
        try:
            kind = RelationKind.parse(relation_kind)
        except ValueError as e:
            raise ConfigurationError(
                str(e), context=ExecutionContext(config_name=config_name)
            ) from e

        if not source:
            raise ConfigurationError(
                f"Empty source variable for target '{target}'",
                context=ExecutionContext(
                    config_name=config_name, variable=target, relation_kind=kind.value
                ),
            )
        if target not in self.catalog:
            raise UnknownVariableError(
                target, config_name=config_name, relation_kind=kind.value
            )

        added = bindings.relation(kind).add(source, target)
        if added:
            logger.debug(f"[{config_name}] {kind.value}: {source} -> {target}")
        return added

    # Raw and evaluated inputs

    def add_primary_input(self, config_name: str, variable: str) -> None:
        self._add_input(config_name, variable, "primary_inputs")

    def add_secondary_input(self, config_name: str, variable: str) -> None:
        self._add_input(config_name, variable, "secondary_inputs")

    def add_evaluated_input(self, config_name: str, variable: str) -> None:
        self._add_input(config_name, variable, _EVALUATED_ROLE)

    def _add_input(self, config_name: str, variable: str, role: str) -> None:
        self._check_mutable()
        bindings = self.get_binding_set(config_name)

        opposing = _RAW_ROLES if role == _EVALUATED_ROLE else (_EVALUATED_ROLE,)
        for other in opposing:
            if variable in getattr(bindings, other):
                raise ConflictingBindingError(
                    variable,
                    config_name=config_name,
                    existing_role=other,
                    new_role=role,
                )

        names: List[str] = getattr(bindings, role)
        if variable not in names:
            names.append(variable)

    # Invocations

    def add_equation(self, config_name: str, equation: EquationInfo) -> None:
        self._check_mutable()
        self.get_binding_set(config_name).equations.append(equation)

    def add_secondary_module(self, config_name: str, module: SecondaryModuleInfo) -> None:
        """Attach a secondary module call to a configuration.

        Raises:
            ModuleContractError: If the module has a registered contract and
                the call reads or writes a variable outside it.
        """
        self._check_mutable()
        bindings = self.get_binding_set(config_name)
        contract = self.catalog.module_contract(module.module)
        if contract is not None:
            for direction, names, declared in (
                ("input", module.ui_inputs, contract.inputs),
                ("output", module.ui_outputs, contract.outputs),
            ):
                for name in names:
                    if name not in declared:
                        raise ModuleContractError(
                            name, module.module, direction=direction, config_name=config_name
                        )
        bindings.secondary_modules.append(module)

    def uncovered_module_inputs(self, config_name: str) -> List[str]:
        """Contract inputs of the primary modules that no primary input sink supplies."""
        configuration = self.get_configuration(config_name)
        sinks = set(configuration.bindings.sink_variables())
        missing: List[str] = []
        for module in configuration.primary_modules:
            contract = self.catalog.module_contract(module)
            if contract is None:
                continue
            for name in contract.inputs:
                if name not in sinks and name not in missing:
                    missing.append(name)
        return missing

    # Lifecycle

    def freeze(self) -> None:
        """Make the store read-only for the rest of the process."""
        self._frozen = True
        logger.debug(f"BindingStore frozen with {len(self._configurations)} configurations")

    @property
    def frozen(self) -> bool:
        return self._frozen

    def summary(self) -> str:
        """Summary string of registered configurations."""
        if not self._configurations:
            return "BindingStore: No configurations registered"

        lines = [f"BindingStore ({len(self._configurations)} configurations):"]
        for name in sorted(self._configurations.keys()):
            bindings = self._configurations[name].bindings
            pairs = sum(len(r) for r in bindings.relations.values())
            lines.append(
                f"  - {name}: {len(bindings.equations)} equations, "
                f"{len(bindings.secondary_modules)} secondary modules, {pairs} relations"
            )
        return "\n".join(lines)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise CatalogFrozenError("BindingStore")

    def __iter__(self) -> Iterator[Configuration]:
        return iter(self._configurations[name] for name in sorted(self._configurations))

    def __len__(self) -> int:
        return len(self._configurations)
