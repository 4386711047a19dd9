"""
VariableCatalog - registry of every variable the configurations reference.

The catalog is the sole owner of variable declarations; bindings, equations
and modules refer to variables by name. It is filled once by the static data
loader and then frozen, after which it is safe to share across threads.

Example:
    catalog = VariableCatalog()
    catalog.register(VariableSpec(name="biomass_feed_rate", default=0.0))
    catalog.freeze()

    catalog.default_of("biomass_feed_rate")   # VarValue(NUMBER, 0.0)
    catalog.list_all()                        # ['biomass_feed_rate']
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional

from varmap_engine.catalog.contract import ModuleContract, VariableSpec
from varmap_engine.exceptions import CatalogFrozenError, UnknownVariableError
from varmap_engine.values import VarValue

logger = logging.getLogger(__name__)


class VariableCatalog:
    """Registry mapping variable names to their declarations.

    Thread Safety:
        Not thread-safe while loading. After ``freeze()`` the catalog is
        read-only and may be shared by concurrent resolutions.
    """

    def __init__(self) -> None:
        self._variables: Dict[str, VariableSpec] = {}
        self._modules: Dict[str, ModuleContract] = {}
        self._frozen = False

    def register(self, variable: VariableSpec) -> None:
        """Register a variable declaration.

        Re-registering an identical declaration is a no-op.

        Raises:
            CatalogFrozenError: If the catalog has been frozen.
            ValueError: If a different declaration already uses the name.
        """
        self._check_mutable()
        existing = self._variables.get(variable.name)
        if existing is not None:
            if existing == variable:
                return
            raise ValueError(
                f"Variable '{variable.name}' is already registered. "
                f"Existing registration: {existing}. "
                f"Each variable can only be declared once."
            )
        self._variables[variable.name] = variable
        logger.debug(f"Registered variable: {variable.name}")

    def get(self, name: str) -> VariableSpec:
        """Get a declaration by name.

        Raises:
            UnknownVariableError: If the name is not registered.
        """
        try:
            return self._variables[name]
        except KeyError:
            raise UnknownVariableError(name) from None

    def is_registered(self, name: str) -> bool:
        return name in self._variables

    def default_of(self, name: str) -> Optional[VarValue]:
        """Default value of a variable, or None when undeclared or without default."""
        variable = self._variables.get(name)
        return variable.default if variable is not None else None

    def has_default(self, name: str) -> bool:
        return self.default_of(name) is not None

    def list_all(self) -> List[str]:
        """Sorted list of registered variable names."""
        return sorted(self._variables.keys())

    def count(self) -> int:
        return len(self._variables)

    # Module contracts

    def register_module(self, contract: ModuleContract) -> None:
        """Register the input and output contract of a compute module.

        Raises:
            CatalogFrozenError: If the catalog has been frozen.
            ValueError: If a different contract already uses the name.
        """
        self._check_mutable()
        existing = self._modules.get(contract.name)
        if existing is not None:
            if existing == contract:
                return
            raise ValueError(
                f"Module '{contract.name}' is already registered. "
                f"Existing registration: {existing}."
            )
        self._modules[contract.name] = contract
        logger.debug(f"Registered module contract: {contract}")

    def module_contract(self, name: str) -> Optional[ModuleContract]:
        """Contract of a module, or None when the module declares none."""
        return self._modules.get(name)

    def list_modules(self) -> List[str]:
        return sorted(self._modules.keys())

    def freeze(self) -> None:
        """Make the catalog read-only for the rest of the process."""
        self._frozen = True
        logger.debug(
            f"VariableCatalog frozen with {len(self._variables)} variables, "
            f"{len(self._modules)} module contracts"
        )

    @property
    def frozen(self) -> bool:
        return self._frozen

    def summary(self) -> str:
        """Summary string of registered variables, for debugging and logging."""
        if not self._variables:
            return "VariableCatalog: No variables registered"

        lines = [f"VariableCatalog ({len(self._variables)} variables):"]
        for name in sorted(self._variables.keys()):
            lines.append(f"  - {self._variables[name]}")
        return "\n".join(lines)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise CatalogFrozenError("VariableCatalog")

    def __contains__(self, name: object) -> bool:
        return name in self._variables

    def __iter__(self) -> Iterator[VariableSpec]:
        return iter(self._variables[name] for name in sorted(self._variables))

    def __len__(self) -> int:
        return len(self._variables)
