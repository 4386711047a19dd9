"""
VariableSpec and ModuleContract - Pydantic models for catalog declarations.

Example:
    variable = VariableSpec(
        name="biomass_feed_rate",
        default=0.0,
        referenced_by=["biomass", "feed_rate_eqn"],
    )
    contract = ModuleContract(
        name="solar_resource",
        inputs=["resource_file"],
        outputs=["annual_ghi"],
    )
"""

from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from varmap_engine.values import VarValue


class VariableSpec(BaseModel):
    """Declaration of one variable in the process-wide catalog.

    Attributes:
        name: Unique variable name shared by UI forms, equations and modules.
        default: Optional default value. Plain Python data is converted to
                 a VarValue on validation.
        referenced_by: Compute modules and equations that reference the variable.
        description: Human-readable label.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique variable name")
    default: Optional[VarValue] = Field(default=None, description="Declared default value")
    referenced_by: List[str] = Field(
        default_factory=list,
        description="Compute modules and equations that reference this variable",
    )
    description: str = Field(default="", description="Human-readable label")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("variable name cannot be empty")
        return v

    @field_validator("default", mode="before")
    @classmethod
    def coerce_default(cls, v: Any) -> Optional[VarValue]:
        if v is None:
            return None
        try:
            return VarValue.from_python(v)
        except TypeError as e:
            raise ValueError(str(e)) from e

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def __str__(self) -> str:
        if self.default is None:
            return self.name
        return f"{self.name} = {self.default.render()}"


class ModuleContract(BaseModel):
    """Declared inputs and outputs of one compute module.

    Inputs cover every variable the module reads; outputs are only declared
    for secondary modules, whose results can be copied back to the UI.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., description="Compute module name")
    inputs: List[str] = Field(default_factory=list, description="Every module input")
    outputs: List[str] = Field(default_factory=list, description="Module outputs")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("module name cannot be empty")
        return v

    def __str__(self) -> str:
        return f"{self.name}({len(self.inputs)} inputs, {len(self.outputs)} outputs)"
