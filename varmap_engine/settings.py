"""Engine settings and settings loading.

Settings come from an optional YAML file with environment overrides applied
on top, e.g. ``VARMAP_LOG_LEVEL=DEBUG`` overrides ``log_level``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class VarmapSettings(BaseModel):
    """Top-level settings with extras allowed for forward compatibility."""

    model_config = ConfigDict(extra="allow")

    data_path: Path = Field(
        default=Path("config/variable_map.yaml"),
        description="Declarative catalog and configuration data",
    )
    log_level: str = Field(default="INFO", description="Minimum log level")
    log_dir: Path = Field(default=Path("logs"), description="Directory for JSON log files")
    json_logs: bool = Field(default=False, description="Write JSON logs to log_dir")
    warn_on_undeclared_outputs: bool = Field(
        default=True,
        description="Log a warning when a callable returns outputs it did not declare",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}, got '{v}'")
        return level


def _lower_keys(d: Dict[str, Any]) -> Dict[str, Any]:
    """Settings file keys, lowercased to match the field names."""
    return {str(k).lower(): v for k, v in d.items()}


def _env_overrides(env: Dict[str, str], prefix: str) -> Dict[str, str]:
    """Settings fields named by prefixed environment variables.

    Example: VARMAP_LOG_LEVEL=DEBUG overrides log_level. Only known
    VarmapSettings fields are taken; values stay strings and are coerced
    by model validation.
    """
    overrides: Dict[str, str] = {}
    for key, value in env.items():
        if not key.startswith(prefix):
            continue
        name = key[len(prefix):].lower()
        if name in VarmapSettings.model_fields:
            overrides[name] = value
        else:
            logger.debug(f"Ignoring unknown settings override {key}")
    return overrides


def load_settings(
    path: Optional[Path | str] = None,
    *,
    env_overrides: bool = True,
    env: Optional[Dict[str, str]] = None,
    env_prefix: str = "VARMAP_",
) -> VarmapSettings:
    """Load YAML settings and return a typed `VarmapSettings`.

    - Without a path, defaults are used (plus env overrides)
    - Optionally applies environment variable overrides
    """
    data: Dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Settings file not found: {p}")
        with open(p, "r") as fh:
            raw = yaml.safe_load(fh) or {}
        data = _lower_keys(raw)

    if env_overrides:
        data.update(_env_overrides(env if env is not None else dict(os.environ), env_prefix))

    try:
        return VarmapSettings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid varmap settings: {e}") from e
