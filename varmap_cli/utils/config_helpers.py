"""
Configuration helper utilities for the Variable Map Engine CLI

Functions to find the settings and data files and load them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from varmap_engine.loader import StaticData, load_static_data
from varmap_engine.settings import VarmapSettings, load_settings


def find_default_settings() -> Optional[Path]:
    """Find the default settings file, if there is one."""
    default_paths = [
        Path("config/varmap.yaml"),
        Path("varmap.yaml"),
    ]

    for settings_path in default_paths:
        if settings_path.exists():
            return settings_path

    return None


def find_default_data(settings: VarmapSettings) -> Path:
    """Find the variable map data file."""
    default_paths = [
        settings.data_path,
        Path("config/variable_map.yaml"),
        Path("variable_map.yaml"),
    ]

    for data_path in default_paths:
        if data_path.exists():
            return data_path

    # Return the configured location even if it doesn't exist
    return settings.data_path


def resolve_settings(settings_file: Optional[str]) -> VarmapSettings:
    """Load settings from an explicit file, the default file, or defaults."""
    path = Path(settings_file) if settings_file else find_default_settings()
    return load_settings(path)


def load_data(data: Optional[str], settings: VarmapSettings) -> StaticData:
    """Load the variable map from ``data`` or the default location."""
    data_path = Path(data) if data else find_default_data(settings)
    return load_static_data(data_path)
