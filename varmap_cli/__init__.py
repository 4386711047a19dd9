"""
Variable Map Engine CLI Package

A Rich-based CLI for inspecting the variable map: load reports, configuration
listings, evaluation orders and binding exports.
"""

from .main import app
from _version import __version__, get_full_version, get_version_dict

__all__ = ["app", "__version__", "get_full_version", "get_version_dict"]
