"""
Pytest Configuration for the Variable Map Engine
================================================

Root conftest.py - delegates to tests/fixtures/ for reusable components.
"""

import pytest

# Import shared fixtures
from tests.fixtures import *


def pytest_collection_modifyitems(config, items):
    """Automatically add markers based on test location."""
    for item in items:
        if "/unit/" in item.nodeid:
            item.add_marker(pytest.mark.unit)
            item.add_marker(pytest.mark.fast)  # Unit tests are fast by default

        if "/cli/" in item.nodeid:
            item.add_marker(pytest.mark.cli)
        if "settings" in item.nodeid.lower() or "loader" in item.nodeid.lower():
            item.add_marker(pytest.mark.config)
