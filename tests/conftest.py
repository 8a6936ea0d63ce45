"""
Root conftest for all tests.

Only shared marker registration lives here; fixtures for the unit suite are
in tests/unit/conftest.py.
"""

import pytest


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no external dependencies)"
    )
