"""
Pytest configuration for all tests.

Settings are read at import time, so the environment is prepared before any
fellowship_backend module is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["TOKEN_SECRET"] = "YWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWFhYWE="

from fellowship_backend.tests.fixtures import *  # noqa: E402,F401,F403


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
