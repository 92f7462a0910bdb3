"""
Shared fixtures for rule table unit tests.
"""

import os

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_structlog():
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep RULETABLES_* variables from the host out of the tests."""
    for key in list(os.environ):
        if key.startswith("RULETABLES_"):
            monkeypatch.delenv(key)
