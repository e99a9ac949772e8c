"""Shared pytest configuration."""

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line("markers", "integration: tests spanning several modules or the CLI")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep A429_* variables from the calling shell out of the tests."""
    for name in ('A429_OVERFLOW', 'A429_FORMAT', 'A429_NO_SDI', 'A429_VERBOSE'):
        monkeypatch.delenv(name, raising=False)
