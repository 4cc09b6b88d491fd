"""Pytest configuration and shared fixtures for cchistory tests."""

import pytest

import cchistory.io.logging_setup


_CCHISTORY_ENV = (
    "CCHISTORY_REGISTRY_URL",
    "CCHISTORY_PACKAGE",
    "CCHISTORY_TRACE_PACKAGE",
    "CCHISTORY_TRACE_TIMEOUT",
    "CCHISTORY_HTTP_TIMEOUT",
    "CCHISTORY_LOG_LEVEL",
    "CCHISTORY_LOG_FILE",
    "DEBUG",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate config/log locations from the developer's machine."""
    for name in _CCHISTORY_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("CCHISTORY_LOG_DIR", str(tmp_path / "logs"))
    yield tmp_path
    cchistory.io.logging_setup.reset()
