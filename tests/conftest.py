"""Shared pytest configuration and fixtures."""

import pytest

# Register the fixtures from directchats.testing
pytest_plugins = ["directchats.testing"]

ENV_VARS = (
    "DIRECTCHATS_PATH",
    "DIRECTCHATS_URL",
    "DIRECTCHATS_ACCESS_TOKEN",
    "DIRECTCHATS_USER_ID",
    "DIRECTCHATS_HOME_SERVER",
    "DIRECTCHATS_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep the caller's environment and global config out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    yield
