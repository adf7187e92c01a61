"""Shared pytest fixtures for vault-sync tests."""

from __future__ import annotations

import pytest

_ENV_VARS = (
    "VAULT_SYNC_POLICY",
    "VAULT_SYNC_AUTO",
    "VAULT_SYNC_INTERVAL_MS",
    "VAULT_SYNC_CONTENT_AWARE",
    "VAULT_SYNC_MAX_PARALLEL",
    "VAULT_SYNC_CONFIG",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in an empty directory with an empty home, so no config is found."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def fixed_clock():
    """Clock starting just after 1_700_000_000_000 that advances 1 ms per call."""
    ticks = {"now": 1_700_000_000_000}

    def _clock() -> int:
        ticks["now"] += 1
        return ticks["now"]

    return _clock
