"""Pytest configuration and fixtures for fairdeploy tests.

Keeps the developer's own configuration out of test runs: FAIRDEPLOY_*
environment variables are cleared and ~/.fairdeploy/config.toml is never read.
"""

import pytest


@pytest.fixture(autouse=True)
def isolate_user_configuration(monkeypatch, tmp_path):
    """Hide real FAIRDEPLOY_* settings and the real config file from tests."""
    from fairdeploy import config

    for var in config.ENV_VARS.values():
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "DEFAULT_CONFIG_FILE", tmp_path / "no-such-config.toml")
