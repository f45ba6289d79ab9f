"""Shared pytest fixtures for clinicflow tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402

_CONFIG_ENV_VARS = (
    "WHATSAPP_LINK_BASE_URL",
    "CLINIC_NAME",
    "CLINIC_TIMEZONE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_config_env(monkeypatch):
    """Run every test against the built-in defaults.

    Settings are read from the environment at call time, so a variable
    exported in the developer's shell would otherwise change link bases,
    clinic names and timeline days.
    """
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
