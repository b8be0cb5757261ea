"""
Test conftest — isolate autoaccept environment variables so that Settings()
is not affected by a developer's shell, .env file or config singleton.
"""
import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch):
    """Remove AUTOACCEPT_* env vars for every test and disable .env loading
    so Settings() behaves as if only the test's own inputs exist."""
    for var in list(os.environ):
        if var.upper().startswith("AUTOACCEPT_"):
            monkeypatch.delenv(var, raising=False)

    import autoaccept.config.settings as settings_module
    from pydantic_settings import SettingsConfigDict
    patched_config = SettingsConfigDict(
        env_prefix="AUTOACCEPT_",
        env_file=None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )
    monkeypatch.setattr(settings_module.Settings, "model_config", patched_config)
    monkeypatch.setattr(settings_module, "_singleton", None)
