"""
config/__init__.py — autoaccept Settings
"""

from autoaccept.config.settings import (
    ConfigError,
    SecurityConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
    save_settings,
)

__all__ = [
    "ConfigError",
    "SecurityConfig",
    "Settings",
    "get_settings",
    "load_settings",
    "reset_settings",
    "save_settings",
]
