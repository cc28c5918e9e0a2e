"""Configuration package."""

from spendwise.config.settings import (
    AppSettings,
    AuthSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuthSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
