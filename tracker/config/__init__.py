"""Configuration package."""

from tracker.config.settings import (
    AppSettings,
    ClientSettings,
    GoogleSheetsSettings,
    IdentitySettings,
    Settings,
    StoreBackend,
    StoreSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ClientSettings",
    "GoogleSheetsSettings",
    "IdentitySettings",
    "Settings",
    "StoreBackend",
    "StoreSettings",
    "get_settings",
    "validate_all_settings",
]
