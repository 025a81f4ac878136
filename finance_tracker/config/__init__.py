"""Configuration package."""

from finance_tracker.config.settings import (
    AlertSettings,
    AppSettings,
    CurrencySettings,
    GoogleSheetsSettings,
    Settings,
    SuggesterSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AlertSettings",
    "AppSettings",
    "CurrencySettings",
    "GoogleSheetsSettings",
    "Settings",
    "SuggesterSettings",
    "get_settings",
    "validate_all_settings",
]
