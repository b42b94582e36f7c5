"""Configuration package."""

from src.config.settings import (
    AppSettings,
    PriceSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "PriceSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
