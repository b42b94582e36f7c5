"""
Configuration Management for Personal Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which external services the tracker talks to
and ensures every threshold is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local record storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="json",
        pattern="^(memory|json)$",
        description="Record store backend: 'memory' or 'json'"
    )
    data_path: str = Field(
        default="data/finance.json",
        description="Path to the local JSON data file"
    )

    @field_validator('data_path')
    @classmethod
    def validate_data_path(cls, v: str) -> str:
        """Warn if the parent directory is missing (it is created on first write)."""
        parent = Path(v).parent
        if str(parent) not in ("", ".") and not parent.exists():
            import warnings
            warnings.warn(
                f"Data directory {parent} does not exist yet. "
                "It will be created on the first write."
            )
        return v


class PriceSettings(BaseSettings):
    """Third-party quote service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="PRICE_",
        extra="ignore"
    )

    equity_quote_url: str = Field(
        default="https://query1.finance.yahoo.com/v7/finance/quote",
        description="Equity quote endpoint (queried with ?symbols=)"
    )
    crypto_quote_url: str = Field(
        default="https://api.coingecko.com/api/v3/simple/price",
        description="Digital asset quote endpoint (queried with ?ids=&vs_currencies=)"
    )
    vs_currency: str = Field(
        default="usd",
        description="Quote currency for digital asset prices"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=60.0,
        description="Per-request timeout; expiry counts as price unavailable"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Budget
    over_budget_threshold: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Expenses above income * threshold count as over budget"
    )
    expense_categories: str = Field(
        default="Food,Transport,Entertainment,Bills,Other",
        description="Comma-separated canonical category list, in display order"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a transaction date can be"
    )

    # Credentials
    min_password_length: int = Field(
        default=6,
        ge=1,
        le=72,
        description="Minimum password length at registration"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=15,
        description="bcrypt cost factor"
    )

    @property
    def categories_list(self) -> list[str]:
        """Get canonical categories as a list, preserving order."""
        return [cat.strip() for cat in self.expense_categories.split(",") if cat.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def prices(self) -> PriceSettings:
        return PriceSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings(settings: Optional[Settings] = None) -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for anything that failed.
    Useful for startup checks.
    """
    results: dict[str, object] = {}
    settings = settings or get_settings()

    for name in ("storage", "prices", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
