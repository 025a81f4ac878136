"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

All tunable knobs live here. The scoring and threshold constants that define
the suggester and alert behaviour are module constants next to the code that
uses them, not settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SuggesterSettings(BaseSettings):
    """Category suggester configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SUGGESTER_",
        extra="ignore"
    )

    history_similarity_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="History entries must be strictly more similar than this to count"
    )
    history_weight: float = Field(
        default=2.0,
        ge=0.0,
        description="Multiplier applied to a history similarity before scoring"
    )
    min_winning_score: float = Field(
        default=0.5,
        ge=0.0,
        description="A scored winner must exceed this to be returned"
    )
    min_description_length: int = Field(
        default=3,
        ge=0,
        description="Callers skip suggestion for shorter descriptions"
    )
    history_limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Keep only the most recent N history entries (None = unbounded)"
    )


class AlertSettings(BaseSettings):
    """Budget alert engine configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ALERT_",
        extra="ignore"
    )

    duplicate_tolerance: float = Field(
        default=5.0,
        ge=0.0,
        description="Unseen stored alerts within this many points of a threshold count as duplicates"
    )


class CurrencySettings(BaseSettings):
    """Currency conversion configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CURRENCY_",
        extra="ignore"
    )

    base_currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Currency all stored amounts are normalized to"
    )

    @field_validator('base_currency')
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.upper()


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    budgets_sheet_name: str = Field(
        default="Budgets",
        description="Name of the sheet for budgets"
    )
    alerts_sheet_name: str = Field(
        default="BudgetAlerts",
        description="Name of the sheet for budget alerts"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )


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

    # Sub-settings are built lazily so a missing Google Sheets
    # configuration does not break the in-memory setup.

    @property
    def suggester(self) -> SuggesterSettings:
        return SuggesterSettings()

    @property
    def alerts(self) -> AlertSettings:
        return AlertSettings()

    @property
    def currency(self) -> CurrencySettings:
        return CurrencySettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    `<name>_error` entry for every failing section.
    """
    results = {}
    settings = get_settings()

    for name in ("suggester", "alerts", "currency", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
