"""
Configuration Management for Budget Forecast

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The forecast engine itself never reads settings; the flows read them
and pass plain values down.
"""

from datetime import date
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ForecastSettings(BaseSettings):
    """Forecast engine limits and defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FORECAST_",
        extra="ignore"
    )

    max_occurrences: int = Field(
        default=1_000_000,
        ge=1,
        description="Upper bound on occurrences generated for one forecast request"
    )
    default_window_days: int = Field(
        default=30,
        ge=1,
        le=3660,
        description="Length of the default forecast window, today included"
    )
    upcoming_months: int = Field(
        default=3,
        ge=1,
        le=120,
        description="How many months ahead the occurrence listing looks"
    )
    epoch: date = Field(
        default=date(1900, 1, 1),
        description="Beginning-of-time sentinel used to compute opening balances"
    )


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
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for recurring transactions"
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

    # Environment
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
        description="Minimum level for local structured logs"
    )

    # Which storage backend the app components use
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Storage backend: in-memory or Google Sheets"
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def forecast(self) -> ForecastSettings:
        return ForecastSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.forecast
        results["forecast"] = True
    except Exception as e:
        results["forecast"] = False
        results["forecast_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
