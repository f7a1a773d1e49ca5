"""
Configuration Management for the Wallet core

Every knob the wallet core reads comes from the environment (or .env)
through pydantic-settings, one settings class per external concern:
Google Sheets, Gemini, the extraction endpoint, and app thresholds.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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

    # Worksheet names within the spreadsheet
    profiles_sheet_name: str = Field(
        default="Profiles",
        description="Name of the sheet for user profiles"
    )
    categories_sheet_name: str = Field(
        default="Categories",
        description="Name of the sheet for categories"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn, without failing, when the key file is not there yet."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class ExtractionSettings(BaseSettings):
    """
    Voice extraction endpoint configuration.

    When no endpoint URL is configured the extraction runs in-process
    against Gemini instead of the hosted function.
    """

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        extra="ignore"
    )

    endpoint_url: Optional[str] = Field(
        default=None,
        description="URL of the hosted analyze-finances function"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Key sent as bearer token and apikey header"
    )
    timeout_seconds: float = Field(
        default=45.0,
        ge=5.0,
        le=120.0,
        description="Upper bound for one extraction round trip"
    )
    audio_mime_type: str = Field(
        default="audio/m4a",
        description="MIME type of recorded clips"
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

    # Profile defaults
    default_billing_start_day: int = Field(
        default=1,
        ge=1,
        le=31,
        description="Billing start day for newly created profiles"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        description="Maximum reasonable amount for one transaction (sanity check)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="How many days in the future a transaction date can be"
    )

    # Reports
    stats_top_categories: int = Field(
        default=5,
        ge=1,
        le=20,
        description="How many expense categories the breakdown shows"
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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def extraction(self) -> ExtractionSettings:
        return ExtractionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide settings.

    Loaded once; tests that change the environment call
    get_settings.cache_clear() before and after.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load every sub-setting.

    Returns {name: loaded_ok} plus a `<name>_error` entry for each
    failure, for a startup health check.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "gemini", "extraction", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
