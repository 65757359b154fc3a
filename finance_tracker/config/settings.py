"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Pointing the app at a different backend instance is a matter of
environment variables, not code.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finance_tracker.models.entities import Category, PaymentMethod


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

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

    # One worksheet per record kind
    transactions_sheet_name: str = Field(default="transactions")
    bills_sheet_name: str = Field(default="bills")
    goals_sheet_name: str = Field(default="goals")

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


class StoreSettings(BaseSettings):
    """Synchronized store behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORE_",
        extra="ignore"
    )

    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="Timeout for a single remote call; a timeout counts as a failure"
    )
    temp_id_prefix: str = Field(
        default="tmp-",
        min_length=1,
        description="Prefix of locally generated placeholder ids"
    )

    # Bill payment -> transaction defaults
    bill_payment_category: Category = Field(default=Category.HOME)
    bill_payment_method: PaymentMethod = Field(default=PaymentMethod.BANK_SLIP)
    bill_payment_description: str = Field(
        default="Payment: {name}",
        description="Template for the synthesized transaction; {name} is the bill name"
    )

    @field_validator('bill_payment_description')
    @classmethod
    def validate_description_template(cls, v: str) -> str:
        """The template must reference the bill name and nothing else."""
        if "{name}" not in v:
            raise ValueError("bill_payment_description must contain '{name}'")
        try:
            v.format(name="x")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(
                f"bill_payment_description may only use the {{name}} placeholder: {e!r}"
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
        pattern="^(DEBUG|INFO|WARNING|ERROR)$",
        description="Minimum level for sync logs"
    )
    storage_backend: str = Field(
        default="google_sheets",
        pattern="^(google_sheets|memory)$",
        description="Remote store implementation to use"
    )
    audit_history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many sync events to keep in memory for display"
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

    # Loaded lazily so a missing Google Sheets config doesn't break
    # memory-only setups

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

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

    Returns a dict of {setting_name: is_valid}, with an
    additional "<name>_error" entry for each failure.
    """
    results = {}

    settings = get_settings()

    for name in ("google_sheets", "store", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
