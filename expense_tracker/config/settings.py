"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see where data lives and what thresholds apply,
and ensures configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Where and how the expense collection is persisted."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["json", "memory"] = Field(
        default="json",
        description="Storage backend: a local JSON file, or in-memory only"
    )
    data_path: Path = Field(
        default=Path("data/expenses.json"),
        description="JSON file holding the serialized expense collection"
    )
    storage_key: str = Field(
        default="expense-tracker-expenses",
        min_length=1,
        description="Key the collection is stored under inside the data file"
    )
    audit_log_path: Path = Field(
        default=Path("data/audit.jsonl"),
        description="Append-only JSON-lines audit log"
    )

    @field_validator("data_path", "audit_log_path")
    @classmethod
    def validate_parent_is_not_file(cls, v: Path) -> Path:
        """The parent must be a directory (or not exist yet)."""
        if v.parent.exists() and not v.parent.is_dir():
            raise ValueError(f"{v.parent} exists and is not a directory")
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

    # Dashboard views
    recent_expenses_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many recently added expenses the dashboard shows"
    )
    top_categories_limit: int = Field(
        default=3,
        ge=1,
        le=6,
        description="How many categories the insights page highlights"
    )

    # Validation thresholds
    max_expense_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Amounts above this are flagged for review (not rejected)"
    )
    future_date_tolerance_days: int = Field(
        default=0,
        ge=0,
        description="How many days in the future an expense date can be without a warning"
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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
