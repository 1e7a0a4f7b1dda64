"""
Configuration Management for FinanceFlow

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The engine itself has very few knobs; the ones it has (lookahead window,
unknown-frequency policy, sanity thresholds) live here so that the
coordinator and validator never read the environment directly.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """SQLite storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCEFLOW_DB_",
        extra="ignore"
    )

    path: str = Field(
        default="financeflow.db",
        description="Path to the SQLite database file (':memory:' for a throwaway database)"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="How long a connection waits on a locked database"
    )

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (sqlite won't create it)."""
        if v != ":memory:" and not Path(v).expanduser().parent.exists():
            import warnings
            warnings.warn(
                f"Database directory for {v} does not exist. "
                "Create it before opening the store."
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

    # Scheduling
    upcoming_horizon_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Default lookahead window for upcoming planned transactions"
    )
    reject_unknown_frequency: bool = Field(
        default=False,
        description=(
            "Raise on frequency values outside daily/weekly/monthly/yearly "
            "instead of falling back to monthly"
        )
    )

    # Validation thresholds
    max_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Amount above which a planned transaction gets a warning"
    )
    max_future_years: int = Field(
        default=5,
        ge=1,
        description="How many years ahead a next date can be before it is flagged"
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
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.database
        results["database"] = True
    except Exception as e:
        results["database"] = False
        results["database_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
