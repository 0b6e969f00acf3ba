"""
Configuration Management for the Building Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FinanceServiceSettings(BaseSettings):
    """Remote finance service connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the finance service"
    )
    auth_token: Optional[str] = Field(
        default=None,
        description="Bearer token sent with every request"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout"
    )

    # Retry policy for transient failures
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per request, including the first"
    )
    retry_wait_min: float = Field(
        default=1.0,
        ge=0,
        description="Minimum backoff between attempts (seconds)"
    )
    retry_wait_max: float = Field(
        default=8.0,
        ge=0,
        description="Maximum backoff between attempts (seconds)"
    )


class LedgerSettings(BaseSettings):
    """Budget ledger behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    min_year: int = Field(
        default=2020,
        ge=1900,
        description="Earliest selectable fiscal year"
    )
    max_year: int = Field(
        default=2030,
        le=2999,
        description="Latest selectable fiscal year"
    )
    default_annual_budget: Decimal = Field(
        default=Decimal("120000"),
        ge=0,
        description="Budget used when a year is created without one"
    )
    max_line_item_amount: Decimal = Field(
        default=Decimal("250000"),
        gt=0,
        description="Line items above this amount are flagged for review"
    )
    session_cache_path: Optional[str] = Field(
        default=None,
        description="JSON file backing the session cache (memory only if unset)"
    )
    currency_symbol: str = Field(
        default="£",
        max_length=3,
    )

    @model_validator(mode='after')
    def validate_year_bounds(self) -> 'LedgerSettings':
        """The year range must not be empty."""
        if self.min_year > self.max_year:
            raise ValueError(
                f"min_year ({self.min_year}) cannot be after max_year ({self.max_year})"
            )
        return self

    def year_in_bounds(self, year: int) -> bool:
        return self.min_year <= year <= self.max_year


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
        pattern="^(DEBUG|INFO|WARNING|ERROR)$",
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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def finance_service(self) -> FinanceServiceSettings:
        return FinanceServiceSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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

    for name in ("finance_service", "ledger", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
