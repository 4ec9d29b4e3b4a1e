"""
Configuration Management for FinPlan

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PersistenceSettings(BaseSettings):
    """Remote persistence service (REST CRUD) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINPLAN_API_",
        extra="ignore"
    )

    base_url: str = Field(
        default="http://localhost:8080",
        description="Base URL of the financial data service"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Per-request timeout; a timeout counts as a failed call"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for requests that never reached the server"
    )
    retry_wait_min_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Minimum exponential backoff between attempts"
    )
    retry_wait_max_seconds: float = Field(
        default=8.0,
        ge=0,
        description="Maximum exponential backoff between attempts"
    )

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Resource paths are joined with a leading slash."""
        return v.rstrip("/")


class AuditSettings(BaseSettings):
    """Audit sink configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINPLAN_AUDIT_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Post intent action events to the audit endpoint"
    )
    endpoint_url: Optional[str] = Field(
        default=None,
        description="Absolute URL that accepts {intentId, chatId, action} events"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Audit requests are best effort; keep this short"
    )


class ProjectionConfig(BaseSettings):
    """
    Projection defaults.

    The first block seeds the user-tunable projection settings,
    the second holds engine assumptions the user never edits.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINPLAN_PROJECTION_",
        extra="ignore"
    )

    # User-tunable defaults
    current_age: int = Field(default=30, ge=0, le=120)
    retirement_age: int = Field(default=65, ge=0, le=120)
    projection_years: int = Field(default=35, ge=1, le=100)
    inflation_rate: float = Field(default=0.03, ge=-1.0, le=1.0)
    average_return_rate: float = Field(default=0.07, ge=-1.0, le=1.0)

    # Engine assumptions
    max_projection_years: int = Field(
        default=60,
        ge=1,
        le=100,
        description="Hard cap on the projection horizon"
    )
    default_asset_growth_rate: float = Field(
        default=0.05,
        description="Growth rate for assets without an explicit rate"
    )
    liability_interest_floor: float = Field(
        default=0.05,
        ge=0.0,
        description="APR used for liabilities with a missing or invalid rate"
    )


class IntentSettings(BaseSettings):
    """Defaults applied to entities created from intent actions."""

    model_config = SettingsConfigDict(
        env_prefix="FINPLAN_INTENT_",
        extra="ignore"
    )

    created_category: str = Field(default="chat", min_length=1)
    created_note: str = Field(default="Added via chat intent")
    asset_growth_rate: float = Field(default=0.05)
    liability_interest_rate: float = Field(default=0.05, ge=0.0)
    liability_min_payment_factor: float = Field(
        default=0.02,
        ge=0.0,
        le=1.0,
        description="Minimum monthly payment as a share of the opening balance"
    )
    cashflow_frequency: str = Field(
        default="monthly",
        pattern="^(weekly|biweekly|monthly|quarterly|yearly)$"
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
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for the structured log"
    )

    @model_validator(mode='after')
    def debug_lowers_log_level(self) -> 'AppSettings':
        if self.debug_mode:
            self.log_level = "DEBUG"
        return self


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
    def persistence(self) -> PersistenceSettings:
        return PersistenceSettings()

    @property
    def audit(self) -> AuditSettings:
        return AuditSettings()

    @property
    def projection(self) -> ProjectionConfig:
        return ProjectionConfig()

    @property
    def intents(self) -> IntentSettings:
        return IntentSettings()

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


def validate_all_settings() -> dict:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a "<name>_error"
    message for every section that failed. Used by create_app_components.
    """
    results = {}

    settings = get_settings()

    for name in ("persistence", "audit", "projection", "intents", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except ValidationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
