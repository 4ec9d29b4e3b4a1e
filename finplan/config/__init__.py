"""Configuration package."""

from finplan.config.settings import (
    AppSettings,
    AuditSettings,
    IntentSettings,
    PersistenceSettings,
    ProjectionConfig,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuditSettings",
    "IntentSettings",
    "PersistenceSettings",
    "ProjectionConfig",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
