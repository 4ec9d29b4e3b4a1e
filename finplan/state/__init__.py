"""Authoritative plan state."""

from finplan.state.store import (
    PlanSnapshot,
    PlanStore,
    ProjectionSettingsError,
    default_assumptions,
    default_projection_settings,
)

__all__ = [
    "PlanSnapshot",
    "PlanStore",
    "ProjectionSettingsError",
    "default_assumptions",
    "default_projection_settings",
]
