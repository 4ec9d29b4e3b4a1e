"""Projection engine and plan aggregation."""

from finplan.projection.engine import (
    assumptions_from_settings,
    project,
    project_plan,
    projection_length,
)
from finplan.projection.summary import (
    compute_monthly_cashflow,
    compute_summary,
    recompute_cashflow,
    recompute_summary,
    round_currency,
    round_whole,
    to_monthly_amount,
)

__all__ = [
    "assumptions_from_settings",
    "compute_monthly_cashflow",
    "compute_summary",
    "project",
    "project_plan",
    "projection_length",
    "recompute_cashflow",
    "recompute_summary",
    "round_currency",
    "round_whole",
    "to_monthly_amount",
]
