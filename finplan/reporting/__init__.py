"""Text reporting helpers."""

from finplan.reporting.formatting import (
    confirmation_summary,
    format_currency,
    format_percentage,
    net_worth_status,
    projection_summary,
    summary_text,
    timeline_tooltip,
)

__all__ = [
    "confirmation_summary",
    "format_currency",
    "format_percentage",
    "net_worth_status",
    "projection_summary",
    "summary_text",
    "timeline_tooltip",
]
