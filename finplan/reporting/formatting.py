"""
Reporting Helpers

Plain-text renderings of plans, timelines and dispatch outcomes for chat
replies and logs. Amounts are US-style: "$1,234", "-$1,234.50", "$1.2M".
"""

from decimal import Decimal
from typing import Optional, Sequence

from finplan.models.plan import Plan, Summary
from finplan.models.projection import ProjectionSettings, TimelinePoint
from finplan.projection.summary import CENTS, WHOLE, round_currency

# Fields a confirmation message reports, in display order
CONFIRMATION_FIELDS = (
    ("total_assets", "Assets"),
    ("total_liabilities", "Liabilities"),
    ("monthly_income", "Monthly Income"),
    ("monthly_expenses", "Monthly Expenses"),
)

NET_WORTH_TIERS = (
    (1_000_000, "Millionaire!"),
    (500_000, "Half Millionaire"),
    (100_000, "Six Figures"),
    (0, "Positive Net Worth"),
    (-50_000, "Building Wealth"),
)


def format_currency(
    amount: float,
    compact: bool = False,
    show_cents: bool = False,
    prefix: str = "$",
) -> str:
    """
    Format an amount of money.

    compact renders thousands as "K" and millions as "M" with one decimal.
    """
    if compact:
        if abs(amount) >= 1_000_000:
            return f"{prefix}{amount / 1_000_000:.1f}M"
        if abs(amount) >= 1_000:
            return f"{prefix}{amount / 1_000:.1f}K"

    rounded = round_currency(amount, CENTS if show_cents else WHOLE)
    sign = "-" if rounded < 0 else ""
    digits = f"{abs(rounded):,.2f}" if show_cents else f"{abs(rounded):,.0f}"
    return f"{sign}{prefix}{digits}"


def format_percentage(value: float, decimals: int = 1) -> str:
    """0.25 -> '25.0%'."""
    scaled = round_currency(value * 100, Decimal(1).scaleb(-decimals))
    return f"{scaled:.{decimals}f}%"


def summary_text(plan: Plan) -> str:
    summary = plan.summary
    return (
        f"Current net worth: {format_currency(summary.net_worth)}. "
        f"Saving {format_currency(summary.monthly_savings)}/month "
        f"({format_percentage(summary.savings_rate)} savings rate)."
    )


def projection_summary(
    timeline: Sequence[TimelinePoint],
    settings: ProjectionSettings,
) -> str:
    """Describe the path from today to retirement (or the last projected year)."""
    if not timeline:
        return "No projection data available."

    current = timeline[0]
    retirement = next(
        (point for point in timeline if point.age >= settings.retirement_age),
        timeline[-1],
    )
    years = retirement.age - current.age
    return (
        f"Projecting {years} years: from {format_currency(current.net_worth)} now "
        f"to {format_currency(retirement.net_worth)} at age {retirement.age}."
    )


def timeline_tooltip(point: TimelinePoint) -> str:
    return "\n".join([
        f"Age {point.age} ({point.year})",
        f"Net Worth: {format_currency(point.net_worth)}",
        f"Assets: {format_currency(point.total_assets)}",
        f"Liabilities: {format_currency(point.total_liabilities)}",
        f"Monthly Income: {format_currency(point.monthly_income)}",
        f"Monthly Expenses: {format_currency(point.monthly_expenses)}",
        f"Monthly Savings: {format_currency(point.monthly_savings)}",
    ])


def net_worth_status(net_worth: float) -> str:
    for threshold, label in NET_WORTH_TIERS:
        if net_worth >= threshold:
            return label
    return "High Debt"


def confirmation_summary(
    before: Optional[Summary],
    after: Summary,
) -> str:
    """
    Describe which headline totals a dispatch changed.

    With no "before" summary every headline total is reported.
    """
    parts = []
    for field, label in CONFIRMATION_FIELDS:
        new_value = getattr(after, field)
        if before is None or getattr(before, field) != new_value:
            parts.append(f"{label}: {format_currency(new_value)}")

    if not parts:
        return "No changes to apply."
    return f"Updating: {', '.join(parts)}"
