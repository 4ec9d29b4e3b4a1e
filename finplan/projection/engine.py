"""
Projection Engine

Deterministic year-by-year net-worth simulation.

ALGORITHM (one iteration per projected year):
1. yearly savings = (income - expenses) * 12, from the current inflated figures
2. Reallocate the savings across asset buckets:
   - a surplus is split in proportion to each positive bucket's value
   - a shortfall is withdrawn from the largest bucket down; whatever is left
     is taken from the first bucket, which may go negative
3. Grow every asset bucket by its own rate
4. Amortize every liability: balance + interest - 12 * minimum payment,
   never below zero
5. Inflate income and expenses
6. Emit a timeline point rounded to whole currency units

Year 0 is emitted from the opening figures before any step runs.

DESIGN DECISION: The engine is a pure function over plain inputs.
It never touches the PlanStore and always returns a fresh list, so callers
can discard the previous timeline without coordination.
"""

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

import structlog

from finplan.models.plan import Asset, Liability, Plan
from finplan.models.projection import (
    ProjectionAssumptions,
    ProjectionSettings,
    TimelinePoint,
)
from finplan.projection.summary import (
    compute_monthly_cashflow,
    round_currency,
    round_whole,
)

logger = structlog.get_logger(__name__)

SYNTHETIC_BUCKET_ID = "synthetic-asset"


def projection_length(
    current_age: int,
    retirement_age: int,
    max_projection_years: int,
) -> int:
    """Number of simulated years; the timeline has one more point than this."""
    return min(max_projection_years, max(1, retirement_age - current_age))


def _asset_rate(asset: Asset, default_rate: float) -> float:
    rate = asset.annual_growth_rate
    if rate is None or not math.isfinite(rate):
        return default_rate
    return rate


def _liability_rate(liability: Liability, floor: float) -> float:
    rate = liability.interest_rate_apr
    if rate is None or not isinstance(rate, (int, float)) or not math.isfinite(rate) or rate < 0:
        return floor
    return float(rate)


def _build_asset_buckets(
    assets: Iterable[Asset],
    default_rate: float,
) -> list[dict]:
    buckets = [
        {
            "id": asset.id,
            "value": asset.current_value,
            "rate": _asset_rate(asset, default_rate),
        }
        for asset in assets
    ]
    if not buckets:
        buckets.append({"id": SYNTHETIC_BUCKET_ID, "value": 0.0, "rate": default_rate})
    return buckets


def _build_liability_buckets(
    liabilities: Iterable[Liability],
    floor: float,
) -> list[dict]:
    return [
        {
            "id": liability.id,
            "balance": liability.current_balance,
            "rate": _liability_rate(liability, floor),
            "minimum_payment": liability.minimum_payment,
        }
        for liability in liabilities
    ]


def _reallocate(buckets: list[dict], yearly_savings: float) -> None:
    """Spread a surplus or withdraw a shortfall across the asset buckets."""
    if yearly_savings > 0:
        funded = [bucket for bucket in buckets if bucket["value"] > 0]
        if not funded:
            buckets[0]["value"] = round_currency(buckets[0]["value"] + yearly_savings)
            return
        total = sum(bucket["value"] for bucket in funded)
        for bucket in funded:
            share = yearly_savings * (bucket["value"] / total)
            bucket["value"] = round_currency(bucket["value"] + share)
        return

    if yearly_savings < 0:
        remaining = -yearly_savings
        # sorted() is stable, so equal balances keep list order
        for bucket in sorted(buckets, key=lambda b: b["value"], reverse=True):
            if remaining <= 0:
                break
            withdrawal = min(max(bucket["value"], 0.0), remaining)
            bucket["value"] = round_currency(bucket["value"] - withdrawal)
            remaining = round_currency(remaining - withdrawal)
        if remaining > 0:
            buckets[0]["value"] = round_currency(buckets[0]["value"] - remaining)


def _grow(buckets: list[dict]) -> None:
    for bucket in buckets:
        bucket["value"] = round_currency(bucket["value"] * (1 + bucket["rate"]))


def _amortize(buckets: list[dict]) -> None:
    for bucket in buckets:
        balance = bucket["balance"]
        if balance <= 0:
            bucket["balance"] = 0.0
            continue
        interest = balance * bucket["rate"]
        next_balance = balance + interest - bucket["minimum_payment"] * 12
        bucket["balance"] = max(0.0, round_currency(next_balance))


def _emit(
    age: int,
    year: int,
    asset_buckets: list[dict],
    liability_buckets: list[dict],
    monthly_income: float,
    monthly_expenses: float,
) -> TimelinePoint:
    total_assets = round_whole(sum(bucket["value"] for bucket in asset_buckets))
    total_liabilities = round_whole(sum(bucket["balance"] for bucket in liability_buckets))
    return TimelinePoint(
        age=age,
        year=year,
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        monthly_income=round_whole(monthly_income),
        monthly_expenses=round_whole(monthly_expenses),
        monthly_savings=round_whole(monthly_income - monthly_expenses),
    )


def project(
    assets: Iterable[Asset],
    liabilities: Iterable[Liability],
    monthly_income: float,
    monthly_expenses: float,
    current_age: int,
    retirement_age: Optional[int] = None,
    start_year: Optional[int] = None,
    assumptions: Optional[Union[ProjectionAssumptions, dict[str, Any]]] = None,
) -> list[TimelinePoint]:
    """
    Project net worth forward one point per year.

    Args:
        assets: Assets to grow; an empty list gets one synthetic zero bucket
        liabilities: Liabilities to amortize
        monthly_income: Opening monthly income
        monthly_expenses: Opening monthly expenses
        current_age: Age at year 0
        retirement_age: Defaults to the assumptions' default retirement age
        start_year: Calendar year of year 0, defaults to the current year
        assumptions: Overrides for the default ProjectionAssumptions

    Returns:
        min(max_projection_years, max(1, retirement_age - current_age)) + 1
        points in ascending age and year order
    """
    resolved = ProjectionAssumptions().merged(assumptions)
    if retirement_age is None:
        retirement_age = resolved.default_retirement_age
    if start_year is None:
        start_year = datetime.now(timezone.utc).year

    years = projection_length(current_age, retirement_age, resolved.max_projection_years)

    asset_buckets = _build_asset_buckets(assets, resolved.default_asset_growth_rate)
    liability_buckets = _build_liability_buckets(
        liabilities, resolved.liability_interest_floor
    )

    income = round_currency(monthly_income)
    expenses = round_currency(monthly_expenses)

    timeline = [
        _emit(current_age, start_year, asset_buckets, liability_buckets, income, expenses)
    ]

    for offset in range(1, years + 1):
        monthly_savings = round_currency(income - expenses)
        yearly_savings = round_currency(monthly_savings * 12)

        _reallocate(asset_buckets, yearly_savings)
        _grow(asset_buckets)
        _amortize(liability_buckets)

        income = round_currency(income * (1 + resolved.inflation_rate))
        expenses = round_currency(expenses * (1 + resolved.inflation_rate))

        timeline.append(
            _emit(
                current_age + offset,
                start_year + offset,
                asset_buckets,
                liability_buckets,
                income,
                expenses,
            )
        )

    logger.debug(
        "projection_generated",
        points=len(timeline),
        start_year=start_year,
        current_age=current_age,
    )
    return timeline


def assumptions_from_settings(
    settings: ProjectionSettings,
    base: Optional[ProjectionAssumptions] = None,
) -> ProjectionAssumptions:
    """
    Map user settings onto engine assumptions.

    projection_years caps the horizon, average_return_rate becomes the growth
    rate of assets that carry none, and retirement_age the default retirement.
    """
    base = base or ProjectionAssumptions()
    return base.model_copy(update={
        "default_retirement_age": settings.retirement_age,
        "max_projection_years": settings.projection_years,
        "inflation_rate": settings.inflation_rate,
        "default_asset_growth_rate": settings.average_return_rate,
    })


def project_plan(
    plan: Plan,
    settings: ProjectionSettings,
    assumptions: Optional[ProjectionAssumptions] = None,
    start_year: Optional[int] = None,
) -> list[TimelinePoint]:
    """Project a whole plan under the given user settings."""
    cashflow = compute_monthly_cashflow(plan.incomes, plan.expenses)
    return project(
        assets=plan.assets,
        liabilities=plan.liabilities,
        monthly_income=cashflow.monthly_income,
        monthly_expenses=cashflow.monthly_expenses,
        current_age=settings.current_age,
        retirement_age=settings.retirement_age,
        start_year=start_year,
        assumptions=assumptions_from_settings(settings, assumptions),
    )
