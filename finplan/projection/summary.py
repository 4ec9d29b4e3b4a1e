"""
Plan Aggregation

Pure functions that derive the Summary and the cash-flow breakdown from the
four entity collections of a Plan.

DESIGN DECISION: Aggregates are recomputed wholesale, never patched.
Every mutation calls recompute_summary (and recompute_cashflow for income and
expense edits) so the derived numbers can never drift from the collections.

Rounding rules:
- Money is rounded to cents whenever a sub-calculation boundary is crossed
  (per-item monthly conversion, totals).
- net_worth is total_assets - total_liabilities with no further rounding,
  which keeps the conservation identity exact.
"""

import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from finplan.models.plan import (
    CashflowSummary,
    Expense,
    Frequency,
    Income,
    Plan,
    Summary,
)

CENTS = Decimal("0.01")
WHOLE = Decimal("1")


def round_currency(value: float, unit: Decimal = CENTS) -> float:
    """
    Round half away from zero to the given unit.

    Goes through Decimal(str(value)) so 2.675 rounds to 2.68, not 2.67.
    Non-finite values are returned unchanged.
    """
    if not math.isfinite(value):
        return value
    try:
        return float(Decimal(str(value)).quantize(unit, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return value


def round_whole(value: float) -> float:
    return round_currency(value, WHOLE)


def to_monthly_amount(amount: float, frequency: Frequency) -> float:
    """Convert one occurrence of a recurring amount into its monthly equivalent."""
    return round_currency(amount * Frequency(frequency).monthly_factor)


def compute_monthly_cashflow(
    incomes: Iterable[Income],
    expenses: Iterable[Expense],
) -> CashflowSummary:
    """Aggregate incomes and expenses into monthly totals."""
    monthly_income = round_currency(
        sum(to_monthly_amount(item.amount, item.frequency) for item in incomes)
    )
    monthly_expenses = round_currency(
        sum(to_monthly_amount(item.amount, item.frequency) for item in expenses)
    )
    return CashflowSummary(
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        net_monthly=round_currency(monthly_income - monthly_expenses),
    )


def compute_summary(plan: Plan) -> Summary:
    """Derive the Summary from the plan's collections alone."""
    total_assets = round_currency(sum(asset.current_value for asset in plan.assets))
    total_liabilities = round_currency(
        sum(liability.current_balance for liability in plan.liabilities)
    )
    cashflow = compute_monthly_cashflow(plan.incomes, plan.expenses)

    monthly_savings = cashflow.net_monthly
    savings_rate = (
        monthly_savings / cashflow.monthly_income
        if cashflow.monthly_income > 0
        else 0.0
    )

    return Summary(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        monthly_income=cashflow.monthly_income,
        monthly_expenses=cashflow.monthly_expenses,
        monthly_savings=monthly_savings,
        savings_rate=savings_rate,
    )


def recompute_cashflow(plan: Plan) -> Plan:
    """Replace the plan's cash-flow breakdown. Mutates and returns the plan."""
    plan.cashflow = compute_monthly_cashflow(plan.incomes, plan.expenses)
    return plan


def recompute_summary(plan: Plan) -> Plan:
    """Replace the plan's Summary. Mutates and returns the plan."""
    plan.summary = compute_summary(plan)
    return plan
