"""
Plan Validation

DESIGN DECISION: Validation happens at two points:

PROJECTION SETTINGS:
- Age range checks
- Retirement after the current age
- Inflation and return rates inside sane bounds
Rejected settings never reach the store.

PLAN (before every commit):
- Non-negative money fields, positive recurring amounts
- Unique ids per collection
- Summary consistent with the collections (conservation of totals)
An error here aborts the whole dispatch; warnings are reported only.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the caller to act on.
"""

import math
from collections import Counter

from finplan.models.plan import Plan
from finplan.models.projection import ProjectionSettings
from finplan.models.validation import ValidationIssue, ValidationResult
from finplan.projection.summary import compute_summary

MIN_AGE = 18
MAX_AGE = 100
MAX_INFLATION_RATE = 0.2
MIN_RETURN_RATE = -0.5
MAX_RETURN_RATE = 0.5


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


class PlanValidator:
    """
    Validates projection settings and plans.

    Stateless; safe to share.
    """

    def validate_projection_settings(
        self,
        settings: ProjectionSettings,
    ) -> ValidationResult:
        """Check user-tunable projection settings."""
        issues = []

        if not MIN_AGE <= settings.current_age <= MAX_AGE:
            issues.append(ValidationIssue(
                field="current_age",
                issue_type="out_of_range",
                message=f"Current age must be between {MIN_AGE} and {MAX_AGE}",
                severity="error",
            ))

        if settings.retirement_age <= settings.current_age:
            issues.append(ValidationIssue(
                field="retirement_age",
                issue_type="inconsistent",
                message="Retirement age must be greater than current age",
                severity="error",
            ))
        elif settings.retirement_age > MAX_AGE:
            issues.append(ValidationIssue(
                field="retirement_age",
                issue_type="out_of_range",
                message=f"Retirement age must be {MAX_AGE} or less",
                severity="error",
            ))

        if not 0 <= settings.inflation_rate <= MAX_INFLATION_RATE:
            issues.append(ValidationIssue(
                field="inflation_rate",
                issue_type="out_of_range",
                message=f"Inflation rate must be between 0% and {MAX_INFLATION_RATE:.0%}",
                severity="error",
            ))

        if not MIN_RETURN_RATE <= settings.average_return_rate <= MAX_RETURN_RATE:
            issues.append(ValidationIssue(
                field="average_return_rate",
                issue_type="out_of_range",
                message=(
                    f"Average return rate must be between "
                    f"{MIN_RETURN_RATE:.0%} and {MAX_RETURN_RATE:.0%}"
                ),
                severity="error",
            ))

        years_to_retirement = settings.retirement_age - settings.current_age
        if 0 < settings.projection_years < years_to_retirement:
            issues.append(ValidationIssue(
                field="projection_years",
                issue_type="truncated",
                message=(
                    f"Projection covers {settings.projection_years} years and "
                    f"stops before retirement ({years_to_retirement} years away)"
                ),
                severity="warning",
                suggested_fix="Increase the projection horizon",
            ))

        return ValidationResult(subject="projection_settings", issues=issues)

    def validate_plan(self, plan: Plan) -> ValidationResult:
        """Check a plan before it becomes authoritative."""
        issues = []
        issues.extend(self._check_values(plan))
        issues.extend(self._check_unique_ids(plan))
        issues.extend(self._check_summary(plan))
        issues.extend(self._check_warnings(plan))
        return ValidationResult(subject="plan", issues=issues)

    def _check_values(self, plan: Plan) -> list[ValidationIssue]:
        issues = []

        for asset in plan.assets:
            if not _finite(asset.current_value) or asset.current_value < 0:
                issues.append(ValidationIssue(
                    field=f"assets.{asset.id}.current_value",
                    issue_type="invalid_value",
                    message=f"Asset '{asset.name}' must have a non-negative value",
                    severity="error",
                ))

        for liability in plan.liabilities:
            if not _finite(liability.current_balance) or liability.current_balance < 0:
                issues.append(ValidationIssue(
                    field=f"liabilities.{liability.id}.current_balance",
                    issue_type="invalid_value",
                    message=f"Liability '{liability.name}' must have a non-negative balance",
                    severity="error",
                ))
            if not _finite(liability.minimum_payment) or liability.minimum_payment < 0:
                issues.append(ValidationIssue(
                    field=f"liabilities.{liability.id}.minimum_payment",
                    issue_type="invalid_value",
                    message=f"Liability '{liability.name}' must have a non-negative minimum payment",
                    severity="error",
                ))

        for collection, items in (("incomes", plan.incomes), ("expenses", plan.expenses)):
            for item in items:
                if not _finite(item.amount) or item.amount <= 0:
                    issues.append(ValidationIssue(
                        field=f"{collection}.{item.id}.amount",
                        issue_type="invalid_value",
                        message=f"'{item.label}' must have an amount greater than zero",
                        severity="error",
                    ))

        return issues

    def _check_unique_ids(self, plan: Plan) -> list[ValidationIssue]:
        issues = []
        for collection in ("assets", "liabilities", "incomes", "expenses"):
            counts = Counter(item.id for item in getattr(plan, collection))
            for entity_id, count in counts.items():
                if count > 1:
                    issues.append(ValidationIssue(
                        field=f"{collection}.{entity_id}",
                        issue_type="duplicate_id",
                        message=f"Id '{entity_id}' appears {count} times in {collection}",
                        severity="error",
                    ))
        return issues

    def _check_summary(self, plan: Plan) -> list[ValidationIssue]:
        issues = []
        summary = plan.summary

        if summary.net_worth != summary.total_assets - summary.total_liabilities:
            issues.append(ValidationIssue(
                field="summary.net_worth",
                issue_type="inconsistent",
                message="Net worth does not equal total assets minus total liabilities",
                severity="error",
            ))

        if not _finite(summary.savings_rate) or (
            summary.monthly_income <= 0 and summary.savings_rate != 0
        ):
            issues.append(ValidationIssue(
                field="summary.savings_rate",
                issue_type="inconsistent",
                message="Savings rate must be 0 when there is no monthly income",
                severity="error",
            ))

        if summary != compute_summary(plan):
            issues.append(ValidationIssue(
                field="summary",
                issue_type="stale",
                message="Summary is out of date with the plan's entities",
                severity="error",
                suggested_fix="Recompute the summary before committing",
            ))

        return issues

    def _check_warnings(self, plan: Plan) -> list[ValidationIssue]:
        issues = []

        if plan.summary.monthly_expenses > plan.summary.monthly_income > 0:
            issues.append(ValidationIssue(
                field="summary.monthly_savings",
                issue_type="shortfall",
                message="Monthly expenses exceed monthly income",
                severity="warning",
            ))

        for liability in plan.liabilities:
            rate = liability.interest_rate_apr
            if not _finite(rate) or liability.current_balance <= 0:
                continue
            if liability.minimum_payment * 12 <= liability.current_balance * rate:
                issues.append(ValidationIssue(
                    field=f"liabilities.{liability.id}.minimum_payment",
                    issue_type="never_repaid",
                    message=f"Payments on '{liability.name}' do not cover its interest",
                    severity="warning",
                    suggested_fix="Raise the minimum payment",
                ))

        return issues
