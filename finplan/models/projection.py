"""
Projection Models

Inputs and outputs of the projection engine. Settings are user-tunable;
assumptions are engine constants that callers may override per call.
"""

from typing import Any, Optional, Union

from pydantic import Field

from finplan.models.plan import WireModel


class ProjectionSettings(WireModel):
    """
    User-tunable projection settings.

    Range rules (age limits, rate bounds) are enforced by the
    PlanValidator so that rejected edits come back as readable issues.
    """

    current_age: int = Field(default=30, ge=0)
    retirement_age: int = Field(default=65, ge=0)
    projection_years: int = Field(default=35, ge=1)
    inflation_rate: float = Field(default=0.03, allow_inf_nan=False)
    average_return_rate: float = Field(default=0.07, allow_inf_nan=False)


class ProjectionAssumptions(WireModel):
    """Engine assumptions used when projecting a plan."""

    default_retirement_age: int = Field(default=65, ge=0)
    max_projection_years: int = Field(default=60, ge=1)
    inflation_rate: float = Field(default=0.03, allow_inf_nan=False)
    default_asset_growth_rate: float = Field(default=0.05, allow_inf_nan=False)
    liability_interest_floor: float = Field(default=0.05, ge=0, allow_inf_nan=False)

    def merged(
        self,
        overrides: Optional[Union["ProjectionAssumptions", dict[str, Any]]] = None,
    ) -> "ProjectionAssumptions":
        """Return a copy with the given fields replaced."""
        if overrides is None:
            return self
        if not isinstance(overrides, ProjectionAssumptions):
            overrides = ProjectionAssumptions.model_validate(overrides)
        return self.model_copy(update=overrides.model_dump(exclude_unset=True))


class TimelinePoint(WireModel):
    """One projected year. Currency values are whole units."""

    age: int
    year: int
    total_assets: float
    total_liabilities: float
    net_worth: float
    monthly_income: float
    monthly_expenses: float
    monthly_savings: float
