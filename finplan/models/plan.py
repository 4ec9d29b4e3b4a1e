"""
Core Plan Models for FinPlan

These models define the strict schemas for the financial plan aggregate.
They are designed to:
1. Enforce the value constraints of every record at runtime
2. Round-trip the camelCase wire format of the persistence service
3. Be deep-copyable so mutations can happen on a scratch copy
4. Carry no behaviour beyond lookup helpers

DESIGN DECISION: The Summary and the cash-flow breakdown are stored on the
Plan but are never edited by hand. They are recomputed from the four entity
collections after every mutation (see finplan.projection.summary).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_entity_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Frequency(str, Enum):
    """How often a recurring income or expense occurs."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def monthly_factor(self) -> float:
        """Multiplier that converts one occurrence into a monthly amount."""
        return _MONTHLY_FACTORS[self]


_MONTHLY_FACTORS = {
    Frequency.WEEKLY: 52 / 12,
    Frequency.BIWEEKLY: 26 / 12,
    Frequency.MONTHLY: 1.0,
    Frequency.QUARTERLY: 1 / 3,
    Frequency.YEARLY: 1 / 12,
}


# =============================================================================
# BASE MODELS
# =============================================================================

class WireModel(BaseModel):
    """
    Base for everything that crosses the persistence boundary.

    Python code uses snake_case attributes; the REST service speaks camelCase.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict:
        """Serialize with camelCase keys and JSON-safe values."""
        return self.model_dump(by_alias=True, mode="json")


class PlanEntityModel(WireModel, ABC):
    """Fields shared by assets, liabilities, incomes and expenses."""

    id: str = Field(
        default_factory=new_entity_id,
        min_length=1,
        description="Entity identity; display names are not unique"
    )
    category: str = Field(
        default="other",
        min_length=1,
        max_length=100
    )
    notes: Optional[str] = Field(
        default=None,
        max_length=1000
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        description="Last modification timestamp"
    )

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, v):
        """The service may hand out numeric ids."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    @abstractmethod
    def label(self) -> str:
        """Human-facing lookup key used by the entity resolver."""


# =============================================================================
# PLAN ENTITIES
# =============================================================================

class Asset(PlanEntityModel):
    """Something the user owns that can grow over time."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name (lookup key, not guaranteed unique)"
    )
    current_value: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Current market value"
    )
    annual_growth_rate: Optional[float] = Field(
        default=None,
        allow_inf_nan=False,
        description="Yearly growth; None means use the projection default"
    )

    @property
    def label(self) -> str:
        return self.name


class Liability(PlanEntityModel):
    """A debt that accrues interest and is paid down monthly."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=200
    )
    current_balance: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Outstanding balance"
    )
    interest_rate_apr: Optional[float] = Field(
        default=None,
        description="Annual rate; missing or invalid values use the floor rate"
    )
    minimum_payment: float = Field(
        default=0.0,
        ge=0,
        allow_inf_nan=False,
        description="Minimum monthly payment"
    )

    @property
    def label(self) -> str:
        return self.name


class Income(PlanEntityModel):
    """A recurring inflow."""

    source: str = Field(
        ...,
        min_length=1,
        max_length=200
    )
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Amount per occurrence"
    )
    frequency: Frequency = Field(default=Frequency.MONTHLY)
    start_date: datetime = Field(default_factory=utc_now)

    @property
    def label(self) -> str:
        return self.source


class Expense(PlanEntityModel):
    """A recurring outflow."""

    payee: str = Field(
        ...,
        min_length=1,
        max_length=200
    )
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Amount per occurrence"
    )
    frequency: Frequency = Field(default=Frequency.MONTHLY)

    @property
    def label(self) -> str:
        return self.payee


PlanEntity = Union[Asset, Liability, Income, Expense]


# =============================================================================
# DERIVED AGGREGATES
# =============================================================================

class CashflowSummary(WireModel):
    """Monthly cash-flow breakdown aggregated from incomes and expenses."""

    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    net_monthly: float = 0.0


class Summary(WireModel):
    """
    Derived plan totals.

    INVARIANTS:
    - net_worth == total_assets - total_liabilities
    - savings_rate == monthly_savings / monthly_income, or 0 without income
    """

    total_assets: float = 0.0
    total_liabilities: float = 0.0
    net_worth: float = 0.0
    monthly_income: float = 0.0
    monthly_expenses: float = 0.0
    monthly_savings: float = 0.0
    savings_rate: float = 0.0


class Plan(WireModel):
    """
    The aggregate root.

    Owned by the PlanStore. Everything else works on deep copies.
    """

    assets: list[Asset] = Field(default_factory=list)
    liabilities: list[Liability] = Field(default_factory=list)
    incomes: list[Income] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    cashflow: CashflowSummary = Field(default_factory=CashflowSummary)
    summary: Summary = Field(default_factory=Summary)
    last_updated: datetime = Field(default_factory=utc_now)
