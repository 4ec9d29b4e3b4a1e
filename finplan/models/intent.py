"""
Intent Models

An intent action is a structured edit request produced upstream by a
language model. The engine never sees free text, only these records.

DESIGN DECISION: The model translates, the engine decides.
An IntentAction is only a request. Whether it resolves to an entity,
carries a usable amount, or is applied at all is decided by the
ActionApplier, never by the upstream model.
"""

from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import Field

from finplan.models.plan import Summary, WireModel


class IntentVerb(str, Enum):
    """What the action wants to do."""
    ADD_ITEM = "add-item"
    UPDATE = "update"
    REMOVE_ITEM = "remove-item"


class IntentEntity(str, Enum):
    """Which plan collection the action targets."""
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def collection(self) -> str:
        """Attribute name of the matching collection on a Plan."""
        return _COLLECTIONS[self]


_COLLECTIONS = {
    IntentEntity.ASSET: "assets",
    IntentEntity.LIABILITY: "liabilities",
    IntentEntity.INCOME: "incomes",
    IntentEntity.EXPENSE: "expenses",
}


class IntentAction(WireModel):
    """
    A single structured edit request.

    Consumed once per dispatch call and never persisted.
    """

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Action identifier assigned upstream"
    )
    verb: IntentVerb
    entity: IntentEntity
    target: str = Field(
        default="",
        description="Free-text phrase naming the entity"
    )
    amount: Optional[float] = Field(
        default=None,
        description="Magnitude for add-item and update"
    )
    currency: Optional[str] = Field(
        default=None,
        description="ISO 4217 code if the user mentioned one"
    )
    raw: str = Field(
        default="",
        description="Original user phrase, used in error messages"
    )


class DispatchResult(WireModel):
    """Outcome of a successful dispatch."""

    intent_id: str
    applied: int = Field(
        default=0,
        ge=0,
        description="Number of actions committed"
    )
    summary: Summary
    message: str = ""
