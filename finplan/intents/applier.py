"""
Action Applier

Applies one IntentAction to a Plan in place.

STATE MACHINE (verb x entity found?):
- add-item:    always creates; requires an amount
- update:      sets the primary numeric field to the amount; target must exist
- remove-item: deletes the entity; target must exist; amount not needed

After every action the Summary is recomputed from the four collections.
Income and expense actions also recompute the cash-flow breakdown first.

DESIGN DECISION: update means "set", never "increase by".
An update amount is the final value of the field.
"""

import math
from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, ValidationError

from finplan.config import IntentSettings, get_settings
from finplan.intents.resolver import FALLBACK_NAMES, derive_entity_name, resolve_entity
from finplan.models.intent import IntentAction, IntentEntity, IntentVerb
from finplan.models.plan import (
    Asset,
    Expense,
    Frequency,
    Income,
    Liability,
    Plan,
    PlanEntity,
    utc_now,
)
from finplan.projection.summary import (
    recompute_cashflow,
    recompute_summary,
    round_currency,
)

logger = structlog.get_logger(__name__)

NO_PLAN_MESSAGE = "No financial plan loaded. Try refreshing the dashboard."

# Field that an update action overwrites, per entity
PRIMARY_FIELDS = {
    IntentEntity.ASSET: "current_value",
    IntentEntity.LIABILITY: "current_balance",
    IntentEntity.INCOME: "amount",
    IntentEntity.EXPENSE: "amount",
}

CASHFLOW_ENTITIES = (IntentEntity.INCOME, IntentEntity.EXPENSE)


class IntentDispatchError(Exception):
    """An intent action could not be applied. The whole batch is rejected."""

    def __init__(self, message: str, action: Optional[IntentAction] = None):
        super().__init__(message)
        self.action = action


class ChangeKind(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class PlanChange(BaseModel):
    """What a single apply did, used to drive the matching remote call."""

    kind: ChangeKind
    entity: IntentEntity
    record: PlanEntity


def _describe(action: IntentAction) -> str:
    return action.raw or action.target


def _article(entity: IntentEntity) -> str:
    return "an" if entity.value[0] in "aeiou" else "a"


class ActionApplier:
    """
    Resolves and applies intent actions against a plan.

    Stateless apart from the defaults used for newly created entities.
    """

    def __init__(self, settings: Optional[IntentSettings] = None):
        self._settings = settings or get_settings().intents

    def apply(self, plan: Plan, action: IntentAction) -> PlanChange:
        """
        Mutate the plan according to one action.

        Raises:
            IntentDispatchError: unresolved target, missing or invalid amount,
                unsupported entity or verb
        """
        if action.entity not in PRIMARY_FIELDS:
            raise IntentDispatchError(
                f'Unsupported entity "{action.entity}" in "{_describe(action)}".',
                action,
            )

        if action.verb == IntentVerb.ADD_ITEM:
            change = self._add(plan, action)
        elif action.verb == IntentVerb.UPDATE:
            change = self._update(plan, action)
        elif action.verb == IntentVerb.REMOVE_ITEM:
            change = self._remove(plan, action)
        else:
            raise IntentDispatchError(
                f'Unsupported verb "{action.verb}" in "{_describe(action)}".',
                action,
            )

        if action.entity in CASHFLOW_ENTITIES:
            recompute_cashflow(plan)
        recompute_summary(plan)

        logger.debug(
            "intent_action_applied",
            verb=action.verb.value,
            entity=action.entity.value,
            entity_id=change.record.id,
            kind=change.kind.value,
        )
        return change

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    def _add(self, plan: Plan, action: IntentAction) -> PlanChange:
        amount = self._require_amount(action)
        record = self._create_entity(action, amount)
        getattr(plan, action.entity.collection).append(record)
        return PlanChange(kind=ChangeKind.CREATED, entity=action.entity, record=record)

    def _update(self, plan: Plan, action: IntentAction) -> PlanChange:
        amount = self._require_amount(action)
        record = self._require_target(plan, action)

        if action.entity in CASHFLOW_ENTITIES:
            amount = self._require_positive(amount, action)
        else:
            amount = max(0.0, amount)

        setattr(record, PRIMARY_FIELDS[action.entity], amount)
        record.updated_at = utc_now()
        return PlanChange(kind=ChangeKind.UPDATED, entity=action.entity, record=record)

    def _remove(self, plan: Plan, action: IntentAction) -> PlanChange:
        record = self._require_target(plan, action)
        collection = getattr(plan, action.entity.collection)
        collection[:] = [item for item in collection if item is not record]
        return PlanChange(kind=ChangeKind.DELETED, entity=action.entity, record=record)

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _require_amount(self, action: IntentAction) -> float:
        amount = action.amount
        if (
            amount is None
            or isinstance(amount, bool)
            or not isinstance(amount, (int, float))
            or not math.isfinite(amount)
        ):
            raise IntentDispatchError(
                f'No amount detected for "{_describe(action)}".',
                action,
            )
        return float(amount)

    def _require_positive(self, amount: float, action: IntentAction) -> float:
        if amount <= 0:
            raise IntentDispatchError(
                f'Amount for "{_describe(action)}" must be greater than zero.',
                action,
            )
        return amount

    def _require_target(self, plan: Plan, action: IntentAction) -> PlanEntity:
        record = resolve_entity(getattr(plan, action.entity.collection), action.target)
        if record is None:
            raise IntentDispatchError(
                f'Could not find {_article(action.entity)} {action.entity.value} '
                f'matching "{action.target}".',
                action,
            )
        return record

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def _create_entity(self, action: IntentAction, amount: float) -> PlanEntity:
        settings = self._settings
        name = derive_entity_name(action.target or action.raw, FALLBACK_NAMES[action.entity])
        common = {
            "category": settings.created_category,
            "notes": settings.created_note,
        }

        try:
            if action.entity == IntentEntity.ASSET:
                return Asset(
                    name=name,
                    current_value=max(0.0, amount),
                    annual_growth_rate=settings.asset_growth_rate,
                    **common,
                )
            if action.entity == IntentEntity.LIABILITY:
                balance = max(0.0, amount)
                return Liability(
                    name=name,
                    current_balance=balance,
                    interest_rate_apr=settings.liability_interest_rate,
                    minimum_payment=round_currency(
                        balance * settings.liability_min_payment_factor
                    ),
                    **common,
                )

            amount = self._require_positive(amount, action)
            frequency = Frequency(settings.cashflow_frequency)
            if action.entity == IntentEntity.INCOME:
                return Income(
                    source=name,
                    amount=amount,
                    frequency=frequency,
                    start_date=utc_now(),
                    **common,
                )
            return Expense(
                payee=name,
                amount=amount,
                frequency=frequency,
                **common,
            )
        except ValidationError as e:
            raise IntentDispatchError(
                f'Could not create {_article(action.entity)} {action.entity.value} '
                f'from "{_describe(action)}": {e.errors()[0]["msg"]}',
                action,
            ) from e
