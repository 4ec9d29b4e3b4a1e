"""
Intent Normalization

Turns the candidate list produced by the upstream language model into
IntentAction records. Model output is untrusted: amounts may be strings,
NaN or negative, currencies may be free text, keys may be camelCase or
snake_case.
"""

import math
import re
from typing import Any, Iterable, Union
from uuid import uuid4

from pydantic import ValidationError

from finplan.intents.applier import IntentDispatchError
from finplan.models.intent import IntentAction, IntentEntity, IntentVerb

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def _normalize_amount(value: Any):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return abs(float(value))


def _normalize_currency(value: Any):
    if not isinstance(value, str):
        return None
    code = value.strip().upper()
    return code if _CURRENCY_CODE.match(code) else None


def _normalize_candidate(candidate: dict[str, Any]) -> IntentAction:
    verb = candidate.get("verb")
    entity = candidate.get("entity")
    target = candidate.get("target")
    target = target.strip() if isinstance(target, str) else ""
    raw = candidate.get("raw")
    raw = raw.strip() if isinstance(raw, str) and raw.strip() else target

    if verb not in {v.value for v in IntentVerb}:
        raise IntentDispatchError(f'Unsupported verb "{verb}" in "{raw}".')
    if entity not in {e.value for e in IntentEntity}:
        raise IntentDispatchError(f'Unsupported entity "{entity}" in "{raw}".')

    try:
        return IntentAction(
            id=str(candidate.get("id") or uuid4()),
            verb=verb,
            entity=entity,
            target=target,
            amount=_normalize_amount(candidate.get("amount")),
            currency=_normalize_currency(candidate.get("currency")),
            raw=raw,
        )
    except ValidationError as e:
        raise IntentDispatchError(f'Invalid intent action "{raw}": {e}') from e


def parse_intent_actions(
    candidates: Iterable[Union[IntentAction, dict[str, Any]]],
) -> list[IntentAction]:
    """
    Normalize a batch of candidate actions.

    IntentAction instances pass through unchanged. Raw objects are cleaned:
    target trimmed, amount kept only when finite (absolute value), currency
    kept only as a 3-letter code, raw defaulted to the target.

    Raises:
        IntentDispatchError: unknown verb or entity, or a non-object candidate
    """
    actions = []
    for candidate in candidates:
        if isinstance(candidate, IntentAction):
            actions.append(candidate)
        elif isinstance(candidate, dict):
            actions.append(_normalize_candidate(candidate))
        else:
            raise IntentDispatchError(
                f"Intent actions must be objects, got {type(candidate).__name__}."
            )
    return actions
