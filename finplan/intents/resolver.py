"""
Entity Resolver

Matches a free-text target against the display labels of plan entities
(asset and liability names, income sources, expense payees).

Two deterministic passes over the list, in list order:
1. exact match of the normalized label
2. first label that contains the normalized target

Normalization is strip + lower() only. It is neither case-folding nor
Unicode-normalization aware: "STRASSE" does not match "Straße", and a
"café" written with a combining accent will not match a
precomposed "café".
"""

import re
from typing import Optional, Sequence, TypeVar

from finplan.models.intent import IntentEntity
from finplan.models.plan import PlanEntity

EntityT = TypeVar("EntityT", bound=PlanEntity)

_CALLED_OR_NAMED = re.compile(r"(?:called|named)\s+(.+)", re.IGNORECASE)
_A_NEW_PREFIX = re.compile(r"^(?:a|an)\s+new\s+", re.IGNORECASE)
_ENTITY_WORD = re.compile(r"\b(?:asset|liability|income|expense)\b", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")

FALLBACK_NAMES = {
    IntentEntity.ASSET: "New Asset",
    IntentEntity.LIABILITY: "New Liability",
    IntentEntity.INCOME: "New Income",
    IntentEntity.EXPENSE: "New Expense",
}


def normalize_label(value: str) -> str:
    return value.strip().lower()


def resolve_entity(
    items: Sequence[EntityT],
    target: Optional[str],
) -> Optional[EntityT]:
    """
    Find the entity a target phrase refers to.

    Returns None when the list is empty, the target is blank,
    or nothing matches. Callers decide whether that is an error.
    """
    if not items or not target:
        return None

    needle = normalize_label(target)
    if not needle:
        return None

    for item in items:
        if normalize_label(item.label) == needle:
            return item

    for item in items:
        if needle in normalize_label(item.label):
            return item

    return None


def derive_entity_name(target: Optional[str], fallback: str) -> str:
    """
    Turn a target phrase into a clean display name for a new entity.

    "a new asset called savings account" -> "savings account"
    "a new liability"                    -> fallback
    """
    if not target:
        return fallback

    name = target.strip()
    called = _CALLED_OR_NAMED.search(name)
    if called:
        name = called.group(1)

    name = _A_NEW_PREFIX.sub("", name)
    name = _ENTITY_WORD.sub("", name)
    name = _WHITESPACE.sub(" ", name).strip()

    return name or fallback
