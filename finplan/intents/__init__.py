"""Intent resolution and plan mutation."""

from finplan.intents.applier import (
    ActionApplier,
    ChangeKind,
    IntentDispatchError,
    NO_PLAN_MESSAGE,
    PlanChange,
)
from finplan.intents.parser import parse_intent_actions
from finplan.intents.resolver import (
    FALLBACK_NAMES,
    derive_entity_name,
    normalize_label,
    resolve_entity,
)

__all__ = [
    "ActionApplier",
    "ChangeKind",
    "FALLBACK_NAMES",
    "IntentDispatchError",
    "NO_PLAN_MESSAGE",
    "PlanChange",
    "derive_entity_name",
    "normalize_label",
    "parse_intent_actions",
    "resolve_entity",
]
