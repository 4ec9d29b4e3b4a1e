"""
Data Models Package

This package contains all Pydantic models used in FinPlan.
All data flowing through the system must conform to these schemas.
"""

from finplan.models.plan import (
    Asset,
    CashflowSummary,
    Expense,
    Frequency,
    Income,
    Liability,
    Plan,
    PlanEntity,
    Summary,
    utc_now,
)
from finplan.models.projection import (
    ProjectionAssumptions,
    ProjectionSettings,
    TimelinePoint,
)
from finplan.models.intent import (
    DispatchResult,
    IntentAction,
    IntentEntity,
    IntentVerb,
)
from finplan.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from finplan.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Plan models
    "Asset",
    "CashflowSummary",
    "Expense",
    "Frequency",
    "Income",
    "Liability",
    "Plan",
    "PlanEntity",
    "Summary",
    "utc_now",
    # Projection models
    "ProjectionAssumptions",
    "ProjectionSettings",
    "TimelinePoint",
    # Intent models
    "DispatchResult",
    "IntentAction",
    "IntentEntity",
    "IntentVerb",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
