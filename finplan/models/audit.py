"""
Audit Models for FinPlan

Every plan mutation and every failure around it is recorded as an audit event.
This provides:
1. Traceability from a chat message to the plan edit it caused
2. Debugging information when a dispatch is rolled back
3. A per-action trail the external audit endpoint can store

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Writing them is best effort: an audit failure never undoes a committed plan.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finplan.models.intent import IntentAction
from finplan.models.plan import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of a dispatch that can succeed or fail has its own event type.
    """
    # Intent dispatch
    INTENT_ACTION_APPLIED = "intent_action_applied"
    DISPATCH_COMPLETED = "dispatch_completed"
    DISPATCH_ROLLED_BACK = "dispatch_rolled_back"

    # Persistence
    REMOTE_SYNC_FAILED = "remote_sync_failed"
    PLAN_REFRESH_FAILED = "plan_refresh_failed"

    # Projection
    PROJECTION_SETTINGS_REJECTED = "projection_settings_rejected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'asset', 'expense', 'plan')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation
    intent_id: Optional[str] = Field(
        default=None,
        description="Audit intent id; '<intentId>:<index>' for per-action events"
    )
    correlation_id: Optional[str] = Field(
        default=None,
        description="Dispatch intent id shared by all events of one batch"
    )
    chat_id: Optional[str] = Field(
        default=None,
        description="Chat the intent came from, if known"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "intent_id": self.intent_id,
            "correlation_id": self.correlation_id,
            "chat_id": self.chat_id,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sink_payload(self) -> dict:
        """
        Body posted to the external audit endpoint.

        Shape: {intentId, chatId, action}
        """
        return {
            "intentId": self.intent_id,
            "chatId": self.chat_id,
            "action": self.details.get("action"),
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.intent_action_applied(intent_id, 0, action)
        event = AuditEventBuilder.dispatch_rolled_back(intent_id, error)
    """

    @staticmethod
    def intent_action_applied(
        intent_id: str,
        index: int,
        action: IntentAction,
        chat_id: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_ACTION_APPLIED,
            entity_type=action.entity.value,
            entity_id=entity_id,
            intent_id=f"{intent_id}:{index}",
            correlation_id=intent_id,
            chat_id=chat_id,
            description=f"Applied {action.verb.value} {action.entity.value}: {action.raw or action.target}"[:500],
            details={
                "action": action.to_wire(),
            },
            is_user_action=True,
        )

    @staticmethod
    def dispatch_completed(
        intent_id: str,
        applied: int,
        net_worth: float,
        chat_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISPATCH_COMPLETED,
            entity_type="plan",
            intent_id=intent_id,
            correlation_id=intent_id,
            chat_id=chat_id,
            description=f"Dispatch committed {applied} action(s)",
            details={
                "applied": applied,
                "net_worth": net_worth,
            },
        )

    @staticmethod
    def dispatch_rolled_back(
        intent_id: str,
        error: Exception,
        failed_index: Optional[int] = None,
        chat_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DISPATCH_ROLLED_BACK,
            severity=AuditSeverity.WARNING,
            entity_type="plan",
            intent_id=intent_id,
            correlation_id=intent_id,
            chat_id=chat_id,
            description="Dispatch rolled back; local plan left unchanged",
            details={
                "failed_index": failed_index,
            },
            error_code=type(error).__name__,
            error_message=str(error),
        )

    @staticmethod
    def remote_sync_failed(
        intent_id: str,
        resource: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=resource,
            correlation_id=intent_id,
            description=f"Remote {operation} on {resource} failed",
            details={
                "resource": resource,
                "operation": operation,
            },
            error_message=error_message,
        )

    @staticmethod
    def plan_refresh_failed(
        error_message: str,
        intent_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_REFRESH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="plan",
            correlation_id=intent_id,
            description="Plan refresh from remote storage failed",
            error_message=error_message,
        )

    @staticmethod
    def projection_settings_rejected(
        issues: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROJECTION_SETTINGS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="projection_settings",
            description=f"Projection settings rejected with {len(issues)} issue(s)",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )
