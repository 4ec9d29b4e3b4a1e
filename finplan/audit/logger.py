"""
Audit Logger

DESIGN DECISION: Every plan mutation and every failure around it is logged.
This provides:
1. Complete traceability from an intent to the plan edit it caused
2. Debugging capability when a dispatch is rolled back
3. A per-action trail for the external audit endpoint

The audit logger:
- Is async so sink writes never block the dispatch flow for long
- Gracefully handles failures (a sink error never undoes a committed plan)
- Tags every event of one dispatch with the intent id for correlation
"""

import logging
import sys
from typing import Optional

import structlog

from finplan.audit.sink import AuditSinkInterface
from finplan.config import get_settings
from finplan.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finplan.models.intent import IntentAction


# Configure structlog for local logging. Handlers and levels of the standard
# library root logger belong to the host application.
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Send log output to stdout when running standalone.

    Never called on import. Leaves an already configured root logger alone.
    """
    level = log_level or get_settings().app.log_level
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (every event)
    2. The audit sink (intent-action events only, when a sink is configured)
    """

    SINK_EVENT_TYPES = frozenset({AuditEventType.INTENT_ACTION_APPLIED})

    def __init__(
        self,
        sink: Optional[AuditSinkInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Backend for persisted audit events.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("finplan.audit")

    @property
    def sink(self) -> Optional[AuditSinkInterface]:
        return self._sink

    async def log(self, event: AuditEvent, persist: bool = True) -> bool:
        """
        Log an audit event.

        Always logs locally. Sends intent-action events to the sink when
        one is configured and persist is True.

        Returns True if the sink write succeeded (or nothing was sent).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if persist and self._sink and event.event_type in self.SINK_EVENT_TYPES:
            try:
                return await self._sink.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                    intent_id=event.intent_id,
                )
                return False

        return True

    async def log_action_applied(
        self,
        intent_id: str,
        index: int,
        action: IntentAction,
        chat_id: Optional[str] = None,
        entity_id: Optional[str] = None,
    ) -> bool:
        """Log one applied intent action. This is the event the sink receives."""
        event = AuditEventBuilder.intent_action_applied(
            intent_id=intent_id,
            index=index,
            action=action,
            chat_id=chat_id,
            entity_id=entity_id,
        )
        return await self.log(event)

    async def log_dispatch_completed(
        self,
        intent_id: str,
        applied: int,
        net_worth: float,
        chat_id: Optional[str] = None,
    ) -> None:
        """Log a committed dispatch."""
        event = AuditEventBuilder.dispatch_completed(
            intent_id=intent_id,
            applied=applied,
            net_worth=net_worth,
            chat_id=chat_id,
        )
        await self.log(event)

    async def log_dispatch_rolled_back(
        self,
        intent_id: str,
        error: Exception,
        failed_index: Optional[int] = None,
        chat_id: Optional[str] = None,
    ) -> None:
        """Log a rejected dispatch."""
        event = AuditEventBuilder.dispatch_rolled_back(
            intent_id=intent_id,
            error=error,
            failed_index=failed_index,
            chat_id=chat_id,
        )
        await self.log(event)

    async def log_remote_sync_failed(
        self,
        intent_id: str,
        resource: str,
        operation: str,
        error_message: str,
    ) -> None:
        """Log a failed remote create/update/delete."""
        event = AuditEventBuilder.remote_sync_failed(
            intent_id=intent_id,
            resource=resource,
            operation=operation,
            error_message=error_message,
        )
        await self.log(event)

    async def log_plan_refresh_failed(
        self,
        error_message: str,
        intent_id: Optional[str] = None,
    ) -> None:
        """Log a failed post-dispatch refresh."""
        event = AuditEventBuilder.plan_refresh_failed(
            error_message=error_message,
            intent_id=intent_id,
        )
        await self.log(event)

    async def log_projection_settings_rejected(
        self,
        issues: list[str],
    ) -> None:
        """Log rejected projection settings."""
        event = AuditEventBuilder.projection_settings_rejected(issues=issues)
        await self.log(event)

    async def aclose(self) -> None:
        if self._sink:
            await self._sink.aclose()
