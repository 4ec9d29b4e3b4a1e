"""
Audit Sinks

Where intent-action audit events go after being logged locally.

The external audit endpoint accepts {intentId, chatId, action}. Nothing but
success or failure is read from its response.
"""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from finplan.config import AuditSettings, get_settings
from finplan.models.audit import AuditEvent


class AuditSinkInterface(ABC):
    """
    Abstract interface for audit event persistence.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event.

        Returns:
            True if stored successfully

        Raises:
            Any transport error; the AuditLogger catches and logs it
        """
        pass

    async def aclose(self) -> None:
        pass


class HttpAuditSink(AuditSinkInterface):
    """Posts audit events to the configured endpoint with httpx."""

    def __init__(
        self,
        settings: Optional[AuditSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings().audit
        if not self._settings.endpoint_url:
            raise ValueError("HttpAuditSink requires FINPLAN_AUDIT_ENDPOINT_URL")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout_seconds)

    async def append_event(self, event: AuditEvent) -> bool:
        response = await self._client.post(
            self._settings.endpoint_url,
            json=event.to_sink_payload(),
        )
        response.raise_for_status()
        return True

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps events in a list. Used by tests and local-only mode."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def payloads(self) -> list[dict]:
        return [event.to_sink_payload() for event in self.events]
