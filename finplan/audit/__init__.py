"""Audit logging package."""

from finplan.audit.logger import AuditLogger, configure_logging
from finplan.audit.sink import AuditSinkInterface, HttpAuditSink, InMemoryAuditSink

__all__ = [
    "AuditLogger",
    "AuditSinkInterface",
    "HttpAuditSink",
    "InMemoryAuditSink",
    "configure_logging",
]
