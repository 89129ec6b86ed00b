"""Audit infrastructure.

This package provides:
- AuditEvent: Pydantic model for structured audit events
- create_audit_event: Factory flattening operation metadata
- AuditRecorder: Persists events to the audit_logs table
"""

from infrastructure.audit.models import AuditEvent, create_audit_event
from infrastructure.audit.recorder import AUDIT_LOGS_TABLE, AuditRecorder

__all__ = ["AUDIT_LOGS_TABLE", "AuditEvent", "AuditRecorder", "create_audit_event"]
