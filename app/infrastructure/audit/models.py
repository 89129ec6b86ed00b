"""Audit event models.

Audit events are:
- Type-safe (Pydantic validation)
- Flat (easy to query once stored or shipped to a log pipeline)
- Tenant-scoped (every event names the tenant it concerns)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditEvent(BaseModel):
    """Structured audit event.

    Attributes:
        correlation_id: Request ID for tracing, when the event came from a request.
        timestamp: ISO 8601 timestamp when the event occurred (UTC).
        action: Operation type (e.g. 'erp_sync', 'payment_reconciled').
        resource_type: Type of resource affected (e.g. 'erp_integration').
        resource_id: Primary resource identifier.
        tenant_id: Tenant the resource belongs to.
        user_id: User who initiated the action; None for system callers.
        result: Overall operation result ('success' or 'failure').
        error_type: Category of error if failed.
        error_message: Error description if failed.
        audit_meta_*: Operation-specific fields flattened with the
            'audit_meta_' prefix.
    """

    correlation_id: Optional[str] = Field(
        default=None, description="Request ID for distributed tracing"
    )
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        description="ISO 8601 timestamp (UTC)",
    )
    action: str = Field(..., description="Operation type (snake_case)")
    resource_type: str = Field(..., description="Type of resource affected")
    resource_id: str = Field(..., description="Primary resource identifier")
    tenant_id: Optional[str] = Field(default=None, description="Owning tenant")
    user_id: Optional[str] = Field(
        default=None, description="Initiating user, None for system callers"
    )
    result: str = Field(
        ...,
        description="Operation result: 'success' or 'failure'",
        pattern="^(success|failure)$",
    )
    error_type: Optional[str] = Field(default=None, description="Error category")
    error_message: Optional[str] = Field(default=None, description="Error description")

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "timestamp": "2025-01-08T12:00:00+00:00",
                "action": "erp_sync",
                "resource_type": "erp_integration",
                "resource_id": "integration-123",
                "tenant_id": "tenant-1",
                "user_id": "user-1",
                "result": "success",
                "audit_meta_sync_log_id": "log-1",
            }
        },
    )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def create_audit_event(
    action: str,
    resource_type: str,
    resource_id: str,
    result: str,
    tenant_id: Optional[str] = None,
    user_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    error_type: Optional[str] = None,
    error_message: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditEvent:
    """Build an AuditEvent, flattening ``metadata`` with the 'audit_meta_' prefix.

    Raises:
        ValueError: If result is not 'success' or 'failure'.
    """
    if result not in ("success", "failure"):
        raise ValueError(f"result must be 'success' or 'failure', got: {result}")

    event_data: Dict[str, Any] = {
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "result": result,
        "tenant_id": tenant_id,
        "user_id": user_id,
        "correlation_id": correlation_id,
        "error_type": error_type,
        "error_message": error_message,
    }

    if metadata:
        for key, value in metadata.items():
            event_data[f"audit_meta_{key}"] = str(value) if value is not None else None

    return AuditEvent(**event_data)
