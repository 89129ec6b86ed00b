"""Audit event persistence.

Audit writes never fail the operation being audited: a storage error is
logged and the event is still emitted to the structured log.
"""

from infrastructure.audit.models import AuditEvent
from infrastructure.logging import get_correlation_id, get_module_logger
from infrastructure.persistence.store import RecordStore

logger = get_module_logger()

AUDIT_LOGS_TABLE = "audit_logs"


class AuditRecorder:
    """Stores audit events in the ``audit_logs`` table."""

    def __init__(self, store: RecordStore, table: str = AUDIT_LOGS_TABLE) -> None:
        self.store = store
        self.table = table

    def record(self, event: AuditEvent) -> None:
        if event.correlation_id is None:
            event.correlation_id = get_correlation_id()

        payload = event.to_record()
        logger.info("audit_event", **payload)
        try:
            self.store.insert(self.table, payload)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "audit_event_store_failed",
                action=event.action,
                resource_id=event.resource_id,
                error=str(e),
            )
