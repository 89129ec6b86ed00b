"""Retry queue handler for the ``erp.sync`` action."""

from typing import Any, Dict

from infrastructure.resilience.retry.exceptions import NonRetryableActionError
from infrastructure.resilience.retry.router import ActionHandler
from modules.erp.errors import (
    ConfigurationError,
    ErpRequestError,
    ForbiddenError,
    InvalidSyncStateError,
    SyncLogNotFoundError,
)
from modules.erp.models import SyncStatus
from modules.erp.orchestrator import SyncOrchestrator


def make_erp_sync_handler(orchestrator: SyncOrchestrator) -> ActionHandler:
    """Build the handler replaying a deferred ERP sync.

    ``payload["id"]`` names a sync log. A ``retrying`` log is resumed. When
    the log is gone or already settled and the payload carries the sync
    parameters, a fresh run is started instead. Configuration problems are
    reported as non-retryable so the queue dead-letters the item at once.
    """

    async def handle(payload: Dict[str, Any]) -> None:
        sync_log_id = payload["id"]
        try:
            record = orchestrator.repository.get_sync_log(sync_log_id)
            if record is not None and record.sync_status == SyncStatus.RETRYING:
                await orchestrator.resume(sync_log_id)
                return
            if record is not None and record.sync_status == SyncStatus.COMPLETED:
                return

            params = (payload.get("integration_id"), payload.get("entity_type"))
            if not all(params) or not payload.get("direction"):
                raise SyncLogNotFoundError(sync_log_id)
            await orchestrator.run(
                payload["integration_id"], payload["entity_type"], payload["direction"]
            )
        except (
            ConfigurationError,
            ForbiddenError,
            InvalidSyncStateError,
            SyncLogNotFoundError,
        ) as e:
            raise NonRetryableActionError(str(e)) from e
        except ErpRequestError as e:
            if not e.retryable:
                raise NonRetryableActionError(str(e)) from e
            raise

    return handle
