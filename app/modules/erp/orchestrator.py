"""ERP sync orchestration.

One invocation syncs one entity type of one integration:

1. Look up the integration (missing: hard failure, never retried).
2. Refresh its access token when it expires within the refresh buffer.
3. Look up the entity config and its field mappings (missing entity: hard failure).
4. Open a sync log in ``in_progress`` (or resume a ``retrying`` one).
5. Import and/or export according to the direction.
6. On success mark the log ``completed`` with counts and stamp the
   integration's ``last_sync_at``.
7. On failure classify the log by its retry count: ``retrying`` under the
   cap, ``dead_letter`` at or over it. The error is always re-raised.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from infrastructure.audit import AuditRecorder, create_audit_event
from infrastructure.logging import get_module_logger
from infrastructure.security import Principal
from modules.erp.connectors import ErpConnector
from modules.erp.errors import (
    ConfigurationError,
    EntityNotFoundError,
    ForbiddenError,
    IntegrationNotFoundError,
    InvalidSyncStateError,
    SyncLogNotFoundError,
)
from modules.erp.models import (
    DEFAULT_MAX_RETRIES,
    EntityConfig,
    Integration,
    SyncDirection,
    SyncLogRecord,
    SyncOutcome,
    SyncResult,
    SyncStatus,
)
from modules.erp.repository import ErpRepository, isoformat
from modules.erp.tokens import TokenManager

logger = get_module_logger()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def exhausted_message(max_retries: int, last_error: Optional[str]) -> str:
    return f"Max retries ({max_retries}) exceeded. Last error: {last_error or 'unknown'}"


class SyncOrchestrator:
    """Runs ERP syncs and keeps their sync logs in a consistent state.

    Attributes:
        repository: ErpRepository for integrations, entities and sync logs
        tokens: TokenManager refreshing expiring access tokens
        connector: ErpConnector performing the import/export calls
        max_retries: Retry cap stamped on new sync logs
        audit: Optional AuditRecorder receiving one event per run
    """

    def __init__(
        self,
        repository: ErpRepository,
        tokens: TokenManager,
        connector: ErpConnector,
        max_retries: int = DEFAULT_MAX_RETRIES,
        audit: Optional[AuditRecorder] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.tokens = tokens
        self.connector = connector
        self.max_retries = max_retries
        self.audit = audit
        self._clock = clock
        self.log = logger.bind(component="sync_orchestrator")

    async def run(
        self,
        integration_id: str,
        entity_type: str,
        direction: SyncDirection,
        principal: Optional[Principal] = None,
    ) -> SyncOutcome:
        """Run a new sync. ``principal`` defaults to the system principal.

        Raises:
            IntegrationNotFoundError / EntityNotFoundError: Missing configuration
            ForbiddenError: Integration belongs to another tenant
            TokenRefreshError: The access token could not be refreshed
            Exception: Any import/export failure, after classification
        """
        principal = principal or Principal.system()
        direction = SyncDirection(direction)

        integration = self._load_integration(integration_id, principal)
        integration = await self.tokens.ensure_valid(integration)
        entity, mappings = self._load_entity(integration_id, entity_type)

        record = self.repository.create_sync_log(
            {
                "integration_id": integration_id,
                "tenant_id": integration.tenant_id,
                "entity_type": entity_type,
                "sync_direction": direction.value,
                "sync_status": SyncStatus.IN_PROGRESS.value,
                "triggered_by": None if principal.is_system else principal.user_id,
                "is_manual": not principal.is_system,
                "retry_count": 0,
                "max_retries": self.max_retries,
                "created_at": isoformat(self._clock()),
            }
        )
        self.log.info(
            "erp_sync_started",
            sync_log_id=record.id,
            integration_id=integration_id,
            entity_type=entity_type,
            direction=direction.value,
            is_manual=record.is_manual,
        )
        return await self._execute(record, integration, entity, mappings, principal)

    async def resume(
        self,
        sync_log_id: str,
        principal: Optional[Principal] = None,
        timeout_seconds: Optional[float] = None,
    ) -> SyncOutcome:
        """Re-run a ``retrying`` sync log, keeping its retry count.

        The log moves back to ``in_progress`` before the run. A configuration
        error found while resuming dead-letters the log immediately.
        ``timeout_seconds`` bounds the import/export phase; a timeout is
        classified like any other failure.

        Raises:
            SyncLogNotFoundError: Unknown sync log
            InvalidSyncStateError: The log is not ``retrying`` any more
        """
        principal = principal or Principal.system()
        record = self.repository.get_sync_log(sync_log_id)
        if record is None:
            raise SyncLogNotFoundError(sync_log_id)
        if not principal.can_access_tenant(record.tenant_id):
            raise ForbiddenError("Forbidden: sync log does not belong to your tenant")

        moved = self.repository.update_sync_log(
            record.id,
            {"sync_status": SyncStatus.IN_PROGRESS.value},
            expected_status=SyncStatus.RETRYING,
        )
        if not moved:
            raise InvalidSyncStateError("Sync log is not awaiting retry")
        record = record.model_copy(update={"sync_status": SyncStatus.IN_PROGRESS})

        self.log.info(
            "erp_sync_resumed",
            sync_log_id=record.id,
            integration_id=record.integration_id,
            retry_count=record.retry_count,
        )

        try:
            integration = self._load_integration(record.integration_id, principal)
            integration = await self.tokens.ensure_valid(integration)
            entity, mappings = self._load_entity(
                record.integration_id, record.entity_type
            )
        except ConfigurationError as e:
            self._dead_letter(record, str(e))
            self._audit(record, principal, "failure", error=e)
            raise
        except Exception as e:
            self._classify_failure(record, e)
            self._audit(record, principal, "failure", error=e)
            raise

        return await self._execute(
            record, integration, entity, mappings, principal, timeout_seconds
        )

    def exhaust(self, record: SyncLogRecord) -> bool:
        """Dead-letter a ``retrying`` log that already reached its cap."""
        updated = self.repository.update_sync_log(
            record.id,
            {
                "sync_status": SyncStatus.DEAD_LETTER.value,
                "error_message": exhausted_message(
                    record.max_retries, record.error_message
                ),
                "completed_at": isoformat(self._clock()),
            },
            expected_status=SyncStatus.RETRYING,
        )
        if updated:
            self.log.warning(
                "erp_sync_exhausted",
                sync_log_id=record.id,
                retry_count=record.retry_count,
                max_retries=record.max_retries,
            )
        return updated

    def _load_integration(self, integration_id: str, principal: Principal) -> Integration:
        integration = self.repository.get_integration(integration_id)
        if integration is None:
            self.log.warning("erp_integration_not_found", integration_id=integration_id)
            raise IntegrationNotFoundError(integration_id)
        if not principal.can_access_tenant(integration.tenant_id):
            self.log.warning(
                "erp_cross_tenant_sync_rejected",
                integration_id=integration_id,
                user_id=principal.user_id,
            )
            raise ForbiddenError("Forbidden: integration does not belong to your tenant")
        return integration

    def _load_entity(self, integration_id: str, entity_type: str):
        entity = self.repository.get_entity(integration_id, entity_type)
        if entity is None:
            self.log.warning(
                "erp_entity_not_found",
                integration_id=integration_id,
                entity_type=entity_type,
            )
            raise EntityNotFoundError(integration_id, entity_type)
        return entity, self.repository.get_field_mappings(entity.id)

    async def _execute(
        self,
        record: SyncLogRecord,
        integration: Integration,
        entity: EntityConfig,
        mappings,
        principal: Principal,
        timeout_seconds: Optional[float] = None,
    ) -> SyncOutcome:
        try:
            result = await asyncio.wait_for(
                self._transfer(record, integration, entity, mappings),
                timeout=timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            error = TimeoutError(f"Sync attempt timed out after {timeout_seconds}s")
            self._classify_failure(record, error)
            self._audit(record, principal, "failure", error=error)
            raise error from e
        except Exception as e:
            self._classify_failure(record, e)
            self._audit(record, principal, "failure", error=e)
            raise

        now = self._clock()
        self.repository.update_sync_log(
            record.id,
            {
                "sync_status": SyncStatus.COMPLETED.value,
                "completed_at": isoformat(now),
                "error_message": None,
                "records_processed": result.processed,
                "records_succeeded": result.succeeded,
                "records_failed": result.failed,
            },
        )
        self.repository.touch_last_sync(record.integration_id, now)

        self.log.info(
            "erp_sync_completed",
            sync_log_id=record.id,
            integration_id=record.integration_id,
            entity_type=record.entity_type,
            processed=result.processed,
            succeeded=result.succeeded,
            failed=result.failed,
        )
        self._audit(record, principal, "success", sync_result=result)
        return SyncOutcome(sync_log_id=record.id, result=result)

    async def _transfer(
        self,
        record: SyncLogRecord,
        integration: Integration,
        entity: EntityConfig,
        mappings,
    ) -> SyncResult:
        direction = record.sync_direction
        result = SyncResult()
        if direction.imports:
            result = result.merge(
                await self.connector.import_records(integration, entity, mappings)
            )
        if direction.exports:
            result = result.merge(
                await self.connector.export_records(integration, entity, mappings)
            )
        return result

    def _classify_failure(self, record: SyncLogRecord, error: Exception) -> None:
        message = str(error) or type(error).__name__
        retry_count = record.retry_count
        if retry_count < record.max_retries:
            self.repository.update_sync_log(
                record.id,
                {
                    "sync_status": SyncStatus.RETRYING.value,
                    "completed_at": isoformat(self._clock()),
                    "error_message": message,
                    "retry_count": retry_count + 1,
                },
            )
            self.log.warning(
                "erp_sync_failed_will_retry",
                sync_log_id=record.id,
                retry_count=retry_count + 1,
                max_retries=record.max_retries,
                error=message,
            )
        else:
            self._dead_letter(record, exhausted_message(record.max_retries, message))

    def _dead_letter(self, record: SyncLogRecord, message: str) -> None:
        self.repository.update_sync_log(
            record.id,
            {
                "sync_status": SyncStatus.DEAD_LETTER.value,
                "completed_at": isoformat(self._clock()),
                "error_message": message,
            },
        )
        self.log.error(
            "erp_sync_dead_lettered",
            sync_log_id=record.id,
            retry_count=record.retry_count,
            error=message,
        )

    def _audit(
        self,
        record: SyncLogRecord,
        principal: Principal,
        outcome: str,
        error: Optional[Exception] = None,
        sync_result: Optional[SyncResult] = None,
    ) -> None:
        if self.audit is None:
            return
        metadata = {
            "sync_log_id": record.id,
            "entity_type": record.entity_type,
            "direction": record.sync_direction.value,
        }
        if sync_result is not None:
            metadata.update(sync_result.model_dump(exclude={"message"}))
        self.audit.record(
            create_audit_event(
                action="erp_sync",
                resource_type="erp_integration",
                resource_id=record.integration_id,
                result=outcome,
                tenant_id=record.tenant_id,
                user_id=None if principal.is_system else principal.user_id,
                error_type=type(error).__name__ if error else None,
                metadata=metadata,
            )
        )
