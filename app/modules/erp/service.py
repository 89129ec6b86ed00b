"""ERP sync API service.

Wraps the orchestrator with the controls that apply to interactive callers:
role check, mandatory Idempotency-Key, per-tenant rate limit, and the
``{success, message, rateLimited, timestamp}`` response envelope. Also
serves the dashboard operations on sync logs (list, retry, dismiss).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from infrastructure.idempotency import IdempotencyService
from infrastructure.logging import get_module_logger
from infrastructure.resilience.rate_limit import TenantRateLimiter
from infrastructure.security import Principal
from modules.erp.errors import (
    ForbiddenError,
    IdempotencyKeyMissingError,
    InvalidSyncStateError,
    RateLimitedError,
    SyncLogNotFoundError,
)
from modules.erp.models import SyncLogRecord, SyncOutcome, SyncRequest, SyncStatus
from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.repository import ErpRepository

logger = get_module_logger()

IDEMPOTENCY_OPERATION = "erp_sync"
DUPLICATE_MESSAGE = "Duplicate request — already processed successfully"


def erp_response(
    success: bool,
    message: str,
    data: Optional[Dict[str, Any]] = None,
    rate_limited: bool = False,
) -> Dict[str, Any]:
    """Standard ERP response envelope."""
    return {
        "success": success,
        "message": message,
        "rateLimited": rate_limited,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **(data or {}),
    }


def outcome_response(outcome: SyncOutcome) -> Dict[str, Any]:
    return erp_response(
        True,
        "Sync completed successfully",
        {
            "sync_log_id": outcome.sync_log_id,
            "result": outcome.result.model_dump(),
        },
    )


class ErpSyncService:
    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        repository: ErpRepository,
        idempotency: IdempotencyService,
        rate_limiter: TenantRateLimiter,
    ) -> None:
        self.orchestrator = orchestrator
        self.repository = repository
        self.idempotency = idempotency
        self.rate_limiter = rate_limiter

    @staticmethod
    def _require_admin(principal: Principal) -> None:
        if not principal.is_admin:
            raise ForbiddenError(
                "Forbidden: tenant_admin or super_admin role required"
            )
        if not principal.is_system and not principal.tenant_id:
            raise ForbiddenError("No tenant found for this user")

    async def trigger(
        self,
        request: SyncRequest,
        principal: Principal,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run a sync for ``principal``.

        System callers skip the idempotency and rate-limit checks. For users
        the idempotency key is recorded only after the sync succeeded.

        Raises:
            ErpSyncError: Translated to an error response by the API layer
        """
        self._require_admin(principal)

        if not principal.is_system:
            if not idempotency_key:
                raise IdempotencyKeyMissingError()

            tenant_id = principal.tenant_id
            if self.idempotency.lookup(tenant_id, idempotency_key, IDEMPOTENCY_OPERATION):
                logger.info(
                    "erp_sync_duplicate_request",
                    tenant_id=tenant_id,
                    integration_id=request.integration_id,
                )
                return erp_response(True, DUPLICATE_MESSAGE)

            decision = self.rate_limiter.hit(tenant_id)
            if not decision.allowed:
                raise RateLimitedError(decision.retry_after)

        outcome = await self.orchestrator.run(
            request.integration_id,
            request.entity_type,
            request.direction,
            principal=principal,
        )
        response = outcome_response(outcome)

        if not principal.is_system:
            self.idempotency.record(
                principal.tenant_id, idempotency_key, response, IDEMPOTENCY_OPERATION
            )
        return response

    def list_logs(
        self, principal: Principal, status: Optional[SyncStatus] = None
    ) -> List[SyncLogRecord]:
        self._require_admin(principal)
        tenant_id = None if principal.is_system else principal.tenant_id
        return self.repository.list_sync_logs(tenant_id=tenant_id, status=status)

    def _owned_log(self, sync_log_id: str, principal: Principal) -> SyncLogRecord:
        self._require_admin(principal)
        record = self.repository.get_sync_log(sync_log_id)
        if record is None or not principal.can_access_tenant(record.tenant_id):
            raise SyncLogNotFoundError(sync_log_id)
        return record

    async def retry_log(self, sync_log_id: str, principal: Principal) -> Dict[str, Any]:
        """Manual retry from the dashboard, outside the sweeper's schedule.

        A ``retrying`` log is resumed in place. A ``dead_letter`` log starts a
        fresh run with the same parameters and keeps its own record.
        """
        record = self._owned_log(sync_log_id, principal)

        if record.sync_status == SyncStatus.RETRYING:
            outcome = await self.orchestrator.resume(record.id, principal=principal)
        elif record.sync_status == SyncStatus.DEAD_LETTER:
            outcome = await self.orchestrator.run(
                record.integration_id,
                record.entity_type,
                record.sync_direction,
                principal=principal,
            )
        else:
            raise InvalidSyncStateError(
                f"Sync log is {record.sync_status.value}; only failed syncs can be retried"
            )

        logger.info(
            "erp_sync_manual_retry",
            sync_log_id=record.id,
            new_sync_log_id=outcome.sync_log_id,
            user_id=principal.user_id,
        )
        return outcome_response(outcome)

    def dismiss_log(self, sync_log_id: str, principal: Principal) -> None:
        """Permanently delete a ``dead_letter`` sync log."""
        record = self._owned_log(sync_log_id, principal)
        if record.sync_status != SyncStatus.DEAD_LETTER:
            raise InvalidSyncStateError("Only dead-letter syncs can be dismissed")

        self.repository.delete_sync_log(record.id)
        logger.warning(
            "erp_sync_log_dismissed",
            sync_log_id=record.id,
            tenant_id=record.tenant_id,
            user_id=principal.user_id,
        )
