from typing import Annotated, Optional

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import JSONResponse

from api.dependencies.auth import PrincipalDep, SystemPrincipalDep
from api.dependencies.rate_limits import get_limiter
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.services import CronSweeperDep, ErpSyncServiceDep
from modules.erp.errors import (
    ErpSyncError,
    InvalidSyncStateError,
    RateLimitedError,
    error_status,
    sanitize_error,
)
from modules.erp.models import SyncRequest, SyncStatus
from modules.erp.service import erp_response

logger = get_module_logger()
router = APIRouter(prefix="/erp", tags=["ERP"])
limiter = get_limiter()


def error_response(error: Exception) -> JSONResponse:
    """Translate an ERP failure into the standard error envelope.

    Only messages of deliberate ERP errors reach the caller; anything else
    is reported with a generic message.
    """
    rate_limited = isinstance(error, RateLimitedError)
    headers = {"Retry-After": str(error.retry_after)} if rate_limited else None
    return JSONResponse(
        status_code=error_status(error),
        content=erp_response(False, sanitize_error(error), rate_limited=rate_limited),
        headers=headers,
    )


@router.post("/sync")
async def trigger_sync(
    request: Request,
    payload: SyncRequest,
    principal: PrincipalDep,
    service: ErpSyncServiceDep,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
):
    """Run one ERP sync for an integration entity.

    User callers must send an ``Idempotency-Key`` header and are limited per
    tenant. The trusted system caller bypasses both.
    """
    with bind_request_context(
        tenant_id=principal.tenant_id,
        user_id=principal.user_id,
        request_path=request.url.path,
        request_method=request.method,
    ):
        try:
            return await service.trigger(payload, principal, idempotency_key)
        except Exception as e:  # pylint: disable=broad-except
            log = logger.warning if isinstance(e, ErpSyncError) else logger.error
            log(
                "erp_sync_request_failed",
                integration_id=payload.integration_id,
                entity_type=payload.entity_type,
                error=str(e),
            )
            return error_response(e)


@router.get("/sync-logs")
def list_sync_logs(
    principal: PrincipalDep,
    service: ErpSyncServiceDep,
    status: Optional[SyncStatus] = None,
):
    """List sync logs of the caller's tenant, newest first."""
    try:
        records = service.list_logs(principal, status)
    except ErpSyncError as e:
        return error_response(e)
    return erp_response(
        True,
        f"{len(records)} sync logs",
        {"logs": [record.model_dump(mode="json") for record in records]},
    )


@router.post("/sync-logs/{sync_log_id}/retry")
async def retry_sync_log(
    sync_log_id: str,
    principal: PrincipalDep,
    service: ErpSyncServiceDep,
):
    """Retry a failed sync immediately, outside the sweeper's schedule."""
    with bind_request_context(tenant_id=principal.tenant_id, user_id=principal.user_id):
        try:
            return await service.retry_log(sync_log_id, principal)
        except Exception as e:  # pylint: disable=broad-except
            logger.warning(
                "erp_sync_manual_retry_failed", sync_log_id=sync_log_id, error=str(e)
            )
            return error_response(e)


@router.delete("/sync-logs/{sync_log_id}")
def dismiss_sync_log(
    sync_log_id: str,
    principal: PrincipalDep,
    service: ErpSyncServiceDep,
    confirm: Annotated[bool, Query()] = False,
):
    """Permanently delete a dead-letter sync log. Requires ``confirm=true``."""
    if not confirm:
        return error_response(
            InvalidSyncStateError("Dismissing requires confirm=true", status_code=400)
        )
    try:
        service.dismiss_log(sync_log_id, principal)
    except ErpSyncError as e:
        return error_response(e)
    return erp_response(True, "Sync log dismissed", {"sync_log_id": sync_log_id})


@router.post("/sync-retry")
@limiter.limit("10/minute")
async def sweep_retries(
    request: Request,  # pylint: disable=unused-argument
    _principal: SystemPrincipalDep,
    sweeper: CronSweeperDep,
):
    """Cron entry point: retry every ``retrying`` sync log under its cap."""
    try:
        result = await sweeper.sweep()
    except Exception as e:  # pylint: disable=broad-except
        logger.error("erp_sync_sweep_failed", error=str(e))
        return JSONResponse(
            status_code=500, content={"error": "Failed to query retrying syncs"}
        )
    return result.to_dict()
