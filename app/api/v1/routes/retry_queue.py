from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from api.dependencies.auth import SystemPrincipalDep
from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry import (
    InvalidPayloadError,
    UnknownActionError,
)
from infrastructure.services import RetryExecutorDep, RetryQueueDep

logger = get_module_logger()
router = APIRouter(prefix="/retry-queue", tags=["Retry Queue"])


class EnqueueRequest(BaseModel):
    action: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None


@router.get("")
def get_queue_counts(_principal: SystemPrincipalDep, queue: RetryQueueDep):
    """Number of pending and dead-lettered items."""
    return queue.get_counts().to_dict()


@router.post("", status_code=201)
def enqueue_item(
    request: EnqueueRequest, _principal: SystemPrincipalDep, queue: RetryQueueDep
):
    try:
        item = queue.enqueue(request.action, request.payload, request.error_message)
    except (UnknownActionError, InvalidPayloadError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return item.to_dict()


@router.get("/pending")
def list_pending(_principal: SystemPrincipalDep, queue: RetryQueueDep):
    return [item.to_dict() for item in queue.list_pending()]


@router.get("/dead-letter")
def list_dead_letter(_principal: SystemPrincipalDep, queue: RetryQueueDep):
    return [item.to_dict() for item in queue.list_dead_letter()]


@router.post("/dead-letter/{item_id}/requeue")
def requeue_item(item_id: str, _principal: SystemPrincipalDep, queue: RetryQueueDep):
    """Move a dead letter back to pending with its retry count reset."""
    if not queue.requeue(item_id):
        raise HTTPException(status_code=404, detail="Dead-letter item not found")
    return {"requeued": item_id}


@router.delete("/dead-letter/{item_id}")
def dismiss_item(item_id: str, _principal: SystemPrincipalDep, queue: RetryQueueDep):
    if not queue.dismiss(item_id):
        raise HTTPException(status_code=404, detail="Dead-letter item not found")
    return {"dismissed": item_id}


@router.post("/process")
async def process_queue(
    _principal: SystemPrincipalDep,
    queue: RetryQueueDep,
    executor: RetryExecutorDep,
):
    """Run one sweep now, in addition to the background scheduler."""
    summary = await queue.process_queue(executor)
    logger.info("retry_queue_processed_on_demand", **summary.to_dict())
    return summary.to_dict()
