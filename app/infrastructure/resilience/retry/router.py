"""Executor that routes retry items to per-action handlers."""

from typing import Any, Awaitable, Callable, Dict

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.exceptions import NonRetryableActionError

logger = get_module_logger()

ActionHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class RetryActionRouter:
    """Async executor for RetryQueue.process_queue.

    Usage:
        router = RetryActionRouter()
        router.register("erp.sync", erp_sync_handler)
        await queue.process_queue(router)
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, ActionHandler] = {}

    def register(self, action: str, handler: ActionHandler) -> None:
        self._handlers[action] = handler

    @property
    def actions(self) -> list[str]:
        return sorted(self._handlers)

    async def __call__(self, action: str, payload: Dict[str, Any]) -> None:
        handler = self._handlers.get(action)
        if handler is None:
            logger.error("retry_action_unhandled", action=action)
            raise NonRetryableActionError(f"No handler registered for {action}")
        await handler(payload)
