"""Cron retry sweeper for ERP sync logs.

Picks up every sync log in ``retrying`` under its retry cap and re-runs it
through the orchestrator. Records are attempted concurrently; each waits
its own backoff delay first, so the delays stagger individual retries
rather than throttling the sweep as a whole. The orchestrator owns every
state transition; the sweeper only triggers them.
"""

import asyncio
from typing import Awaitable, Callable, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.backoff import backoff_delay
from modules.erp.models import SweepResult, SyncLogRecord, SyncStatus
from modules.erp.orchestrator import SyncOrchestrator
from modules.erp.repository import ErpRepository

logger = get_module_logger()

Sleep = Callable[[float], Awaitable[None]]


class CronRetrySweeper:
    """Re-invokes the orchestrator for retryable sync logs.

    Args:
        repository: ErpRepository used to select ``retrying`` logs
        orchestrator: SyncOrchestrator that re-runs each log
        base_delay_seconds: Backoff unit; record n waits base * 2**retry_count
        attempt_timeout_seconds: Optional bound on each re-run
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        repository: ErpRepository,
        orchestrator: SyncOrchestrator,
        base_delay_seconds: float = 1.0,
        attempt_timeout_seconds: Optional[float] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.repository = repository
        self.orchestrator = orchestrator
        self.base_delay_seconds = base_delay_seconds
        self.attempt_timeout_seconds = attempt_timeout_seconds
        self._sleep = sleep
        self.log = logger.bind(component="cron_retry_sweeper")

    async def sweep(self) -> SweepResult:
        """Run one sweep.

        Returns:
            SweepResult with retried, succeeded and failed counts

        Raises:
            Exception: Only when the retrying logs cannot be queried
        """
        logs = self.repository.list_sync_logs(status=SyncStatus.RETRYING)

        eligible: List[SyncLogRecord] = []
        for record in logs:
            if record.retry_count < record.max_retries:
                eligible.append(record)
            else:
                self.orchestrator.exhaust(record)

        self.log.info(
            "erp_retry_sweep_started",
            retrying=len(logs),
            eligible=len(eligible),
        )
        if not eligible:
            return SweepResult()

        outcomes = await asyncio.gather(
            *(self._retry(record) for record in eligible),
            return_exceptions=True,
        )

        summary = SweepResult(retried=len(eligible))
        for record, outcome in zip(eligible, outcomes):
            if isinstance(outcome, BaseException):
                summary.failed += 1
                self.log.warning(
                    "erp_retry_attempt_failed",
                    sync_log_id=record.id,
                    retry_count=record.retry_count,
                    error=str(outcome) or type(outcome).__name__,
                )
            else:
                summary.succeeded += 1

        self.log.info("erp_retry_sweep_completed", **summary.to_dict())
        return summary

    async def _retry(self, record: SyncLogRecord) -> None:
        await self._sleep(backoff_delay(record.retry_count, self.base_delay_seconds))
        await self.orchestrator.resume(
            record.id, timeout_seconds=self.attempt_timeout_seconds
        )
