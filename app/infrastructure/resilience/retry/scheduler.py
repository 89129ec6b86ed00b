"""Background scheduler that sweeps the retry queue on an interval.

Runs one sweep as soon as it starts, then one every ``interval`` seconds on
a dedicated daemon thread driven by a private ``schedule.Scheduler``.
"""

import asyncio
import threading
from typing import Optional

import schedule

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.models import SweepSummary
from infrastructure.resilience.retry.queue import Executor, RetryQueue

logger = get_module_logger()


class BackgroundRetryScheduler:
    """Periodic driver for ``RetryQueue.process_queue``.

    Attributes:
        queue: RetryQueue to sweep
        executor: Async callable replaying a single action
        interval_seconds: Seconds between sweeps
        poll_seconds: How often the thread checks for due sweeps and stop requests
    """

    def __init__(
        self,
        queue: RetryQueue,
        executor: Executor,
        interval_seconds: int | None = None,
        poll_seconds: float = 1.0,
    ) -> None:
        self.queue = queue
        self.executor = executor
        self.interval_seconds = interval_seconds or queue.config.process_interval_seconds
        self.poll_seconds = poll_seconds
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self.last_summary: Optional[SweepSummary] = None
        self.log = logger.bind(component="retry_scheduler")

    def run_once(self) -> Optional[SweepSummary]:
        """Run a single sweep synchronously, logging instead of raising."""
        try:
            summary = asyncio.run(self.queue.process_queue(self.executor))
        except Exception as e:  # pylint: disable=broad-except
            self.log.error("retry_sweep_failed", error=str(e), exc_info=True)
            return None
        self.last_summary = summary
        return summary

    def start(self) -> threading.Event:
        """Start sweeping in the background.

        Returns:
            threading.Event which can be set to stop future sweeps. A sweep
            already in flight finishes normally.
        """
        if self._stop_event is not None and not self._stop_event.is_set():
            return self._stop_event

        stop_event = threading.Event()
        jobs = schedule.Scheduler()
        jobs.every(self.interval_seconds).seconds.do(self.run_once)

        def _loop() -> None:
            self.run_once()
            while not stop_event.is_set():
                jobs.run_pending()
                stop_event.wait(self.poll_seconds)
            jobs.clear()
            self.log.info("retry_scheduler_stopped")

        self._thread = threading.Thread(
            target=_loop, daemon=True, name="retry-queue-scheduler"
        )
        self._stop_event = stop_event
        self._thread.start()
        self.log.info("retry_scheduler_started", interval_seconds=self.interval_seconds)
        return stop_event

    def stop(self, timeout: float | None = None) -> None:
        """Stop the scheduler and wait up to ``timeout`` for the thread to exit."""
        if self._stop_event is not None:
            self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

