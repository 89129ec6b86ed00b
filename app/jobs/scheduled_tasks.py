import asyncio
import threading
import time

import schedule

from infrastructure.configuration import Settings
from infrastructure.logging import get_module_logger
from infrastructure.services.providers import get_cron_sweeper, get_idempotency_service

logger = get_module_logger()


def safe_run(job):
    def wrapper(*args, **kwargs):
        try:
            job(*args, **kwargs)
        except Exception as e:  # pylint: disable=broad-except
            logger.error("scheduled_job_failed", job=job.__name__, error=str(e))

    return wrapper


def init(settings: Settings):
    logger.info("scheduled_tasks_initialized")

    schedule.every(5).minutes.do(safe_run(scheduler_heartbeat))
    schedule.every(1).hours.do(safe_run(cleanup_idempotency_cache))
    if settings.erp.sweep_enabled:
        schedule.every(settings.erp.sweep_interval_minutes).minutes.do(
            safe_run(sweep_erp_retries)
        )


def scheduler_heartbeat():
    logger.info("scheduler_heartbeat", time=time.ctime())


def sweep_erp_retries():
    """Retry ERP syncs left in ``retrying``, like the external cron does."""
    result = asyncio.run(get_cron_sweeper().sweep())
    logger.info("scheduled_erp_sweep_completed", **result.to_dict())


def cleanup_idempotency_cache():
    removed = get_idempotency_service().cleanup_expired()
    logger.info("idempotency_cache_cleaned", removed=removed)


def run_continuously(interval=1):
    """Continuously run, while executing pending jobs at each
    elapsed time interval.
    @return cease_continuous_run: threading. Event which can
    be set to cease continuous run. Please note that it is
    *intended behavior that run_continuously() does not run
    missed jobs*. For example, if you've registered a job that
    should run every minute and you set a continuous run
    interval of one hour then your job won't be run 60 times
    at each interval but only once.
    """
    cease_continuous_run = threading.Event()

    class ScheduleThread(threading.Thread):
        @classmethod
        def run(cls):
            while not cease_continuous_run.is_set():
                schedule.run_pending()
                time.sleep(interval)

    continuous_thread = ScheduleThread(daemon=True)
    continuous_thread.start()
    return cease_continuous_run
