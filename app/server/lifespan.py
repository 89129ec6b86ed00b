from contextlib import asynccontextmanager
import sys
import threading
from typing import AsyncIterator, Optional, TYPE_CHECKING, cast

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging.setup import configure_logging
from infrastructure.resilience.retry import BackgroundRetryScheduler
from infrastructure.services import (
    get_retry_executor,
    get_retry_queue,
    get_settings,
)
from jobs import scheduled_tasks

if TYPE_CHECKING:
    from infrastructure.configuration import Settings


def _is_test_environment() -> bool:
    """Detect if running in a test environment."""
    return "pytest" in sys.modules


def _get_logger(settings: "Settings") -> BoundLogger:
    return configure_logging(settings=settings)


def _list_configs(settings: "Settings", logger: BoundLogger) -> None:
    config_settings: dict[str, list[object]] = {"settings": []}

    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            config_settings[key] = list(value.keys())
        else:
            config_settings["settings"].append({key: value})

    logger.info("configuration_initialized", base_settings=config_settings["settings"])
    for key, value in config_settings.items():
        if key != "settings":
            logger.info("configuration_loaded", config_setting=key, keys=value)


def _start_retry_scheduler(
    settings: "Settings", logger: BoundLogger
) -> Optional[BackgroundRetryScheduler]:
    if not settings.retry.enabled or _is_test_environment():
        logger.info("retry_scheduler_skipped", enabled=settings.retry.enabled)
        return None

    scheduler = BackgroundRetryScheduler(
        get_retry_queue(),
        get_retry_executor(),
        interval_seconds=settings.retry.process_interval_seconds,
    )
    scheduler.start()
    return scheduler


def _start_scheduled_tasks(
    settings: "Settings",
    logger: BoundLogger,
) -> Optional[threading.Event]:
    if settings.PREFIX != "" or _is_test_environment():
        logger.info("scheduled_tasks_skipped", prefix=settings.PREFIX)
        return None

    scheduled_tasks.init(settings)
    stop_event = cast(Optional[threading.Event], scheduled_tasks.run_continuously())
    logger.info("scheduled_tasks_started")
    return stop_event


def _stop_scheduled_tasks(stop_event: Optional[threading.Event]) -> None:
    if stop_event is None:
        return
    stop_event.set()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger = _get_logger(settings)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    app.state.retry_scheduler = _start_retry_scheduler(settings, logger)
    app.state.scheduled_stop_event = _start_scheduled_tasks(settings, logger)

    yield

    logger.info("application_shutdown")

    _stop_scheduled_tasks(app.state.scheduled_stop_event)

    if app.state.retry_scheduler is not None:
        app.state.retry_scheduler.stop(timeout=5)
        logger.info("retry_scheduler_shutdown")
