"""Structlog configuration and logger setup.

Logs are rendered to the console when ``PREFIX`` is set (development and
staging) and as JSON lines in production. Request context bound with
``bind_request_context`` is merged into every event, and secrets are
masked before rendering.

Usage:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("erp_sync_started", integration_id="int-1")
"""

import inspect
import logging
import sys
from typing import TYPE_CHECKING, List, Optional

import structlog
from structlog.stdlib import BoundLogger
from structlog.typing import Processor

from infrastructure.configuration import settings as default_settings
from infrastructure.logging.formatters import mask_sensitive_data, truncate_large_values

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

SILENT_LEVEL = logging.CRITICAL + 1


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def _build_processors(json_output: bool) -> List[Processor]:
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        mask_sensitive_data(),
        truncate_large_values(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    return processors


def configure_logging(settings: Optional["Settings"] = None) -> BoundLogger:
    """Configure structlog for the process and return the root logger.

    Args:
        settings: Settings supplying ``LOG_LEVEL`` and ``PREFIX``. Defaults to
            the module-level settings singleton.

    Under pytest the full processor chain still runs so masking is
    exercised, but nothing is emitted.
    """
    settings = settings or default_settings

    if _is_test_environment():
        level = SILENT_LEVEL
        processors: List[Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            mask_sensitive_data(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ]
    else:
        level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
        processors = _build_processors(json_output=settings.is_production)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=level, force=True)
    return structlog.stdlib.get_logger()


logger: BoundLogger = configure_logging()


def get_module_logger() -> BoundLogger:
    """Logger bound to the calling module.

    Called at import time as ``logger = get_module_logger()``; events carry
    ``component`` (last dotted segment) and ``module_path``.
    """
    frame = inspect.currentframe()
    caller = frame.f_back if frame else None
    module = inspect.getmodule(caller) if caller else None
    if module is None:
        return logger.bind(component="unknown")

    return logger.bind(
        component=module.__name__.rsplit(".", 1)[-1],
        module_path=module.__name__,
    )
