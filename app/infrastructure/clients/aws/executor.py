"""Base AWS client utilities.

Provides ``get_boto3_client`` and ``execute_aws_api_call`` with the
OperationResult pattern. Configuration is passed in, never read from
settings at import time.
"""

import time
from typing import Any, Dict, Optional

import boto3  # type: ignore
from botocore.client import BaseClient  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore

from infrastructure.logging import get_module_logger
from infrastructure.operations.classifiers import classify_aws_error
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

logger = get_module_logger()


def get_boto3_client(
    service_name: str,
    session_config: Optional[Dict[str, Any]] = None,
    client_config: Optional[Dict[str, Any]] = None,
) -> BaseClient:
    """Create a boto3 client for the given service.

    Args:
        service_name: AWS service name (e.g., 'dynamodb')
        session_config: Optional boto3 session kwargs (e.g., region_name)
        client_config: Optional client kwargs (e.g., endpoint_url)
    """
    session = boto3.Session(**(session_config or {}))
    return session.client(service_name, **(client_config or {}))


def _calculate_retry_delay(attempt: int, backoff_factor: float = 0.5) -> float:
    return backoff_factor * (2**attempt)


def execute_aws_api_call(
    service_name: str,
    method: str,
    session_config: Optional[Dict[str, Any]] = None,
    client_config: Optional[Dict[str, Any]] = None,
    max_retries: int = 3,
    backoff_factor: float = 0.5,
    client: Optional[BaseClient] = None,
    **kwargs,
) -> OperationResult:
    """Execute an AWS API call with retries and standardized results.

    Throttling and other transient errors are retried with exponential
    backoff. Conditional check failures are returned immediately with
    ``error_code="ConditionalCheckFailedException"`` so callers can treat
    them as a lost compare-and-swap.
    """
    api_client = client or get_boto3_client(
        service_name, session_config=session_config, client_config=client_config
    )
    api_method = getattr(api_client, method)
    result = OperationResult.permanent_error(message="unknown_error")

    for attempt in range(max_retries + 1):
        try:
            response = api_method(**kwargs)
            return OperationResult.success(
                data=response, message=f"{service_name}.{method} succeeded"
            )
        except ClientError as e:
            result = classify_aws_error(e)
        except BotoCoreError as e:
            result = classify_aws_error(e)

        if result.status != OperationStatus.TRANSIENT_ERROR or attempt >= max_retries:
            break

        delay = _calculate_retry_delay(attempt, backoff_factor)
        logger.warning(
            "aws_api_retry",
            service=service_name,
            method=method,
            attempt=attempt + 1,
            error=result.message,
            delay=delay,
        )
        time.sleep(delay)

    if result.error_code != "ConditionalCheckFailedException":
        logger.error(
            "aws_api_error_final",
            service=service_name,
            method=method,
            error=result.message,
            error_code=result.error_code,
        )
    return result
