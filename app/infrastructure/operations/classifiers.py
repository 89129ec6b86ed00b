"""Error classifiers for collaborator exceptions.

Converts httpx and AWS SDK exceptions into OperationResult objects so the
ERP connectors, payment gateways and DynamoDB stores share one vocabulary
for transient versus permanent failures.

Usage:
    from infrastructure.operations.classifiers import classify_http_error

    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        return classify_http_error(exc)
"""

from typing import Optional

import httpx
from botocore.exceptions import ClientError

from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus


def _retry_after(response: httpx.Response, default: int = 60) -> int:
    header_value = response.headers.get("retry-after")
    if not header_value:
        return default
    try:
        return int(header_value)
    except ValueError:
        return default


def classify_http_error(exc: Exception) -> OperationResult:
    """Classify httpx errors into OperationResult.

    Status Code Mapping:
    - 429: Rate limiting → TRANSIENT_ERROR with retry_after
    - 401/403: Credentials rejected → UNAUTHORIZED
    - 404: Not found → NOT_FOUND
    - 5xx: Server error → TRANSIENT_ERROR
    - Other 4xx: Client error → PERMANENT_ERROR
    - Timeouts and transport errors → TRANSIENT_ERROR

    Args:
        exc: Exception raised while calling a remote HTTP API

    Returns:
        OperationResult with appropriate status and error_code
    """
    if isinstance(exc, httpx.TimeoutException):
        return OperationResult.transient_error(
            f"Request timed out: {type(exc).__name__}", error_code="TIMEOUT"
        )

    if not isinstance(exc, httpx.HTTPStatusError):
        return OperationResult.transient_error(
            f"Connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    status_code: Optional[int] = exc.response.status_code

    if status_code == 429:
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "Remote API rate limited",
            error_code="RATE_LIMITED",
            retry_after=_retry_after(exc.response),
        )

    if status_code in (401, 403):
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED,
            f"Remote API rejected credentials ({status_code})",
            error_code="UNAUTHORIZED",
        )

    if status_code == 404:
        return OperationResult.error(
            OperationStatus.NOT_FOUND,
            "Remote resource not found",
            error_code="NOT_FOUND",
        )

    if status_code >= 500:
        return OperationResult.transient_error(
            f"Remote API server error ({status_code})",
            error_code="SERVER_ERROR",
        )

    return OperationResult.permanent_error(
        f"Remote API client error ({status_code})",
        error_code="HTTP_ERROR",
    )


def classify_aws_error(exc: Exception) -> OperationResult:
    """Classify AWS SDK errors into OperationResult.

    Error Code Mapping:
    - ThrottlingException / ProvisionedThroughputExceededException → TRANSIENT_ERROR
    - ConditionalCheckFailedException → PERMANENT_ERROR (code preserved)
    - AccessDeniedException → UNAUTHORIZED
    - ResourceNotFoundException → NOT_FOUND
    - ValidationException → PERMANENT_ERROR
    - Other ClientError → TRANSIENT_ERROR (AWS convention)
    - Non-ClientError (connection, botocore) → TRANSIENT_ERROR
    """
    if not isinstance(exc, ClientError):
        return OperationResult.transient_error(
            f"AWS connection error: {type(exc).__name__}: {exc}",
            error_code="CONNECTION_ERROR",
        )

    error = exc.response.get("Error", {}) if exc.response else {}
    error_code = error.get("Code", "Unknown")
    message = error.get("Message", str(exc))

    if error_code in ("ThrottlingException", "ProvisionedThroughputExceededException"):
        return OperationResult.error(
            OperationStatus.TRANSIENT_ERROR,
            "AWS API throttled",
            error_code=error_code,
            retry_after=1,
        )

    if error_code in ("ConditionalCheckFailedException", "ValidationException"):
        return OperationResult.permanent_error(message, error_code=error_code)

    if error_code == "AccessDeniedException":
        return OperationResult.error(
            OperationStatus.UNAUTHORIZED, message, error_code=error_code
        )

    if error_code == "ResourceNotFoundException":
        return OperationResult.error(
            OperationStatus.NOT_FOUND, message, error_code=error_code
        )

    return OperationResult.transient_error(message, error_code=error_code)
