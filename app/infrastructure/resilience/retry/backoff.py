"""Exponential backoff policy shared by the retry queue and the cron sweeper."""

from datetime import timedelta

DEFAULT_BASE_DELAY_SECONDS = 1.0


def backoff_delay(
    attempt: int,
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay_seconds: float | None = None,
) -> float:
    """Delay in seconds before the attempt following ``attempt`` failures.

    Uses the formula: base_delay * (2 ^ attempt). No jitter, so the result
    is fully deterministic. ``max_delay_seconds`` caps the result when given.

    Args:
        attempt: Number of attempts already made (retry_count)
        base_delay_seconds: Base unit of the doubling sequence
        max_delay_seconds: Optional upper bound

    Returns:
        Delay in seconds

    Raises:
        ValueError: If attempt is negative
    """
    if attempt < 0:
        raise ValueError("attempt must be >= 0")
    delay = base_delay_seconds * (2**attempt)
    if max_delay_seconds is not None:
        delay = min(delay, max_delay_seconds)
    return delay


def backoff_timedelta(
    attempt: int,
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
    max_delay_seconds: float | None = None,
) -> timedelta:
    return timedelta(
        seconds=backoff_delay(attempt, base_delay_seconds, max_delay_seconds)
    )
