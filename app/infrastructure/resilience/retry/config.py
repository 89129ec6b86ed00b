"""Retry queue configuration."""

from dataclasses import dataclass
from datetime import timedelta


@dataclass
class RetryConfig:
    """Configuration for retry queue behavior.

    Attributes:
        max_retries: Failed attempts allowed before an item is dead-lettered
        max_age_seconds: Items older than this are dead-lettered unexecuted
        base_delay_seconds: Base unit for exponential backoff
        max_delay_seconds: Optional cap on the backoff delay
        process_interval_seconds: Interval between background sweeps
        attempt_timeout_seconds: Optional timeout for a single executor call

    Example:
        config = RetryConfig(max_retries=5, process_interval_seconds=30)
    """

    max_retries: int = 3
    max_age_seconds: int = 24 * 60 * 60  # 24 hours
    base_delay_seconds: float = 1.0
    max_delay_seconds: float | None = None
    process_interval_seconds: int = 60
    attempt_timeout_seconds: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.max_age_seconds < 1:
            raise ValueError("max_age_seconds must be at least 1")
        if self.base_delay_seconds <= 0:
            raise ValueError("base_delay_seconds must be positive")
        if (
            self.max_delay_seconds is not None
            and self.max_delay_seconds < self.base_delay_seconds
        ):
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if self.process_interval_seconds < 1:
            raise ValueError("process_interval_seconds must be at least 1")
        if self.attempt_timeout_seconds is not None and self.attempt_timeout_seconds <= 0:
            raise ValueError("attempt_timeout_seconds must be positive")

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.max_age_seconds)

    @classmethod
    def from_settings(cls, retry_settings) -> "RetryConfig":
        """Build a config from ``settings.retry``."""
        return cls(
            max_retries=retry_settings.max_retries,
            max_age_seconds=retry_settings.max_age_seconds,
            base_delay_seconds=retry_settings.base_delay_seconds,
            max_delay_seconds=retry_settings.max_delay_seconds,
            process_interval_seconds=retry_settings.process_interval_seconds,
            attempt_timeout_seconds=retry_settings.attempt_timeout_seconds,
        )
