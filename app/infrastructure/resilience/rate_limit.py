"""Per-tenant rolling-window rate limits.

Built on the ``limits`` moving-window strategy (the engine behind slowapi)
so that the same rate strings ("5/minute", "30/hour") configure both the
IP-based route limits and these tenant-keyed checks.

Usage:
    limiter = TenantRateLimiter(["1/minute", "30/hour"], namespace="erp_sync")
    decision = limiter.hit(tenant_id)
    if not decision.allowed:
        raise RateLimited(decision.retry_after)
"""

import math
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from limits import RateLimitItem, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import MovingWindowRateLimiter

from infrastructure.logging import get_module_logger

logger = get_module_logger()


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0
    limit: Optional[str] = None


class TenantRateLimiter:
    """Rolling-window limiter keyed by tenant.

    Args:
        limits: Rate strings, all of which must allow the hit
        namespace: Separates the counters of different limiters
        storage_uri: ``limits`` storage URI (memory://, redis://...)
        fail_open: Allow the hit when the storage backend errors
    """

    def __init__(
        self,
        limits: Sequence[str],
        namespace: str,
        storage_uri: str = "memory://",
        fail_open: bool = False,
        storage: Optional[Storage] = None,
    ) -> None:
        self.items: List[RateLimitItem] = [parse(limit) for limit in limits]
        self.namespace = namespace
        self.fail_open = fail_open
        self._storage = storage or storage_from_string(storage_uri)
        self._limiter = MovingWindowRateLimiter(self._storage)

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` if every limit still allows it."""
        try:
            for item in self.items:
                if not self._limiter.test(item, self.namespace, key):
                    logger.info(
                        "tenant_rate_limit_exceeded",
                        namespace=self.namespace,
                        key=key,
                        limit=str(item),
                    )
                    return RateLimitDecision(
                        allowed=False,
                        retry_after=self._seconds_until_free(item, key),
                        limit=str(item),
                    )
            for item in self.items:
                self._limiter.hit(item, self.namespace, key)
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "tenant_rate_limit_check_failed",
                namespace=self.namespace,
                key=key,
                fail_open=self.fail_open,
                error=str(e),
            )
            if self.fail_open:
                return RateLimitDecision(allowed=True)
            return RateLimitDecision(
                allowed=False, retry_after=self._longest_window()
            )
        return RateLimitDecision(allowed=True)

    def reset(self) -> None:
        self._storage.reset()

    def _seconds_until_free(self, item: RateLimitItem, key: str) -> int:
        """Seconds until the oldest hit in the window expires, at least 1."""
        stats = self._limiter.get_window_stats(item, self.namespace, key)
        return max(1, math.ceil(stats.reset_time - time.time()))

    def _longest_window(self) -> int:
        return max((item.get_expiry() for item in self.items), default=60)
