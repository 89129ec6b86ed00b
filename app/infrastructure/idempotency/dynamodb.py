"""DynamoDB idempotency cache implementation."""

import json
import time
from typing import Any, Callable, Dict, Optional

from infrastructure.clients.aws.dynamodb import DynamoDBClient
from infrastructure.idempotency.cache import IdempotencyCache
from infrastructure.logging import get_module_logger

logger = get_module_logger()

PARTITION_KEY = "idempotency_key"


class DynamoDBCache(IdempotencyCache):
    """DynamoDB-backed idempotency cache.

    Table layout:
    - PK: idempotency_key (string)
    - Attributes: response_json, ttl (epoch seconds, DynamoDB TTL), created_at

    DynamoDB TTL deletion is lazy, so reads also check ``ttl`` themselves.
    Read failures are reported as a cache miss.
    """

    def __init__(
        self,
        client: DynamoDBClient,
        table_name: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client = client
        self.table_name = table_name
        self._clock = clock
        logger.info("initialized_dynamodb_idempotency_cache", table_name=table_name)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        result = self.client.get_item(self.table_name, Key={PARTITION_KEY: key})
        if not result.is_success:
            logger.warning("idempotency_cache_get_failed", key=key, error=result.message)
            return None
        item = result.data
        if not item:
            return None
        if int(item.get("ttl", 0)) <= self._clock():
            return None
        try:
            return json.loads(item["response_json"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("idempotency_cache_entry_corrupt", key=key, error=str(e))
            return None

    def set(self, key: str, response: Dict[str, Any], ttl_seconds: int) -> None:
        now = int(self._clock())
        result = self.client.put_item(
            self.table_name,
            Item={
                PARTITION_KEY: key,
                "response_json": json.dumps(response, default=str),
                "ttl": now + ttl_seconds,
                "created_at": now,
            },
        )
        if not result.is_success:
            logger.error("idempotency_cache_set_failed", key=key, error=result.message)

    def cleanup_expired(self) -> int:
        # Rows are removed by DynamoDB TTL
        return 0

    def clear(self) -> None:
        logger.warning("idempotency_cache_clear_called", backend="dynamodb")
        result = self.client.scan(self.table_name)
        if not result.is_success:
            logger.error("idempotency_cache_clear_scan_failed", error=result.message)
            return
        for item in result.data or []:
            self.client.delete_item(self.table_name, Key={PARTITION_KEY: item[PARTITION_KEY]})

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": "dynamodb",
            "table_name": self.table_name,
            "partition_key": PARTITION_KEY,
        }
