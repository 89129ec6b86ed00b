"""DynamoDB-backed retry queue store for multi-instance deployments.

Table Schema:
    PK: queue_id (String)
    Attributes: erp_retry_queue (List), erp_dead_letter (List), version (Number)

Both lists share one item so that moving an entry between them is a single
write. Concurrent writers are serialized with an optimistic ``version``
check; a lost race reloads and reapplies the mutation.
"""

from typing import Any, Callable, Dict, Tuple, TypeVar

from infrastructure.clients.aws.dynamodb import DynamoDBClient, serialize_value
from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.exceptions import RetryStoreError
from infrastructure.resilience.retry.models import (
    DEAD_LETTER_KEY,
    PENDING_KEY,
    QueueSnapshot,
)
from infrastructure.resilience.retry.store import snapshot_from_dict

logger = get_module_logger()

T = TypeVar("T")

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoDBRetryQueueStore:
    """Retry queue store persisted as a single DynamoDB item.

    Args:
        client: DynamoDBClient used for all calls
        table_name: DynamoDB table name
        queue_key: Partition key value of the queue item
        max_conflict_retries: Optimistic-lock retries before giving up
    """

    def __init__(
        self,
        client: DynamoDBClient,
        table_name: str,
        queue_key: str = "default",
        max_conflict_retries: int = 5,
    ) -> None:
        self.client = client
        self.table_name = table_name
        self.queue_key = queue_key
        self.max_conflict_retries = max_conflict_retries

        logger.info(
            "dynamodb_retry_store_initialized",
            table_name=table_name,
            queue_key=queue_key,
        )

    def _read(self) -> Tuple[QueueSnapshot, int]:
        result = self.client.get_item(
            self.table_name, Key={"queue_id": self.queue_key}, ConsistentRead=True
        )
        if not result.is_success:
            raise RetryStoreError(f"Failed to load retry queue: {result.message}")
        item: Dict[str, Any] = result.data or {}
        version = int(item.get("version", 0))
        return snapshot_from_dict(item), version

    def _write(
        self, snapshot: QueueSnapshot, version: int, conditional: bool = True
    ) -> bool:
        data = snapshot.to_dict()
        item = {
            "queue_id": self.queue_key,
            PENDING_KEY: data[PENDING_KEY],
            DEAD_LETTER_KEY: data[DEAD_LETTER_KEY],
            "version": version + 1,
        }
        kwargs: Dict[str, Any] = {}
        if conditional:
            kwargs["ConditionExpression"] = (
                "attribute_not_exists(queue_id) OR version = :expected"
            )
            kwargs["ExpressionAttributeValues"] = {
                ":expected": serialize_value(version)
            }

        result = self.client.put_item(self.table_name, Item=item, **kwargs)
        if result.is_success:
            return True
        if result.error_code == CONDITIONAL_CHECK_FAILED:
            return False
        raise RetryStoreError(f"Failed to save retry queue: {result.message}")

    def load(self) -> QueueSnapshot:
        snapshot, _ = self._read()
        return snapshot

    def save(self, snapshot: QueueSnapshot) -> None:
        _, version = self._read()
        self._write(snapshot, version, conditional=False)

    def update(self, mutator: Callable[[QueueSnapshot], T]) -> T:
        for attempt in range(self.max_conflict_retries + 1):
            snapshot, version = self._read()
            result = mutator(snapshot)
            if self._write(snapshot, version):
                return result
            logger.info(
                "retry_queue_write_conflict",
                queue_key=self.queue_key,
                attempt=attempt + 1,
            )
        raise RetryStoreError(
            f"Retry queue update lost {self.max_conflict_retries + 1} write races"
        )
