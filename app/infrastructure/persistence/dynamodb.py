"""DynamoDB-backed RecordStore.

Each logical table maps to a DynamoDB table named ``{prefix}{table}`` with
partition key ``id``. Conditional updates are expressed as DynamoDB
ConditionExpressions, so the compare-and-swap holds across instances.
"""

import uuid
from typing import Any, Dict, List, Mapping, Optional

from infrastructure.clients.aws.dynamodb import DynamoDBClient, serialize_value
from infrastructure.logging import get_module_logger
from infrastructure.persistence.store import DuplicateRecordError, Record

logger = get_module_logger()

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class RecordStoreError(Exception):
    """Raised when DynamoDB rejects a call for reasons other than a guard."""


class DynamoDBRecordStore:
    """RecordStore over DynamoDB tables keyed by ``id``.

    Args:
        client: DynamoDBClient used for all calls
        table_prefix: Prefix applied to every logical table name
    """

    def __init__(self, client: DynamoDBClient, table_prefix: str = "") -> None:
        self.client = client
        self.table_prefix = table_prefix

    def _name(self, table: str) -> str:
        return f"{self.table_prefix}{table}"

    def get(self, table: str, record_id: str) -> Optional[Record]:
        result = self.client.get_item(
            self._name(table), Key={"id": record_id}, ConsistentRead=True
        )
        if not result.is_success:
            raise RecordStoreError(result.message)
        return result.data

    def find(self, table: str, **filters: Any) -> List[Record]:
        kwargs: Dict[str, Any] = {}
        if filters:
            names: Dict[str, str] = {}
            values: Dict[str, Any] = {}
            clauses = []
            for index, (field, value) in enumerate(sorted(filters.items())):
                names[f"#f{index}"] = field
                values[f":f{index}"] = serialize_value(value)
                clauses.append(f"#f{index} = :f{index}")
            kwargs = {
                "FilterExpression": " AND ".join(clauses),
                "ExpressionAttributeNames": names,
                "ExpressionAttributeValues": values,
            }
        result = self.client.scan(self._name(table), **kwargs)
        if not result.is_success:
            raise RecordStoreError(result.message)
        return result.data or []

    def find_one(self, table: str, **filters: Any) -> Optional[Record]:
        matches = self.find(table, **filters)
        return matches[0] if matches else None

    def insert(self, table: str, record: Record) -> Record:
        stored = dict(record)
        stored.setdefault("id", str(uuid.uuid4()))
        result = self.client.put_item(
            self._name(table),
            Item=stored,
            ConditionExpression="attribute_not_exists(id)",
        )
        if result.is_success:
            return stored
        if result.error_code == CONDITIONAL_CHECK_FAILED:
            raise DuplicateRecordError(f"{table}/{stored['id']} already exists")
        raise RecordStoreError(result.message)

    def update(
        self,
        table: str,
        record_id: str,
        changes: Mapping[str, Any],
        where: Optional[Mapping[str, Any]] = None,
        where_not: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        if not changes:
            return self.get(table, record_id) is not None

        names: Dict[str, str] = {"#pk": "id"}
        values: Dict[str, Any] = {}
        assignments = []
        for index, (field, value) in enumerate(changes.items()):
            names[f"#s{index}"] = field
            values[f":s{index}"] = serialize_value(value)
            assignments.append(f"#s{index} = :s{index}")

        conditions = ["attribute_exists(#pk)"]
        for index, (field, value) in enumerate((where or {}).items()):
            names[f"#w{index}"] = field
            values[f":w{index}"] = serialize_value(value)
            conditions.append(f"#w{index} = :w{index}")
        for index, (field, value) in enumerate((where_not or {}).items()):
            names[f"#n{index}"] = field
            values[f":n{index}"] = serialize_value(value)
            conditions.append(f"(attribute_not_exists(#n{index}) OR #n{index} <> :n{index})")

        result = self.client.update_item(
            self._name(table),
            Key={"id": record_id},
            UpdateExpression="SET " + ", ".join(assignments),
            ConditionExpression=" AND ".join(conditions),
            ExpressionAttributeNames=names,
            ExpressionAttributeValues=values,
        )
        if result.is_success:
            return True
        if result.error_code == CONDITIONAL_CHECK_FAILED:
            logger.info(
                "record_update_condition_failed", table=table, record_id=record_id
            )
            return False
        raise RecordStoreError(result.message)

    def delete(self, table: str, record_id: str) -> bool:
        result = self.client.delete_item(
            self._name(table),
            Key={"id": record_id},
            ConditionExpression="attribute_exists(id)",
        )
        if result.is_success:
            return True
        if result.error_code == CONDITIONAL_CHECK_FAILED:
            return False
        raise RecordStoreError(result.message)
