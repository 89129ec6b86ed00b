"""DynamoDB client for AWS operations.

Provides access to the DynamoDB operations the record, retry and
idempotency stores need, with OperationResult return types and plain
Python values in and out.
"""

import json
from decimal import Decimal
from typing import Any, Dict, Optional

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer  # type: ignore

from infrastructure.clients.aws.executor import execute_aws_api_call
from infrastructure.clients.aws.session_provider import SessionProvider
from infrastructure.logging import get_module_logger
from infrastructure.operations.result import OperationResult

logger = get_module_logger()

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _to_dynamo_numbers(value: Any) -> Any:
    # TypeSerializer rejects float
    return json.loads(json.dumps(value, default=str), parse_float=Decimal)


def _from_dynamo_numbers(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo_numbers(v) for v in value]
    return value


def serialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a plain dict to DynamoDB attribute-value format."""
    prepared = _to_dynamo_numbers(item)
    return {key: _serializer.serialize(value) for key, value in prepared.items()}


def deserialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a DynamoDB attribute-value dict to plain Python values."""
    return {
        key: _from_dynamo_numbers(_deserializer.deserialize(value))
        for key, value in item.items()
    }


def serialize_value(value: Any) -> Dict[str, Any]:
    return _serializer.serialize(_to_dynamo_numbers(value))


class DynamoDBClient:
    """Client for DynamoDB operations.

    All methods return OperationResult for consistent error handling.

    Args:
        session_provider: SessionProvider instance for region/endpoint config
    """

    def __init__(self, session_provider: SessionProvider, client: Any = None) -> None:
        self._session_provider = session_provider
        self._client = client
        self._service_name = "dynamodb"
        self._logger = logger.bind(component="dynamodb_client")

    def _call(self, method: str, **kwargs) -> OperationResult:
        return execute_aws_api_call(
            self._service_name,
            method,
            client=self._client,
            **self._session_provider.build_client_kwargs(),
            **kwargs,
        )

    def get_item(
        self, table_name: str, Key: Dict[str, Any], **kwargs
    ) -> OperationResult:
        """Get an item; ``data`` is the deserialized item or None."""
        result = self._call(
            "get_item", TableName=table_name, Key=serialize_item(Key), **kwargs
        )
        if result.is_success:
            raw = result.data.get("Item") if result.data else None
            result.data = deserialize_item(raw) if raw else None
        return result

    def put_item(
        self, table_name: str, Item: Dict[str, Any], **kwargs
    ) -> OperationResult:
        """Put an item. Pass ConditionExpression for conditional writes."""
        return self._call(
            "put_item", TableName=table_name, Item=serialize_item(Item), **kwargs
        )

    def update_item(
        self, table_name: str, Key: Dict[str, Any], **kwargs
    ) -> OperationResult:
        """Update an item (UpdateExpression, ConditionExpression, etc.)."""
        return self._call(
            "update_item", TableName=table_name, Key=serialize_item(Key), **kwargs
        )

    def delete_item(
        self, table_name: str, Key: Dict[str, Any], **kwargs
    ) -> OperationResult:
        return self._call(
            "delete_item", TableName=table_name, Key=serialize_item(Key), **kwargs
        )

    def scan(
        self, table_name: str, **kwargs
    ) -> OperationResult:
        """Scan a whole table, following pagination; ``data`` is a list of items."""
        items = []
        start_key: Optional[Dict[str, Any]] = None
        while True:
            params = dict(kwargs)
            if start_key:
                params["ExclusiveStartKey"] = start_key
            result = self._call("scan", TableName=table_name, **params)
            if not result.is_success:
                return result
            page = result.data or {}
            items.extend(deserialize_item(item) for item in page.get("Items", []))
            start_key = page.get("LastEvaluatedKey")
            if not start_key:
                break
        return OperationResult.success(data=items, message="dynamodb.scan succeeded")
