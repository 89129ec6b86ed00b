"""AWS client layer.

Exports:
    DynamoDBClient: OperationResult-returning DynamoDB wrapper
    SessionProvider: Region/endpoint configuration for boto3 clients
    execute_aws_api_call: Low-level executor with retry and classification
"""

from infrastructure.clients.aws.dynamodb import (
    DynamoDBClient,
    deserialize_item,
    serialize_item,
    serialize_value,
)
from infrastructure.clients.aws.executor import execute_aws_api_call, get_boto3_client
from infrastructure.clients.aws.session_provider import SessionProvider

__all__ = [
    "DynamoDBClient",
    "SessionProvider",
    "execute_aws_api_call",
    "get_boto3_client",
    "serialize_item",
    "deserialize_item",
    "serialize_value",
]
