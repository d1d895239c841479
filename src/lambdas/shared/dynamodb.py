"""
DynamoDB Helper Module
======================

Provides DynamoDB table operations with retry configuration for the app store.

For On-Call Engineers:
    - If you see `ProvisionedThroughputExceededException`, check the CloudWatch
      alarm for write throttles. Table uses on-demand billing.
    - Retry logic handles transient failures automatically (3 attempts with backoff).

For Developers:
    - All functions use parameterized expressions to prevent NoSQL injection.
    - Single-table design: PK/SK plus one overloaded GSI named GSI1
      (GSI1PK/GSI1SK). Key prefixes live on the models in shared/models.
    - Timestamps used in sort keys MUST come from format_timestamp() so that
      string comparison equals time comparison.

Security Notes:
    - No user input is directly interpolated into expressions.
"""

import logging
import os
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr
from botocore.config import Config
from botocore.exceptions import ClientError

from src.lambdas.shared.logging_utils import get_safe_error_info

logger = logging.getLogger(__name__)

# Retry configuration for transient failures
# On-Call Note: Increase max_attempts if seeing intermittent throttling
RETRY_CONFIG = Config(
    retries={
        "max_attempts": 3,
        "mode": "adaptive",
    },
    connect_timeout=5,
    read_timeout=10,
)

GSI1_NAME = "GSI1"

# Fixed-width, always includes microseconds and a Z suffix
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def get_dynamodb_resource(region_name: str | None = None) -> Any:
    """
    Get a DynamoDB resource with retry configuration.

    Args:
        region_name: AWS region (defaults to AWS_DEFAULT_REGION env var)

    Returns:
        boto3 DynamoDB resource
    """
    region = (
        region_name
        or os.environ.get("AWS_DEFAULT_REGION")
        or os.environ.get("AWS_REGION")
    )
    if not region:
        raise ValueError(
            "AWS_DEFAULT_REGION or AWS_REGION environment variable must be set"
        )

    return boto3.resource(
        "dynamodb",
        region_name=region,
        config=RETRY_CONFIG,
    )


def get_table(table_name: str | None = None, region_name: str | None = None) -> Any:
    """
    Get a DynamoDB table resource.

    Args:
        table_name: Table name (defaults to APP_STORE_TABLE env var)
        region_name: AWS region

    Returns:
        boto3 DynamoDB Table resource
    """
    name = table_name or os.environ.get("APP_STORE_TABLE")
    if not name:
        raise ValueError(
            "Table name required: set APP_STORE_TABLE env var or pass table_name"
        )

    resource = get_dynamodb_resource(region_name)
    return resource.Table(name)


def format_timestamp(dt: datetime | None = None) -> str:
    """
    Format a datetime as a sortable UTC string.

    Example:
        >>> format_timestamp(datetime(2025, 1, 2, 3, 4, 5, tzinfo=UTC))
        '2025-01-02T03:04:05.000000Z'
    """
    if dt is None:
        dt = datetime.now(UTC)
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a timestamp produced by format_timestamp()."""
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)


def unique_sort_key(dt: datetime | None = None) -> str:
    """
    Build an append-only sort key: `{timestamp}#{nonce}`.

    The nonce keeps two writes in the same microsecond from overwriting each
    other, which would silently undercount rate-limit attempts.
    """
    return f"{format_timestamp(dt)}#{uuid.uuid4().hex[:12]}"


def parse_dynamodb_item(item: dict[str, Any]) -> dict[str, Any]:
    """
    Convert DynamoDB item to standard Python dict.

    Handles:
    - Decimal → int/float conversion for JSON serialization
    - Set → list conversion
    - Nested structures
    """
    if not item:
        return {}

    return {key: _convert_value(value) for key, value in item.items()}


def _convert_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        if value % 1 == 0:
            return int(value)
        return float(value)
    elif isinstance(value, set):
        return list(value)
    elif isinstance(value, dict):
        return {k: _convert_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_convert_value(v) for v in value]
    return value


def count_query(table: Any, **query_kwargs: Any) -> int:
    """
    Count items matching a query, following pagination.

    Uses Select=COUNT so no item data is read back.

    Args:
        table: DynamoDB Table resource
        **query_kwargs: Arguments passed through to Table.query

    Returns:
        Total number of matching items
    """
    total = 0
    response = table.query(Select="COUNT", **query_kwargs)
    total += int(response.get("Count", 0))

    while "LastEvaluatedKey" in response:
        response = table.query(
            Select="COUNT",
            ExclusiveStartKey=response["LastEvaluatedKey"],
            **query_kwargs,
        )
        total += int(response.get("Count", 0))

    return total


def query_all(table: Any, **query_kwargs: Any) -> list[dict[str, Any]]:
    """Run a query and return every page of items."""
    response = table.query(**query_kwargs)
    items = list(response.get("Items", []))

    while "LastEvaluatedKey" in response:
        response = table.query(
            ExclusiveStartKey=response["LastEvaluatedKey"],
            **query_kwargs,
        )
        items.extend(response.get("Items", []))

    return items


def delete_items_older_than(
    table: Any,
    entity_type: str,
    timestamp_attr: str,
    cutoff: datetime,
) -> int:
    """
    Delete every item of an entity type whose timestamp is before cutoff.

    Scans with a filter and deletes in batches. Safe to re-run: a second run
    over the same cutoff deletes nothing.

    Args:
        table: DynamoDB Table resource
        entity_type: Value of the `entity_type` attribute to sweep
        timestamp_attr: Attribute holding a format_timestamp() string
        cutoff: Items strictly older than this are deleted

    Returns:
        Number of items deleted
    """
    cutoff_str = format_timestamp(cutoff)
    scan_kwargs: dict[str, Any] = {
        "FilterExpression": Attr("entity_type").eq(entity_type)
        & Attr(timestamp_attr).lt(cutoff_str),
        "ProjectionExpression": "PK, SK",
    }

    deleted = 0
    response = table.scan(**scan_kwargs)

    while True:
        items = response.get("Items", [])
        if items:
            with table.batch_writer() as batch:
                for item in items:
                    batch.delete_item(Key={"PK": item["PK"], "SK": item["SK"]})
            deleted += len(items)

        if "LastEvaluatedKey" not in response:
            break
        response = table.scan(
            ExclusiveStartKey=response["LastEvaluatedKey"],
            **scan_kwargs,
        )

    logger.info(
        "Swept expired items",
        extra={
            "entity_type": entity_type,
            "cutoff": cutoff_str,
            "deleted": deleted,
        },
    )
    return deleted


def put_item_if_not_exists(table: Any, item: dict[str, Any]) -> bool:
    """
    Put an item only if an item with the same key doesn't exist.

    Returns:
        True if item was created, False if it already existed
    """
    try:
        table.put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(PK)",
        )
        return True
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            logger.debug(
                "Item already exists, skipping",
                extra={"entity_type": item.get("entity_type")},
            )
            return False
        logger.error(
            "Failed to put item",
            extra={
                "entity_type": item.get("entity_type"),
                **get_safe_error_info(e),
            },
        )
        raise
