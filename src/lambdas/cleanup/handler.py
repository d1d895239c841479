"""
Cleanup Lambda Handler
======================

EventBridge-triggered Lambda that deletes expired rows from the app store
table.

For On-Call Engineers:
    Runs daily via EventBridge scheduler.

    Purpose:
    - Deletes DownloadLog rows older than DOWNLOAD_RETENTION_DAYS (90)
    - Deletes RateLimitAttempt rows older than RATE_LIMIT_RETENTION_HOURS (24)

    Rate-limit rows also carry a `ttl` attribute, so DynamoDB TTL removes
    most of them first. This sweep covers tables where TTL is disabled.

    Common issues:
    - ValueError about retention: RATE_LIMIT_RETENTION_HOURS is shorter
      than the longest rate-limit window (1 hour). Raise it.
    - Timeouts: the sweep scans the whole table. Re-running is safe.

    Quick commands:
    # Check recent invocations
    aws logs tail /aws/lambda/${environment}-app-store-cleanup --since 1d

For Developers:
    Handler workflow:
    1. Scan for DOWNLOAD_LOG rows with downloaded_at < now - retention
    2. Scan for RATE_LIMIT_ATTEMPT rows with attempted_at < now - retention
    3. Batch-delete both and report counts

Security Notes:
    - Scan + BatchWriteItem on APP_STORE_TABLE only
    - No external API calls
"""

import logging
import os
from datetime import UTC, datetime, timedelta
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

from src.lambdas.shared.config import get_config
from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.dynamodb import delete_items_older_than, format_timestamp
from src.lambdas.shared.logging_utils import get_safe_error_info
from src.lambdas.shared.middleware.rate_limit import sweep_rate_limit_attempts
from src.lambdas.shared.models.download_log import ENTITY_TYPE as DOWNLOAD_LOG_ENTITY
from src.lambdas.shared.utils import json_response

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


@xray_recorder.capture("run_cleanup")
def run_cleanup(
    table: Any,
    download_retention_days: int,
    rate_limit_retention_hours: int,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Delete expired download logs and rate-limit attempts.

    Returns:
        {"success": True, "deleted": {...}, "cutoffDate": "..."} where
        cutoffDate is the download-log cutoff
    """
    now = now or datetime.now(UTC)
    download_cutoff = now - timedelta(days=download_retention_days)

    download_logs = delete_items_older_than(
        table, DOWNLOAD_LOG_ENTITY, "downloaded_at", download_cutoff
    )
    rate_limit_attempts = sweep_rate_limit_attempts(
        table, rate_limit_retention_hours * 3600, now=now
    )

    return {
        "success": True,
        "deleted": {
            "downloadLogs": download_logs,
            "rateLimitAttempts": rate_limit_attempts,
        },
        "cutoffDate": format_timestamp(download_cutoff),
    }


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Lambda handler for the scheduled cleanup.

    Args:
        event: EventBridge scheduled event
        context: Lambda context

    Returns:
        200 with the deletion counts, or 500 with {"success": false}
    """
    logger.info(
        "Cleanup Lambda invoked",
        extra={
            "event_source": event.get("source", "unknown"),
            "request_id": getattr(context, "aws_request_id", "local"),
        },
    )

    try:
        config = get_config()
        result = run_cleanup(
            get_store_table(),
            download_retention_days=config.download_retention_days,
            rate_limit_retention_hours=config.rate_limit_retention_hours,
        )
    except Exception as e:
        logger.error("Cleanup failed", extra=get_safe_error_info(e))
        return json_response(500, {"success": False, "error": "Cleanup failed"})

    logger.info("Cleanup completed", extra=result["deleted"])
    return json_response(200, result)
