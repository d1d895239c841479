"""Fixed-window rate limiting backed by persisted attempt rows.

For On-Call Engineers:
    Every allowed attempt is one RateLimitAttempt row under
    PK=RATE#{identifier}#{action}. The count for a request is the number of
    rows with SK >= now - window, so any number of concurrent Lambda
    instances see the same count. Nothing is held in process memory.

    If DynamoDB errors while counting, the request is ALLOWED (fail open) and
    "Error checking rate limit" is logged at ERROR. A table outage must not
    lock every user out of login.

    Old rows are removed by the cleanup Lambda (sweep_rate_limit_attempts)
    with DynamoDB TTL on the `ttl` attribute as a backstop.

Security Notes:
    - Auth limits are keyed by the caller-supplied identifier (usually
      "ip:{address}" or an email) and the action, so login and signup have
      independent budgets
    - PII lookups are keyed by the admin's user ID
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from aws_xray_sdk.core import xray_recorder
from boto3.dynamodb.conditions import Key
from pydantic import BaseModel

from src.lambdas.shared.dynamodb import count_query, delete_items_older_than, format_timestamp
from src.lambdas.shared.errors import RateLimited
from src.lambdas.shared.logging_utils import (
    get_safe_error_info,
    log_expected_warning,
    mask_identifier,
)
from src.lambdas.shared.models.rate_limit_attempt import (
    ENTITY_TYPE,
    RateLimitAttempt,
    attempt_pk,
)
from src.lambdas.shared.utils.event_helpers import get_header

logger = logging.getLogger(__name__)

# Rate limits per action
DEFAULT_RATE_LIMITS = {
    # Auth actions, keyed by identifier
    "login": {"limit": 5, "window_seconds": 900},  # 5 per 15 minutes
    "signup": {"limit": 5, "window_seconds": 900},  # 5 per 15 minutes
    # Privileged PII lookup, keyed by admin user ID
    "get_developer_email": {"limit": 50, "window_seconds": 3600},  # 50 per hour
    # Default fallback
    "default": {"limit": 100, "window_seconds": 60},  # 100 per minute
}

AUTH_ACTIONS = frozenset(["login", "signup"])


class RateLimitResult(BaseModel):
    """Result of rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: str
    retry_after: int | None = None


def get_policy(action: str) -> tuple[int, int]:
    """Return (limit, window_seconds) for an action."""
    rate_config = DEFAULT_RATE_LIMITS.get(action, DEFAULT_RATE_LIMITS["default"])
    return rate_config["limit"], rate_config["window_seconds"]


def get_client_ip(event: dict[str, Any]) -> str:
    """Extract client IP from Lambda event.

    Args:
        event: Lambda event (API Gateway or Function URL)

    Returns:
        Client IP address or "unknown"
    """
    # API Gateway v2 (HTTP API)
    request_context = event.get("requestContext") or {}
    http_context = request_context.get("http") or {}
    if http_context.get("sourceIp"):
        return http_context["sourceIp"]

    # API Gateway v1 (REST API)
    identity = request_context.get("identity") or {}
    if identity.get("sourceIp"):
        return identity["sourceIp"]

    # X-Forwarded-For header (from ALB/API Gateway)
    forwarded_for = get_header(event, "x-forwarded-for")
    if forwarded_for:
        # Take the first IP (client's real IP)
        return forwarded_for.split(",")[0].strip()

    # Fallback
    return "unknown"


@xray_recorder.capture("check_rate_limit")
def check_rate_limit(
    table: Any,
    identifier: str,
    action: str = "default",
    custom_limit: int | None = None,
    custom_window: int | None = None,
    now: datetime | None = None,
) -> RateLimitResult:
    """Check if request is within rate limit, recording it if so.

    Counts rows for (identifier, action) stamped at or after now - window.
    Below the limit, exactly one new row stamped `now` is written.

    Args:
        table: DynamoDB Table resource
        identifier: Caller key (e.g. "ip:1.2.3.4", an email, a user ID)
        action: Action being performed (e.g., "login")
        custom_limit: Optional custom limit override
        custom_window: Optional custom window override (seconds)
        now: Evaluation time (defaults to the current UTC time)

    Returns:
        RateLimitResult with allowed status

    Example:
        result = check_rate_limit(table, "ip:1.2.3.4", "login")
        if not result.allowed:
            raise RateLimited(retry_after=result.retry_after)
    """
    default_limit, default_window = get_policy(action)
    limit = custom_limit or default_limit
    window_seconds = custom_window or default_window

    now = now or datetime.now(UTC)
    window_start = now - timedelta(seconds=window_seconds)
    reset_at = format_timestamp(now + timedelta(seconds=window_seconds))

    try:
        current_count = count_query(
            table,
            KeyConditionExpression=Key("PK").eq(attempt_pk(identifier, action))
            & Key("SK").gte(format_timestamp(window_start)),
            ConsistentRead=True,
        )
    except Exception as e:
        logger.error(
            "Error checking rate limit",
            extra={
                "action": action,
                **get_safe_error_info(e),
            },
        )
        # Allow on error (fail open)
        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=limit,
            reset_at=reset_at,
        )

    if current_count >= limit:
        log_expected_warning(
            logger,
            "Rate limit exceeded",
            extra={
                "identifier_prefix": mask_identifier(identifier),
                "action": action,
                "count": current_count,
                "limit": limit,
            },
        )
        return RateLimitResult(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=reset_at,
            retry_after=window_seconds,
        )

    _record_attempt(table, identifier, action, now, window_seconds)

    return RateLimitResult(
        allowed=True,
        limit=limit,
        remaining=limit - current_count - 1,  # -1 for current request
        reset_at=reset_at,
    )


def _record_attempt(
    table: Any,
    identifier: str,
    action: str,
    timestamp: datetime,
    window_seconds: int,
) -> None:
    """Append one attempt row. A failed write is logged, not raised."""
    attempt = RateLimitAttempt(
        identifier=identifier,
        action=action,
        attempted_at=timestamp,
        ttl_seconds=window_seconds * 2,
    )
    try:
        table.put_item(Item=attempt.to_dynamodb_item())
    except Exception as e:
        logger.error(
            "Error recording rate limit attempt",
            extra={"action": action, **get_safe_error_info(e)},
        )


def enforce_rate_limit(
    table: Any,
    identifier: str,
    action: str = "default",
    message: str | None = None,
    custom_limit: int | None = None,
    custom_window: int | None = None,
    now: datetime | None = None,
) -> RateLimitResult:
    """check_rate_limit() that raises RateLimited when denied."""
    result = check_rate_limit(
        table,
        identifier,
        action,
        custom_limit=custom_limit,
        custom_window=custom_window,
        now=now,
    )
    if not result.allowed:
        raise RateLimited(
            message or "Rate limit exceeded. Please try again later.",
            retry_after=result.retry_after or 60,
            limit=result.limit,
        )
    return result


def get_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Get rate limit headers for response.

    Args:
        result: Rate limit check result

    Returns:
        Dict of headers to add to response
    """
    headers = {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": result.reset_at,
    }

    if result.retry_after:
        headers["Retry-After"] = str(result.retry_after)

    return headers


def sweep_rate_limit_attempts(
    table: Any,
    retention_seconds: int,
    now: datetime | None = None,
) -> int:
    """Delete attempt rows older than the retention horizon.

    Retention must be at least the longest window in DEFAULT_RATE_LIMITS or
    live windows would be undercounted.

    Returns:
        Number of rows deleted
    """
    longest_window = max(cfg["window_seconds"] for cfg in DEFAULT_RATE_LIMITS.values())
    if retention_seconds < longest_window:
        raise ValueError(
            f"retention_seconds ({retention_seconds}) must be >= longest window ({longest_window})"
        )

    now = now or datetime.now(UTC)
    cutoff = now - timedelta(seconds=retention_seconds)
    return delete_items_older_than(table, ENTITY_TYPE, "attempted_at", cutoff)
