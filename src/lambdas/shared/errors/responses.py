"""
Standardized Error Response Helper
==================================

Provides consistent error response formatting across all Lambda functions.

For On-Call Engineers:
    Error codes and their meanings:
    - UNAUTHORIZED: Missing or invalid bearer token
    - FORBIDDEN: Caller lacks the required role (admin, developer)
    - RATE_LIMIT_EXCEEDED: Too many attempts in the current window
    - VALIDATION_ERROR: Input validation failure
    - NOT_FOUND: Resource not found
    - UPSTREAM_ERROR: SendGrid, hCaptcha or DynamoDB call failed
    - INTERNAL_ERROR: Unexpected server error

    Search logs by error code:
    aws logs filter-log-events \
      --log-group-name /aws/lambda/dev-app-store-get-developer-email \
      --filter-pattern "FORBIDDEN"

For Developers:
    - Raise a GateError subclass inside handlers; handle_request() calls
      error_response() for you
    - Include request_id from Lambda context for correlation

Security Notes:
    - Never expose internal error details to end users
    - request_id enables correlation without exposing internals
"""

import json
import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for machine-readable error handling."""

    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def error_response(
    status_code: int,
    message: str,
    code: str | ErrorCode,
    request_id: str,
    details: dict[str, Any] | None = None,
    extra_body: dict[str, Any] | None = None,
    log_error: bool = True,
) -> dict[str, Any]:
    """
    Create a standardized error response for Lambda API responses.

    Body format:
    {
        "error": "Human readable message",
        "code": "MACHINE_READABLE_CODE",
        "request_id": "lambda-request-id-123",
        "details": {}
    }

    Args:
        status_code: HTTP status code (400, 401, 403, 404, 429, 500)
        message: Human-readable error message (shown to the user as-is)
        code: Machine-readable error code
        request_id: Lambda request ID for correlation
        details: Additional structured details returned to the client
        extra_body: Extra top-level fields (e.g. "allowed", "retryAfter")
        log_error: Whether to log the error (default True)

    Returns:
        Lambda-compatible response dict with statusCode and JSON body
    """
    error_code = code.value if isinstance(code, ErrorCode) else code

    body: dict[str, Any] = {
        "error": message,
        "code": error_code,
        "request_id": request_id,
    }
    if details:
        body["details"] = details
    if extra_body:
        body.update(extra_body)

    # Log error metadata only - details may carry user-provided values
    if log_error:
        log_level = logging.ERROR if status_code >= 500 else logging.INFO
        logger.log(
            log_level,
            message,
            extra={
                "status_code": status_code,
                "error_code": error_code,
                "request_id": request_id,
            },
        )

    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
            "X-Request-Id": request_id,
        },
        "body": json.dumps(body),
    }


def validation_error(
    message: str,
    request_id: str,
    field: str | None = None,
) -> dict[str, Any]:
    """Create a 400 validation error response."""
    return error_response(
        400,
        message,
        ErrorCode.VALIDATION_ERROR,
        request_id,
        details={"field": field} if field else None,
    )


def internal_error(
    request_id: str,
    message: str = "Internal server error",
) -> dict[str, Any]:
    """
    Create a 500 internal server error response.

    Security Note:
        No details are returned; use request_id to find the server-side log.
    """
    logger.error(
        f"Internal error: {message}",
        extra={"request_id": request_id},
    )

    return error_response(
        500,
        message,
        ErrorCode.INTERNAL_ERROR,
        request_id,
        log_error=False,
    )
