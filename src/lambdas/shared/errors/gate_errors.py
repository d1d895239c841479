"""Failure taxonomy for the gated-action pipeline.

Every gate (identity, role, rate limit, captcha) and every action executor
raises one of these to short-circuit a request. handle_request() converts them
into JSON error responses with the matching HTTP status, so handler bodies
never build error responses by hand.

    Unauthenticated  -> 401  missing or invalid caller credential
    Forbidden        -> 403  authenticated but lacking the required role
    RateLimited      -> 429  attempt count at or above the window threshold
    ValidationFailed -> 400  malformed or out-of-bounds input
    NotFound         -> 404  referenced entity does not exist
    UpstreamFailure  -> 500  dependency (email, captcha, database) errored
"""

from __future__ import annotations

from typing import Any

from src.lambdas.shared.errors.responses import ErrorCode


class GateError(Exception):
    """Base class: a request rejected with a known status and error code."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def headers(self) -> dict[str, str]:
        """Extra response headers for this failure."""
        return {}

    def body_extras(self) -> dict[str, Any]:
        """Extra top-level fields merged into the JSON error body."""
        return {}


class Unauthenticated(GateError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED
    default_message = "Unauthorized"


class Forbidden(GateError):
    status_code = 403
    code = ErrorCode.FORBIDDEN
    default_message = "Forbidden"


class RateLimited(GateError):
    status_code = 429
    code = ErrorCode.RATE_LIMIT_EXCEEDED
    default_message = "Rate limit exceeded"

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        limit: int = 0,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.retry_after = retry_after
        self.limit = limit
        super().__init__(message, details)

    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}

    def body_extras(self) -> dict[str, Any]:
        return {"retryAfter": self.retry_after}


class ValidationFailed(GateError):
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request"


class NotFound(GateError):
    status_code = 404
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class UpstreamFailure(GateError):
    status_code = 500
    code = ErrorCode.UPSTREAM_ERROR
    default_message = "Upstream service failure"
