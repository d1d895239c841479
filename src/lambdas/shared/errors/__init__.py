"""Shared error types for Lambda handlers."""

from src.lambdas.shared.errors.auth_errors import InvalidRoleError
from src.lambdas.shared.errors.gate_errors import (
    Forbidden,
    GateError,
    NotFound,
    RateLimited,
    Unauthenticated,
    UpstreamFailure,
    ValidationFailed,
)
from src.lambdas.shared.errors.responses import (
    ErrorCode,
    error_response,
    internal_error,
    validation_error,
)

__all__ = [
    "ErrorCode",
    "error_response",
    "internal_error",
    "validation_error",
    "InvalidRoleError",
    "Forbidden",
    "GateError",
    "NotFound",
    "RateLimited",
    "Unauthenticated",
    "UpstreamFailure",
    "ValidationFailed",
]
