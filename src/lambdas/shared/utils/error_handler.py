"""Top-level request runner for the gated-action Lambda handlers.

Wraps handler functions so that gate failures short-circuit into structured
error responses:

    GateError subclasses     -> their own status (401/403/404/429/400/500)
    pydantic ValidationError -> 400 with the first validation message
    anything else            -> 500, error type logged, no details returned

CORS preflight (OPTIONS) is answered before the handler runs, and every
response leaving this function carries CORS and security headers.

Usage:
    from src.lambdas.shared.utils.error_handler import handle_request

    def lambda_handler(event, context):
        return handle_request(_handle, event, context)

    def _handle(event, context):
        identity = verify_identity(event)
        require_role(table, identity, Role.ADMIN)
        ...
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import ValidationError

from src.lambdas.shared.errors import GateError, error_response, internal_error
from src.lambdas.shared.errors.responses import ErrorCode
from src.lambdas.shared.logging_utils import get_safe_error_info, sanitize_for_log
from src.lambdas.shared.middleware.security_headers import (
    add_security_headers,
    get_preflight_response,
)
from src.lambdas.shared.utils.event_helpers import get_http_method

logger = logging.getLogger(__name__)

HandlerFn = Callable[[dict[str, Any], Any], dict[str, Any]]


def get_request_id(context: Any) -> str:
    """Lambda request ID, or "local" when invoked without a context."""
    return getattr(context, "aws_request_id", None) or "local"


def first_validation_message(exc: ValidationError) -> str:
    """Human-readable message for the first pydantic error."""
    return first_error_message(exc.errors())


def first_error_message(errors: Sequence[Any]) -> str:
    """Human-readable message for the first entry of a pydantic error list.

    Custom validators raise ValueError("Invalid email format"); pydantic
    prefixes those with "Value error, " which is stripped here. FastAPI's
    RequestValidationError carries the same list.
    """
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    loc = first.get("loc") or ()
    if first.get("type") == "missing" and loc:
        return f"{loc[-1]} is required"
    return message


def handle_request(handler_fn: HandlerFn, event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Execute a handler function with structured error handling.

    Args:
        handler_fn: Handler accepting (event, context) and returning a
            proxy integration response dict.
        event: API Gateway Proxy Integration event dict.
        context: Lambda context object.

    Returns:
        Proxy integration response dict with CORS and security headers.
    """
    if get_http_method(event) == "OPTIONS":
        return get_preflight_response()

    request_id = get_request_id(context)

    try:
        response = handler_fn(event, context)
    except GateError as exc:
        response = error_response(
            exc.status_code,
            exc.message,
            exc.code,
            request_id,
            details=exc.details,
            extra_body=exc.body_extras(),
        )
        response["headers"].update(exc.headers())
    except ValidationError as exc:
        message = first_validation_message(exc)
        logger.info(
            "Request validation failed",
            extra={
                "request_id": request_id,
                "error_count": len(exc.errors()),
                "validation_message": sanitize_for_log(message),
            },
        )
        response = error_response(
            400,
            message,
            ErrorCode.VALIDATION_ERROR,
            request_id,
            log_error=False,
        )
    except Exception as exc:
        logger.exception(
            "Unhandled exception in handler",
            extra={"request_id": request_id, **get_safe_error_info(exc)},
        )
        response = internal_error(request_id)

    return add_security_headers(response)
