"""
App Store API Handler
=====================

FastAPI application behind API Gateway serving the public catalog, developer
submission, secure APK download and the admin review queue. Routes live in
router.py.

For On-Call Engineers:
    404 "Route not found" on a route that exists usually means API Gateway
    forwarded a path with a base path Mangum does not strip. Check rawPath
    in the request logs.

    Upload/download URLs fail with SignatureDoesNotMatch when the Lambda
    role lacks s3:PutObject/s3:GetObject on APK_BUCKET.

For Developers:
    - Uses Mangum adapter for API Gateway HTTP API events
    - Gate failures (GateError) map to the same error body as the
      plain-Lambda handlers (see shared/errors/responses.py)
    - Request body validation errors return 400 with the first message
"""

# X-Ray must be imported and patched before other imports
from aws_xray_sdk.core import patch_all  # noqa: E402

patch_all()

import logging
import os
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from mangum import Mangum
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.lambdas.shared.errors import (
    ErrorCode,
    GateError,
    error_response,
    internal_error,
    validation_error,
)
from src.lambdas.shared.logging_utils import get_safe_error_info, sanitize_for_log
from src.lambdas.shared.middleware.security_headers import (
    CORS_ALLOWED_ORIGIN,
    CORS_HEADERS,
    get_api_headers,
)
from src.lambdas.shared.utils.error_handler import first_error_message, get_request_id
from src.lambdas.store.router import include_routers

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

app = FastAPI(
    title="App Store API",
    description="Catalog, submission and download endpoints for the APK store",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ALLOWED_ORIGIN],
    allow_credentials=False,  # Not needed for Bearer token auth
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
    expose_headers=[
        h.strip() for h in CORS_HEADERS["Access-Control-Expose-Headers"].split(",")
    ],
    max_age=600,
)

include_routers(app)


def _request_id(request: Request) -> str:
    # Mangum exposes the Lambda context on the ASGI scope
    return get_request_id(request.scope.get("aws.context"))


def _as_response(lambda_response: dict[str, Any]) -> Response:
    return Response(
        content=lambda_response["body"],
        status_code=lambda_response["statusCode"],
        headers=lambda_response["headers"],
        media_type="application/json",
    )


@app.exception_handler(GateError)
async def gate_error_handler(request: Request, exc: GateError) -> Response:
    response = error_response(
        exc.status_code,
        exc.message,
        exc.code,
        _request_id(request),
        details=exc.details,
        extra_body=exc.body_extras(),
    )
    response["headers"].update(exc.headers())
    return _as_response(response)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> Response:
    errors = exc.errors()
    message = first_error_message(errors)
    loc = errors[0].get("loc") if errors else None
    field = str(loc[-1]) if loc else None
    return _as_response(validation_error(message, _request_id(request), field=field))


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError) -> Response:
    return _as_response(validation_error(first_error_message(exc.errors()), _request_id(request)))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 404:
        logger.info("No route", extra={"path": sanitize_for_log(request.url.path)})
        response = error_response(
            404, "Route not found", ErrorCode.NOT_FOUND, _request_id(request), log_error=False
        )
    elif exc.status_code == 405:
        response = error_response(
            405,
            "Method not allowed",
            ErrorCode.METHOD_NOT_ALLOWED,
            _request_id(request),
            log_error=False,
        )
    else:
        response = error_response(
            exc.status_code, str(exc.detail), ErrorCode.INTERNAL_ERROR, _request_id(request)
        )
    return _as_response(response)


@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers; unexpected exceptions become a bare 500."""
    try:
        response = await call_next(request)
    except Exception as e:
        logger.exception(
            "Unhandled exception in store API",
            extra={"request_id": _request_id(request), **get_safe_error_info(e)},
        )
        response = _as_response(internal_error(_request_id(request)))

    for header, value in get_api_headers().items():
        response.headers.setdefault(header, value)
    return response


# Mangum adapter for AWS Lambda
handler = Mangum(app, lifespan="off")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda entry point.

    Wraps the FastAPI app with Mangum for API Gateway compatibility.

    On-Call Note:
        If every route returns 500, check CloudWatch for the logged error
        type, then APP_STORE_TABLE and the Lambda's DynamoDB permissions.
    """
    logger.info(
        "Store API invoked",
        extra={
            "path": sanitize_for_log(event.get("rawPath", event.get("path", "unknown"))),
            "method": event.get("requestContext", {}).get("http", {}).get("method", "unknown"),
        },
    )

    return handler(event, context)
