"""Event helper utilities for API Gateway Proxy Integration events.

Provides case-insensitive header lookup, HTTP method resolution and
JSON body parsing for Lambda handlers operating on raw API Gateway event dicts.
"""

import base64
from typing import Any

import orjson

from src.lambdas.shared.errors import ValidationFailed


def get_header(event: dict, name: str, default: str | None = None) -> str | None:
    """Get a header value with case-insensitive lookup.

    API Gateway v2 lowercases header names but v1 and test events may not,
    so the lookup normalizes both sides.
    """
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return default


def get_http_method(event: dict) -> str:
    """Get the HTTP method for API Gateway v1 or v2 events."""
    method = event.get("httpMethod")
    if not method:
        method = event.get("requestContext", {}).get("http", {}).get("method", "")
    return method.upper()


def parse_json_body(event: dict) -> dict[str, Any]:
    """Parse the request body as a JSON object.

    An absent body parses as an empty object so handlers that take no input
    (grant_admin) accept bare POSTs.

    Raises:
        ValidationFailed: If the body is not valid JSON or not an object.
    """
    raw = event.get("body")
    if raw is None or raw == "":
        return {}

    if isinstance(raw, dict):
        return raw

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw)
        except ValueError as e:
            raise ValidationFailed("Invalid request body") from e

    try:
        body = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise ValidationFailed("Request body must be valid JSON") from e

    if not isinstance(body, dict):
        raise ValidationFailed("Request body must be a JSON object")

    return body
