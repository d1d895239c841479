"""Response builder utilities for API Gateway Proxy Integration responses.

Provides standardized success response construction using orjson for
serialization. Produces responses in the API Gateway Proxy Integration format:
    {"statusCode": int, "headers": dict, "body": str, "isBase64Encoded": bool}

Error responses are built by src.lambdas.shared.errors.error_response().
"""

from typing import Any

import orjson
from pydantic import BaseModel


def json_response(
    status_code: int,
    body: dict | list | BaseModel,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build a JSON API Gateway Proxy Integration response.

    Args:
        status_code: HTTP status code.
        body: Response body. Pydantic models are dumped by alias.
        headers: Additional response headers.

    Returns:
        API Gateway Proxy Integration response dict.
    """
    if isinstance(body, BaseModel):
        body = body.model_dump(mode="json", by_alias=True, exclude_none=True)

    response_headers = {"Content-Type": "application/json"}
    if headers:
        response_headers.update(headers)
    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": orjson.dumps(body).decode(),
        "isBase64Encoded": False,
    }
