"""Builders for API Gateway events and bearer tokens used by handler tests."""

import json
import os
import time
from typing import Any

import jwt


class FakeContext:
    aws_request_id = "test-request-id"
    function_name = "test-function"


def make_token(
    user_id: str = "user-123",
    email: str | None = "dev@example.com",
    expires_in: int = 3600,
    secret: str | None = None,
    audience: str = "authenticated",
) -> str:
    """HS256 token signed with the test JWT_SECRET."""
    now = int(time.time())
    payload: dict[str, Any] = {
        "sub": user_id,
        "iat": now,
        "exp": now + expires_in,
        "aud": audience,
    }
    if email is not None:
        payload["email"] = email
    return jwt.encode(payload, secret or os.environ["JWT_SECRET"], algorithm="HS256")


def make_event(
    method: str = "POST",
    path: str = "/",
    body: dict | str | None = None,
    token: str | None = None,
    headers: dict[str, str] | None = None,
    source_ip: str = "203.0.113.10",
) -> dict[str, Any]:
    """API Gateway HTTP API (v2) proxy event."""
    event_headers = {"content-type": "application/json"}
    if token:
        event_headers["authorization"] = f"Bearer {token}"
    if headers:
        event_headers.update(headers)

    if isinstance(body, dict):
        body = json.dumps(body)

    return {
        "version": "2.0",
        "routeKey": f"{method} {path}",
        "rawPath": path,
        "rawQueryString": "",
        "headers": event_headers,
        "requestContext": {
            "http": {"method": method, "path": path, "sourceIp": source_ip},
            "stage": "$default",
        },
        "body": body,
        "isBase64Encoded": False,
    }


def response_json(response: dict[str, Any]) -> Any:
    return json.loads(response["body"])
