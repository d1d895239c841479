"""Login/signup attempt limiter.

Called by the auth page before every sign-in or sign-up attempt:

    POST {"identifier": "ip:1.2.3.4", "action": "login", "captchaToken": "..."}

    200 {"allowed": true, "remainingAttempts": 4}
    429 {"allowed": false, "error": "Too many attempts...", "retryAfter": 900}

When CAPTCHA_ENABLED=true the captcha token is verified before the attempt
is counted, so a bot without a valid token cannot burn a user's budget.
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder
from pydantic import BaseModel, Field, model_validator

from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.errors import ErrorCode, ValidationFailed
from src.lambdas.shared.middleware.hcaptcha import is_captcha_enabled, require_captcha
from src.lambdas.shared.middleware.rate_limit import (
    AUTH_ACTIONS,
    check_rate_limit,
    get_client_ip,
    get_rate_limit_headers,
)
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request

# Patch boto3 and httpx for X-Ray tracing
patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


class RateLimitAuthRequest(BaseModel):
    identifier: str = Field(..., max_length=320)
    action: str
    captcha_token: str | None = Field(None, alias="captchaToken")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def require_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not data.get("identifier") or not data.get("action"):
            raise ValueError("Missing identifier or action")
        return data


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("rate_limit_auth")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    request = RateLimitAuthRequest.model_validate(parse_json_body(event))

    if request.action not in AUTH_ACTIONS:
        raise ValidationFailed("Invalid action (must be 'login' or 'signup')")

    if is_captcha_enabled():
        require_captcha(request.captcha_token, get_client_ip(event))

    result = check_rate_limit(get_store_table(), request.identifier, request.action)
    headers = get_rate_limit_headers(result)

    if not result.allowed:
        minutes = max(1, (result.retry_after or 0) // 60)
        return json_response(
            429,
            {
                "allowed": False,
                "error": f"Too many attempts. Please try again in {minutes} minutes.",
                "code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
                "retryAfter": result.retry_after,
            },
            headers=headers,
        )

    return json_response(
        200,
        {"allowed": True, "remainingAttempts": result.remaining},
        headers=headers,
    )
