"""Standalone hCaptcha token check.

    POST {"token": "..."}  ->  200 {"success": true}

A rejected or missing token is a 400; an unreachable siteverify is a 500.
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all

from src.lambdas.shared.middleware.hcaptcha import require_captcha
from src.lambdas.shared.middleware.rate_limit import get_client_ip
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    body = parse_json_body(event)
    token = body.get("token")
    if token is not None and not isinstance(token, str):
        token = None

    require_captcha(token, get_client_ip(event))
    return json_response(200, {"success": True})
