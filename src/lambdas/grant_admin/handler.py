"""First-admin bootstrap.

The first authenticated caller while no admin exists becomes admin. Every
call after that is refused, whatever the caller's roles.

    POST (no body)
    200 {"granted": true}
    403 {"granted": false, "reason": "Admin already exists"}
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

from src.lambdas.shared.auth.bootstrap import bootstrap_admin
from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.middleware.auth_middleware import verify_identity
from src.lambdas.shared.utils import json_response
from src.lambdas.shared.utils.error_handler import handle_request

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("grant_admin")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    identity = verify_identity(event)
    result = bootstrap_admin(get_store_table(), identity.user_id)

    if not result.granted:
        return json_response(403, result)
    return json_response(200, result)
