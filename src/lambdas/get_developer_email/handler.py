"""Reveal a developer's email address to an admin.

Gates, in order:
    verify_identity -> require_role(admin) -> body validation
        -> rate limit (50/hour per admin)

The lookup is audited. A failed audit write is logged at ERROR and the
email is still returned.

    POST {"userId": "..."}  ->  200 {"email": "dev@example.com"}
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder
from pydantic import BaseModel, Field

from src.lambdas.shared.auth.audit import record_audit_entry
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import get_profile
from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.errors import NotFound
from src.lambdas.shared.logging_utils import mask_identifier
from src.lambdas.shared.middleware.auth_middleware import verify_identity
from src.lambdas.shared.middleware.rate_limit import enforce_rate_limit
from src.lambdas.shared.middleware.require_role import require_role
from src.lambdas.shared.models.audit_log_entry import VIEW_DEVELOPER_EMAIL
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

RATE_LIMIT_ACTION = "get_developer_email"


class DeveloperEmailRequest(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1, max_length=128)

    model_config = {"populate_by_name": True}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("get_developer_email")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    table = get_store_table()

    identity = verify_identity(event)
    require_role(table, identity, Role.ADMIN)
    # Malformed bodies must not spend the hourly budget
    request = DeveloperEmailRequest.model_validate(parse_json_body(event))
    enforce_rate_limit(
        table,
        identity.user_id,
        RATE_LIMIT_ACTION,
        message="Rate limit exceeded. Maximum 50 requests per hour.",
    )

    profile = get_profile(table, request.user_id)
    if profile is None:
        logger.info(
            "Profile not found",
            extra={"user_id_prefix": mask_identifier(request.user_id)},
        )
        raise NotFound("User not found")

    record_audit_entry(
        table,
        admin_id=identity.user_id,
        action=VIEW_DEVELOPER_EMAIL,
        target_id=request.user_id,
    )

    return json_response(200, {"email": profile.email})
