"""Send a review decision email (admin only).

    POST {"email", "appName", "status": "published"|"rejected",
          "reviewNotes"?, "reviewedAt"}
    200 {"sent": true}

Validation errors (bad email shape, app name over 200 characters, unknown
status, notes over 5000 characters, missing reviewedAt) are 400s carrying
the first failing rule's message.
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

from src.lambdas.notification.sendgrid_service import EmailServiceError
from src.lambdas.notification.validation import StatusUpdateRequest
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.dependencies import get_email_service, get_store_table
from src.lambdas.shared.errors import UpstreamFailure
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_email
from src.lambdas.shared.middleware.auth_middleware import verify_identity
from src.lambdas.shared.middleware.require_role import require_role
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("send_status_update")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    identity = verify_identity(event)
    require_role(get_store_table(), identity, Role.ADMIN)

    request = StatusUpdateRequest.model_validate(parse_json_body(event))

    logger.info(
        "Sending status update",
        extra={"status": request.status, "to": mask_email(request.email)},
    )

    try:
        sent = get_email_service().send_status_update(
            to_email=request.email,
            app_name=request.app_name,
            status=request.status,
            reviewed_at=request.reviewed_at,
            review_notes=request.review_notes,
        )
    except EmailServiceError as e:
        logger.error("Status update email failed", extra=get_safe_error_info(e))
        raise UpstreamFailure("Failed to send email") from e

    if not sent:
        raise UpstreamFailure("Failed to send email")

    return json_response(200, {"sent": True})
