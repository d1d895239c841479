"""Send the "submission received" email to the calling developer.

    POST {"email"?, "appName", "versionName", "submittedAt"}
    200 {"sent": true}

The recipient is always the caller's own verified address. A body `email`
that names anyone else is refused, so this endpoint cannot be used to send
mail to arbitrary addresses.
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

from src.lambdas.notification.sendgrid_service import EmailServiceError
from src.lambdas.notification.validation import SubmissionConfirmationRequest
from src.lambdas.shared.dependencies import get_email_service
from src.lambdas.shared.errors import Forbidden, UpstreamFailure, ValidationFailed
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_email
from src.lambdas.shared.middleware.auth_middleware import verify_identity
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("send_submission_confirmation")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    identity = verify_identity(event)
    request = SubmissionConfirmationRequest.model_validate(parse_json_body(event))

    if not identity.email:
        raise ValidationFailed("Account has no email address")

    if request.email and request.email.lower() != identity.email.lower():
        raise Forbidden("Confirmation can only be sent to your own email address")

    logger.info("Sending submission confirmation", extra={"to": mask_email(identity.email)})

    try:
        sent = get_email_service().send_submission_confirmation(
            to_email=identity.email,
            app_name=request.app_name,
            version_name=request.version_name,
            submitted_at=request.submitted_at,
        )
    except EmailServiceError as e:
        logger.error("Submission confirmation email failed", extra=get_safe_error_info(e))
        raise UpstreamFailure("Failed to send email") from e

    if not sent:
        raise UpstreamFailure("Failed to send email")

    return json_response(200, {"sent": True})
