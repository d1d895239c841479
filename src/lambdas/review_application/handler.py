"""Admin review decision: publish or reject a pending application.

Gates:
    verify_identity -> require_role(admin)

Action:
    1. Persist the new status on the application and its pending submission
       history rows (published_at is set on publish, cleared on reject)
    2. Audit the decision (best-effort)
    3. Email the developer (best-effort)

Steps 2 and 3 never undo or fail step 1.

    POST {"applicationId": "...", "status": "rejected", "reviewNotes": "..."}
    200 {"applicationId": "...", "status": "rejected", "notificationSent": true}
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder

from src.lambdas.notification.validation import ReviewDecisionRequest
from src.lambdas.shared.auth.audit import record_audit_entry
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import get_profile
from src.lambdas.shared.dependencies import get_email_service, get_store_table
from src.lambdas.shared.dynamodb import format_timestamp
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_identifier
from src.lambdas.shared.middleware.auth_middleware import verify_identity
from src.lambdas.shared.middleware.require_role import require_role
from src.lambdas.shared.models.application import Application
from src.lambdas.shared.models.audit_log_entry import REVIEW_APPLICATION
from src.lambdas.shared.utils import json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request
from src.lambdas.store.applications import apply_review_decision

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


@xray_recorder.capture("review_application")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    table = get_store_table()

    identity = verify_identity(event)
    require_role(table, identity, Role.ADMIN)

    request = ReviewDecisionRequest.model_validate(parse_json_body(event))
    now = datetime.now(UTC)

    application = apply_review_decision(
        table,
        request.application_id,
        request.status,
        reviewer_id=identity.user_id,
        review_notes=request.review_notes,
        now=now,
    )

    record_audit_entry(
        table,
        admin_id=identity.user_id,
        action=REVIEW_APPLICATION,
        target_id=application.application_id,
        metadata={"status": request.status},
        now=now,
    )

    sent = notify_developer(table, application, request.review_notes, format_timestamp(now))

    return json_response(
        200,
        {
            "applicationId": application.application_id,
            "status": application.status,
            "notificationSent": sent,
        },
    )


def notify_developer(
    table: Any,
    application: Application,
    review_notes: str | None,
    reviewed_at: str,
) -> bool:
    """Email the review decision to the developer. Never raises.

    Returns:
        True if the email was accepted by SendGrid
    """
    try:
        profile = get_profile(table, application.developer_id)
        if profile is None:
            logger.warning(
                "No profile for developer, skipping status email",
                extra={"developer_id_prefix": mask_identifier(application.developer_id)},
            )
            return False

        return get_email_service().send_status_update(
            to_email=profile.email,
            app_name=application.app_name,
            status=application.status,
            reviewed_at=reviewed_at,
            review_notes=review_notes,
        )
    except Exception as e:
        logger.error(
            "Failed to send status update email",
            extra={"application_id": application.application_id, **get_safe_error_info(e)},
        )
        return False
