"""Application catalog, submission and review service functions.

For On-Call Engineers:
    Applications are stored with PK=APP#{id}, SK=METADATA and indexed on
    GSI1 by STATUS#{status}. The public store lists GSI1PK=STATUS#published,
    the admin queue lists GSI1PK=STATUS#pending. Submission history rows
    share the application partition (SK=SUBMISSION#{timestamp}).

    APKs live in APK_BUCKET under {developer_id}/{application_id}/{file}.
    Uploads and downloads use presigned URLs; the Lambda never proxies bytes.

Security Notes:
    - Only published apps are visible to non-owners
    - Upload keys are always under the caller's own prefix
    - Download logging is best-effort and never blocks a download
"""

import logging
import uuid
from datetime import UTC, datetime
from typing import Any

from aws_xray_sdk.core import xray_recorder
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from src.lambdas.shared.dynamodb import GSI1_NAME, format_timestamp, query_all
from src.lambdas.shared.errors import NotFound
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_identifier
from src.lambdas.shared.models.application import (
    APPLICATION_ENTITY,
    APPLICATION_SK,
    PENDING,
    PUBLISHED,
    Application,
    ApplicationCreate,
    SubmissionHistory,
    app_pk,
    status_gsi_pk,
)
from src.lambdas.shared.models.download_log import DownloadLog

logger = logging.getLogger(__name__)

MAX_LIST_RESULTS = 100


@xray_recorder.capture("get_application")
def get_application(table: Any, application_id: str) -> Application | None:
    """Load an application by ID, or None."""
    response = table.get_item(Key={"PK": app_pk(application_id), "SK": APPLICATION_SK})
    item = response.get("Item")
    if not item or item.get("entity_type") != APPLICATION_ENTITY:
        return None
    return Application.from_dynamodb_item(item)


@xray_recorder.capture("list_applications")
def list_applications(table: Any, status: str, limit: int = MAX_LIST_RESULTS) -> list[Application]:
    """List applications in a status, newest first."""
    response = table.query(
        IndexName=GSI1_NAME,
        KeyConditionExpression=Key("GSI1PK").eq(status_gsi_pk(status)),
        ScanIndexForward=False,
        Limit=limit,
    )
    return [Application.from_dynamodb_item(item) for item in response.get("Items", [])]


def can_view(application: Application, user_id: str | None, is_admin: bool) -> bool:
    """Published apps are public; others only to their developer or an admin."""
    if application.status == PUBLISHED:
        return True
    return is_admin or (user_id is not None and user_id == application.developer_id)


@xray_recorder.capture("create_application")
def create_application(
    table: Any,
    developer_id: str,
    request: ApplicationCreate,
    now: datetime | None = None,
) -> tuple[Application, SubmissionHistory]:
    """Create a pending application and its first submission history row.

    Both rows are written in one transaction so a listing never exists
    without its submission record.
    """
    now = now or datetime.now(UTC)
    application_id = str(uuid.uuid4())

    application = Application(
        application_id=application_id,
        developer_id=developer_id,
        app_name=request.app_name,
        package_name=request.package_name,
        short_description=request.short_description,
        long_description=request.long_description,
        category=request.category,
        version_name=request.version_name,
        version_code=request.version_code,
        icon_url=request.icon_url,
        screenshots=request.screenshots,
        apk_file_path=apk_object_key(developer_id, application_id, request.apk_file_name),
        status=PENDING,
        created_at=now,
    )
    submission = SubmissionHistory(
        application_id=application_id,
        developer_id=developer_id,
        version_name=request.version_name,
        status=PENDING,
        submitted_at=now,
    )

    client = table.meta.client
    client.transact_write_items(
        TransactItems=[
            {
                "Put": {
                    "TableName": table.name,
                    "Item": application.to_dynamodb_item(),
                    "ConditionExpression": "attribute_not_exists(PK)",
                }
            },
            {
                "Put": {
                    "TableName": table.name,
                    "Item": submission.to_dynamodb_item(),
                }
            },
        ]
    )

    logger.info(
        "Created application",
        extra={
            "application_id": application_id,
            "developer_id_prefix": mask_identifier(developer_id),
            "category": application.category,
        },
    )
    return application, submission


@xray_recorder.capture("apply_review_decision")
def apply_review_decision(
    table: Any,
    application_id: str,
    status: str,
    reviewer_id: str,
    review_notes: str | None = None,
    now: datetime | None = None,
) -> Application:
    """Persist a review decision on the application and its pending submissions.

    Raises:
        NotFound: If the application does not exist
    """
    now = now or datetime.now(UTC)
    reviewed_at = format_timestamp(now)

    update_expression = "SET #status = :status, GSI1PK = :gsi1pk"
    values: dict[str, Any] = {
        ":status": status,
        ":gsi1pk": status_gsi_pk(status),
    }
    if status == PUBLISHED:
        update_expression += ", published_at = :published_at"
        values[":published_at"] = reviewed_at
    else:
        update_expression += " REMOVE published_at"

    try:
        response = table.update_item(
            Key={"PK": app_pk(application_id), "SK": APPLICATION_SK},
            UpdateExpression=update_expression,
            ConditionExpression="attribute_exists(PK)",
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues=values,
            ReturnValues="ALL_NEW",
        )
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
            raise NotFound("Application not found") from e
        raise

    _stamp_pending_submissions(table, application_id, status, reviewer_id, review_notes, reviewed_at)

    logger.info(
        "Review decision applied",
        extra={
            "application_id": application_id,
            "status": status,
            "reviewer_id_prefix": mask_identifier(reviewer_id),
        },
    )
    return Application.from_dynamodb_item(response["Attributes"])


def _stamp_pending_submissions(
    table: Any,
    application_id: str,
    status: str,
    reviewer_id: str,
    review_notes: str | None,
    reviewed_at: str,
) -> int:
    items = query_all(
        table,
        KeyConditionExpression=Key("PK").eq(app_pk(application_id))
        & Key("SK").begins_with("SUBMISSION#"),
        FilterExpression=Attr("status").eq(PENDING),
    )

    stamped = 0
    for item in items:
        update_expression = "SET #status = :status, reviewed_by = :reviewed_by, reviewed_at = :reviewed_at"
        values: dict[str, Any] = {
            ":status": status,
            ":reviewed_by": reviewer_id,
            ":reviewed_at": reviewed_at,
        }
        if review_notes:
            update_expression += ", review_notes = :review_notes"
            values[":review_notes"] = review_notes

        table.update_item(
            Key={"PK": item["PK"], "SK": item["SK"]},
            UpdateExpression=update_expression,
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues=values,
        )
        stamped += 1

    return stamped


def apk_object_key(developer_id: str, application_id: str, file_name: str) -> str:
    """S3 key under the developer's own prefix."""
    return f"{developer_id}/{application_id}/{file_name}"


def create_upload_url(s3_client: Any, bucket: str, key: str, expires_in: int) -> str:
    """Presigned PUT URL for an APK upload."""
    return s3_client.generate_presigned_url(
        "put_object",
        Params={
            "Bucket": bucket,
            "Key": key,
            "ContentType": "application/vnd.android.package-archive",
        },
        ExpiresIn=expires_in,
    )


def create_download_url(s3_client: Any, bucket: str, key: str, expires_in: int) -> str:
    """Presigned GET URL for an APK download."""
    file_name = key.rsplit("/", 1)[-1]
    return s3_client.generate_presigned_url(
        "get_object",
        Params={
            "Bucket": bucket,
            "Key": key,
            "ResponseContentDisposition": f'attachment; filename="{file_name}"',
        },
        ExpiresIn=expires_in,
    )


def record_download(
    table: Any,
    application: Application,
    user_id: str,
    user_agent: str | None,
    now: datetime | None = None,
) -> bool:
    """Log a download and bump the counter. Never raises.

    Returns:
        True if the download log was written
    """
    log = DownloadLog(
        application_id=application.application_id,
        user_id=user_id,
        apk_file_path=application.apk_file_path or "",
        user_agent=(user_agent or "")[:512] or None,
        downloaded_at=now or datetime.now(UTC),
    )
    try:
        table.put_item(Item=log.to_dynamodb_item())
        table.update_item(
            Key={"PK": application.pk, "SK": application.sk},
            UpdateExpression="ADD downloads :one",
            ExpressionAttributeValues={":one": 1},
        )
    except Exception as e:
        logger.warning(
            "Failed to log download",
            extra={"application_id": application.application_id, **get_safe_error_info(e)},
        )
        return False
    return True
