"""UserProfile storage.

Profiles mirror the auth provider's identity (id + email) so handlers can
resolve a developer's address without calling the provider's admin API.
They are written by the post-signup hook and read by admin flows. GSI1
indexes every profile under one partition so the admin directory is a single
newest-first query.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from boto3.dynamodb.conditions import Key

from src.lambdas.shared.dynamodb import GSI1_NAME
from src.lambdas.shared.logging_utils import mask_identifier
from src.lambdas.shared.models.user_profile import (
    PROFILE_GSI_PK,
    PROFILE_SK,
    UserProfile,
    profile_pk,
)

logger = logging.getLogger(__name__)

MAX_PROFILE_RESULTS = 100


def get_profile(table: Any, user_id: str) -> UserProfile | None:
    """Load a user's profile, or None if none was written."""
    response = table.get_item(Key={"PK": profile_pk(user_id), "SK": PROFILE_SK})
    item = response.get("Item")
    if not item:
        return None
    return UserProfile.from_dynamodb_item(item)


def put_profile(
    table: Any,
    user_id: str,
    email: str,
    display_name: str | None = None,
    now: datetime | None = None,
) -> UserProfile:
    """Create or overwrite a user's profile."""
    profile = UserProfile(
        user_id=user_id,
        email=email,
        display_name=display_name,
        created_at=now or datetime.now(UTC),
    )
    table.put_item(Item=profile.to_dynamodb_item())
    logger.info("Profile stored", extra={"user_id_prefix": mask_identifier(user_id)})
    return profile


def list_profiles(table: Any, limit: int = MAX_PROFILE_RESULTS) -> list[UserProfile]:
    """List profiles newest first."""
    response = table.query(
        IndexName=GSI1_NAME,
        KeyConditionExpression=Key("GSI1PK").eq(PROFILE_GSI_PK),
        ScanIndexForward=False,
        Limit=limit,
    )
    return [UserProfile.from_dynamodb_item(item) for item in response.get("Items", [])]
