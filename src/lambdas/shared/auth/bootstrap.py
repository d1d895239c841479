"""One-time admin bootstrap.

The first authenticated user to call grant_admin while no admin exists
becomes admin. Once any admin row exists the grant is refused for everyone,
including existing admins.

Two checks make this grant-once:
1. count_role_holders(ADMIN) == 0
2. a conditional put of the BOOTSTRAP/ADMIN marker row

Two callers racing past check 1 both attempt check 2; DynamoDB lets exactly
one of them create the marker.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from src.lambdas.shared.auth.audit import role_assigned_by
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.roles import count_role_holders, grant_role
from src.lambdas.shared.dynamodb import format_timestamp, put_item_if_not_exists
from src.lambdas.shared.logging_utils import get_safe_error_info, mask_identifier

logger = logging.getLogger(__name__)

BOOTSTRAP_PK = "BOOTSTRAP"
BOOTSTRAP_SK = "ADMIN"
ADMIN_EXISTS_REASON = "Admin already exists"


class BootstrapResult(BaseModel):
    granted: bool
    reason: str | None = None


def bootstrap_admin(table: Any, user_id: str, now: datetime | None = None) -> BootstrapResult:
    """Grant admin to user_id iff no admin has ever been bootstrapped.

    Raises:
        botocore.exceptions.ClientError: If the store fails (nothing granted)
    """
    now = now or datetime.now(UTC)

    existing = count_role_holders(table, Role.ADMIN)
    if existing > 0:
        logger.info("Admin bootstrap refused", extra={"existing_admins": existing})
        return BootstrapResult(granted=False, reason=ADMIN_EXISTS_REASON)

    marker = {
        "PK": BOOTSTRAP_PK,
        "SK": BOOTSTRAP_SK,
        "user_id": user_id,
        "created_at": format_timestamp(now),
        "entity_type": "ADMIN_BOOTSTRAP",
    }
    if not put_item_if_not_exists(table, marker):
        logger.info("Admin bootstrap lost race to another caller")
        return BootstrapResult(granted=False, reason=ADMIN_EXISTS_REASON)

    try:
        grant_role(
            table,
            user_id,
            Role.ADMIN,
            assigned_by=role_assigned_by("bootstrap", user_id),
            now=now,
        )
    except Exception as e:
        # Release the marker so a later caller can retry the bootstrap
        logger.error("Admin role write failed after marker", extra=get_safe_error_info(e))
        table.delete_item(Key={"PK": BOOTSTRAP_PK, "SK": BOOTSTRAP_SK})
        raise

    logger.info("Admin bootstrapped", extra={"user_id_prefix": mask_identifier(user_id)})
    return BootstrapResult(granted=True)
