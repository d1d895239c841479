"""Role assignment storage for RBAC.

Roles live as RoleAssignment rows (PK=USER#{id}, SK=ROLE#{role}) with GSI1
keyed by role. Every check re-queries the table; nothing is cached, so a
revoked role takes effect on the next request.

Examples:
    >>> grant_role(table, "user-1", Role.DEVELOPER, assigned_by="signup")
    True
    >>> has_role(table, "user-1", "developer")
    True
    >>> count_role_holders(table, Role.ADMIN)
    0
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from boto3.dynamodb.conditions import Key

from src.lambdas.shared.auth.enums import VALID_ROLES, Role
from src.lambdas.shared.dynamodb import GSI1_NAME, count_query, put_item_if_not_exists
from src.lambdas.shared.errors.auth_errors import InvalidRoleError
from src.lambdas.shared.logging_utils import mask_identifier
from src.lambdas.shared.models.role_assignment import RoleAssignment, role_pk, role_sk

logger = logging.getLogger(__name__)


def validate_role(role: str | Role) -> Role:
    """Return the Role for a name, or raise InvalidRoleError."""
    value = role.value if isinstance(role, Role) else role
    if value not in VALID_ROLES:
        raise InvalidRoleError(str(value), VALID_ROLES)
    return Role(value)


def get_roles(table: Any, user_id: str) -> list[str]:
    """List the role names held by a user (empty list for unknown users)."""
    response = table.query(
        KeyConditionExpression=Key("PK").eq(role_pk(user_id)) & Key("SK").begins_with("ROLE#"),
        ConsistentRead=True,
    )
    return sorted(item["role"] for item in response.get("Items", []))


def has_role(table: Any, user_id: str, role: str | Role) -> bool:
    """Check whether a (user, role) row exists.

    Raises:
        InvalidRoleError: If role is not a known role name
        botocore.exceptions.ClientError: If the lookup fails
    """
    checked = validate_role(role)
    response = table.get_item(
        Key={"PK": role_pk(user_id), "SK": role_sk(checked.value)},
        ConsistentRead=True,
    )
    return "Item" in response


def count_role_holders(table: Any, role: str | Role) -> int:
    """Count users holding a role with a single COUNT query on GSI1."""
    checked = validate_role(role)
    return count_query(
        table,
        IndexName=GSI1_NAME,
        KeyConditionExpression=Key("GSI1PK").eq(role_sk(checked.value)),
    )


def grant_role(
    table: Any,
    user_id: str,
    role: str | Role,
    assigned_by: str | None = None,
    now: datetime | None = None,
) -> bool:
    """Insert a role row for a user.

    Idempotent: granting a role the user already holds is a no-op.

    Returns:
        True if the row was created, False if the user already held the role
    """
    assignment = RoleAssignment(
        user_id=user_id,
        role=validate_role(role),
        assigned_by=assigned_by,
        assigned_at=now or datetime.now(UTC),
    )
    created = put_item_if_not_exists(table, assignment.to_dynamodb_item())
    if created:
        logger.info(
            "Role granted",
            extra={
                "user_id_prefix": mask_identifier(user_id),
                "role": assignment.role.value,
                "assigned_by": assigned_by,
            },
        )
    return created


def revoke_role(table: Any, user_id: str, role: str | Role) -> None:
    """Delete a role row. Revoking a role the user does not hold is a no-op."""
    checked = validate_role(role)
    table.delete_item(Key={"PK": role_pk(user_id), "SK": role_sk(checked.value)})
    logger.info(
        "Role revoked",
        extra={"user_id_prefix": mask_identifier(user_id), "role": checked.value},
    )
