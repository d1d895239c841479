"""Role gate for privileged Lambda handlers.

Runs after verify_identity() and before any side effect:

    identity = verify_identity(event)
    require_role(table, identity, Role.ADMIN)

FastAPI routes declare the same gate as a dependency:

    @router.get("/admin/apps/pending")
    async def list_pending(identity: Identity = Depends(role_dependency(Role.ADMIN))):
        ...

Security:
    - Generic error messages prevent role enumeration
    - Unknown role names raise InvalidRoleError (a 500), catching typos
    - A failed role lookup denies the request (fails closed)
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aws_xray_sdk.core import xray_recorder
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import Depends

from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.roles import has_role, validate_role
from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.errors import Forbidden, UpstreamFailure
from src.lambdas.shared.logging_utils import (
    get_safe_error_info,
    log_expected_warning,
    mask_identifier,
)
from src.lambdas.shared.middleware.auth_middleware import Identity, current_identity

logger = logging.getLogger(__name__)


@xray_recorder.capture("require_role")
def require_role(table: Any, identity: Identity, required_role: str | Role) -> None:
    """Permit the request iff a (user, role) row exists.

    Args:
        table: DynamoDB Table resource holding RoleAssignment rows
        identity: Caller resolved by verify_identity()
        required_role: Role the caller must hold

    Raises:
        InvalidRoleError: If required_role is not a known role name
        Forbidden: If the caller holds no such role row
        UpstreamFailure: If the role lookup itself failed
    """
    role = validate_role(required_role)

    try:
        permitted = has_role(table, identity.user_id, role)
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Role lookup failed",
            extra={"role": role.value, **get_safe_error_info(e)},
        )
        raise UpstreamFailure("Failed to verify permissions") from e

    if not permitted:
        # SECURITY: Generic message prevents role enumeration
        log_expected_warning(
            logger,
            "Role check denied",
            extra={
                "role": role.value,
                "user_id_prefix": mask_identifier(identity.user_id),
            },
        )
        raise Forbidden("Access denied")

    logger.debug(
        "Role check passed",
        extra={"role": role.value, "user_id_prefix": mask_identifier(identity.user_id)},
    )


def role_dependency(required_role: str | Role) -> Callable[..., Awaitable[Identity]]:
    """FastAPI dependency factory: identity gate, then role gate.

    The role name is validated when the route module is imported, so a typo
    fails at cold start rather than on the first request.

    Returns:
        Dependency resolving to the caller's Identity
    """
    role = validate_role(required_role)

    async def dependency(
        identity: Identity = Depends(current_identity),
        table: Any = Depends(get_store_table),
    ) -> Identity:
        require_role(table, identity, role)
        return identity

    return dependency
