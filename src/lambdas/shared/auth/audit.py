"""Audit trail helpers for privileged actions.

Two kinds of attribution live here:
- role_assigned_by(): the `assigned_by` value stamped on RoleAssignment rows
- record_audit_entry(): an AuditLogEntry row for admin actions such as
  reading a developer's email address

Audit writes are best-effort. A failed write is logged at ERROR and the
caller's primary operation continues.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Literal

from src.lambdas.shared.logging_utils import get_safe_error_info, mask_identifier
from src.lambdas.shared.models.audit_log_entry import AuditLogEntry

logger = logging.getLogger(__name__)

RoleChangeSource = Literal["signup", "bootstrap", "admin"]


def role_assigned_by(source: RoleChangeSource, identifier: str) -> str:
    """Attribution for a role change in the form {source}:{identifier}.

    Args:
        source: Origin of role change (signup, bootstrap, admin)
        identifier: Context-specific identifier:
            - signup: auth hook name
            - bootstrap: the user who claimed the first admin seat
            - admin: admin user ID

    Examples:
        >>> role_assigned_by("signup", "auth_hooks")
        'signup:auth_hooks'
        >>> role_assigned_by("admin", "admin-user-123")
        'admin:admin-user-123'
    """
    return f"{source}:{identifier}"


def record_audit_entry(
    table: Any,
    admin_id: str,
    action: str,
    target_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> bool:
    """Append an AuditLogEntry. Never raises.

    Returns:
        True if the entry was written, False if the write failed
    """
    entry = AuditLogEntry(
        admin_id=admin_id,
        action=action,
        target_id=target_id,
        metadata=metadata or {},
        created_at=now or datetime.now(UTC),
    )
    try:
        table.put_item(Item=entry.to_dynamodb_item())
    except Exception as e:
        logger.error(
            "Failed to write audit log entry",
            extra={
                "action": action,
                "admin_id_prefix": mask_identifier(admin_id),
                **get_safe_error_info(e),
            },
        )
        return False

    logger.info(
        "Audit entry recorded",
        extra={"action": action, "admin_id_prefix": mask_identifier(admin_id)},
    )
    return True
