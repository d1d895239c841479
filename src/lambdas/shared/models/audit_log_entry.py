"""AuditLogEntry model with DynamoDB keys."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.lambdas.shared.dynamodb import (
    format_timestamp,
    parse_dynamodb_item,
    parse_timestamp,
    unique_sort_key,
)

ENTITY_TYPE = "AUDIT_LOG_ENTRY"

# Actions recorded in the audit log
VIEW_DEVELOPER_EMAIL = "view_developer_email"
REVIEW_APPLICATION = "review_application"
GRANT_ROLE = "grant_role"


def audit_pk(admin_id: str) -> str:
    return f"AUDIT#{admin_id}"


class AuditLogEntry(BaseModel):
    """Record of a privileged action taken by an admin."""

    admin_id: str = Field(..., min_length=1)
    action: str
    target_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return audit_pk(self.admin_id)

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": unique_sort_key(self.created_at),
            "admin_id": self.admin_id,
            "action": self.action,
            "created_at": format_timestamp(self.created_at),
            "entity_type": ENTITY_TYPE,
        }
        if self.target_id:
            item["target_id"] = self.target_id
        if self.metadata:
            item["metadata"] = self.metadata
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "AuditLogEntry":
        """Create AuditLogEntry from DynamoDB item."""
        return cls(
            admin_id=item["admin_id"],
            action=item["action"],
            target_id=item.get("target_id"),
            metadata=parse_dynamodb_item(item.get("metadata") or {}),
            created_at=parse_timestamp(item["created_at"]),
        )
