"""RoleAssignment model with DynamoDB keys.

One row per (user, role). Rows are inserted or deleted, never updated.
GSI1 is keyed by role so "who holds role X" is a single query.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.dynamodb import format_timestamp, parse_timestamp

ENTITY_TYPE = "ROLE_ASSIGNMENT"


def role_pk(user_id: str) -> str:
    return f"USER#{user_id}"


def role_sk(role: str) -> str:
    return f"ROLE#{role}"


class RoleAssignment(BaseModel):
    """A role held by a user."""

    user_id: str = Field(..., min_length=1)
    role: Role
    assigned_by: str | None = None
    assigned_at: datetime

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return role_pk(self.user_id)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return role_sk(self.role.value)

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "GSI1PK": role_sk(self.role.value),
            "GSI1SK": role_pk(self.user_id),
            "user_id": self.user_id,
            "role": self.role.value,
            "assigned_at": format_timestamp(self.assigned_at),
            "entity_type": ENTITY_TYPE,
        }
        if self.assigned_by:
            item["assigned_by"] = self.assigned_by
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "RoleAssignment":
        """Create RoleAssignment from DynamoDB item."""
        return cls(
            user_id=item["user_id"],
            role=Role(item["role"]),
            assigned_by=item.get("assigned_by"),
            assigned_at=parse_timestamp(item["assigned_at"]),
        )
