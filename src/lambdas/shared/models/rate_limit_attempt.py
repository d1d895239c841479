"""RateLimitAttempt model with DynamoDB keys.

Append-only: one row per allowed attempt, never mutated. The sort key starts
with the attempt timestamp so a window is a single `SK >= window_start` range.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.lambdas.shared.dynamodb import format_timestamp, parse_timestamp, unique_sort_key

ENTITY_TYPE = "RATE_LIMIT_ATTEMPT"


def attempt_pk(identifier: str, action: str) -> str:
    return f"RATE#{identifier}#{action}"


class RateLimitAttempt(BaseModel):
    """A single recorded attempt for an (identifier, action) pair."""

    identifier: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)
    attempted_at: datetime
    # Seconds after attempted_at at which DynamoDB TTL may drop the row
    ttl_seconds: int = 86400

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return attempt_pk(self.identifier, self.action)

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format with a fresh append-only sort key."""
        return {
            "PK": self.pk,
            "SK": unique_sort_key(self.attempted_at),
            "identifier": self.identifier,
            "action": self.action,
            "attempted_at": format_timestamp(self.attempted_at),
            "ttl": int(self.attempted_at.timestamp()) + self.ttl_seconds,
            "entity_type": ENTITY_TYPE,
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "RateLimitAttempt":
        """Create RateLimitAttempt from DynamoDB item."""
        return cls(
            identifier=item["identifier"],
            action=item["action"],
            attempted_at=parse_timestamp(item["attempted_at"]),
        )
