"""UserProfile model: mirror of the auth provider's identity."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from src.lambdas.shared.dynamodb import format_timestamp, parse_timestamp

ENTITY_TYPE = "USER_PROFILE"
PROFILE_SK = "PROFILE"
# GSI1 partition listing every profile by created_at
PROFILE_GSI_PK = "PROFILE"


def profile_pk(user_id: str) -> str:
    return f"USER#{user_id}"


class UserProfile(BaseModel):
    """Profile row written by the post-signup hook."""

    user_id: str = Field(..., min_length=1)
    email: EmailStr
    display_name: str | None = Field(None, max_length=100)
    created_at: datetime

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return profile_pk(self.user_id)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return PROFILE_SK

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        created = format_timestamp(self.created_at)
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "user_id": self.user_id,
            "email": self.email,
            "created_at": created,
            "entity_type": ENTITY_TYPE,
            "GSI1PK": PROFILE_GSI_PK,
            "GSI1SK": f"{created}#{self.user_id}",
        }
        if self.display_name:
            item["display_name"] = self.display_name
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "UserProfile":
        """Create UserProfile from DynamoDB item."""
        return cls(
            user_id=item["user_id"],
            email=item["email"],
            display_name=item.get("display_name"),
            created_at=parse_timestamp(item["created_at"]),
        )

    def admin_view(self) -> dict:
        """Directory entry for the admin dashboard.

        The email is omitted; admins resolve it through get_developer_email,
        which is rate limited and audited.
        """
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "createdAt": format_timestamp(self.created_at),
        }
