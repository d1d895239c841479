"""DownloadLog model with DynamoDB keys."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.lambdas.shared.dynamodb import format_timestamp, parse_timestamp, unique_sort_key

ENTITY_TYPE = "DOWNLOAD_LOG"


def download_pk(application_id: str) -> str:
    return f"DOWNLOAD#{application_id}"


class DownloadLog(BaseModel):
    """One signed-URL issuance for an APK."""

    application_id: str = Field(..., min_length=1)
    user_id: str
    apk_file_path: str
    user_agent: str | None = Field(None, max_length=512)
    downloaded_at: datetime

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return download_pk(self.application_id)

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": unique_sort_key(self.downloaded_at),
            "application_id": self.application_id,
            "user_id": self.user_id,
            "apk_file_path": self.apk_file_path,
            "downloaded_at": format_timestamp(self.downloaded_at),
            "entity_type": ENTITY_TYPE,
        }
        if self.user_agent:
            item["user_agent"] = self.user_agent
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "DownloadLog":
        """Create DownloadLog from DynamoDB item."""
        return cls(
            application_id=item["application_id"],
            user_id=item["user_id"],
            apk_file_path=item["apk_file_path"],
            user_agent=item.get("user_agent"),
            downloaded_at=parse_timestamp(item["downloaded_at"]),
        )
