"""Application and SubmissionHistory models with DynamoDB keys.

An Application row is the catalog entry; GSI1 indexes it by status so the
public store (published) and the admin queue (pending) are single queries.
Each submission or review decision appends a SubmissionHistory row under
the same partition.
"""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.lambdas.shared.dynamodb import format_timestamp, parse_timestamp
from src.lambdas.shared.utils.sanitize import sanitize_path, sanitize_text, sanitize_url

APPLICATION_ENTITY = "APPLICATION"
SUBMISSION_ENTITY = "SUBMISSION_HISTORY"
APPLICATION_SK = "METADATA"

PENDING = "pending"
PUBLISHED = "published"
REJECTED = "rejected"

ApplicationStatus = Literal["pending", "published", "rejected"]
ReviewDecision = Literal["published", "rejected"]

CATEGORIES = frozenset(
    [
        "games",
        "productivity",
        "social",
        "entertainment",
        "utilities",
        "education",
        "business",
    ]
)

APP_LIMITS = {
    "max_app_name_length": 200,
    "max_short_description_length": 80,
    "max_long_description_length": 4000,
    "max_screenshots": 5,
    "max_version_name_length": 50,
}

PACKAGE_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+$")


def app_pk(application_id: str) -> str:
    return f"APP#{application_id}"


def status_gsi_pk(status: str) -> str:
    return f"STATUS#{status}"


def submission_sk(submitted_at: datetime) -> str:
    return f"SUBMISSION#{format_timestamp(submitted_at)}"


class Application(BaseModel):
    """An APK listing in the store."""

    application_id: str = Field(..., description="UUID")
    developer_id: str
    app_name: str
    package_name: str
    short_description: str
    long_description: str | None = None
    category: str
    version_name: str
    version_code: int = 1
    icon_url: str | None = None
    screenshots: list[str] = Field(default_factory=list)
    apk_file_path: str | None = None
    status: ApplicationStatus = PENDING
    downloads: int = 0
    created_at: datetime
    published_at: datetime | None = None

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return app_pk(self.application_id)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return APPLICATION_SK

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        created = format_timestamp(self.created_at)
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "GSI1PK": status_gsi_pk(self.status),
            "GSI1SK": created,
            "application_id": self.application_id,
            "developer_id": self.developer_id,
            "app_name": self.app_name,
            "package_name": self.package_name,
            "short_description": self.short_description,
            "category": self.category,
            "version_name": self.version_name,
            "version_code": self.version_code,
            "screenshots": self.screenshots,
            "status": self.status,
            "downloads": self.downloads,
            "created_at": created,
            "entity_type": APPLICATION_ENTITY,
        }
        if self.long_description:
            item["long_description"] = self.long_description
        if self.icon_url:
            item["icon_url"] = self.icon_url
        if self.apk_file_path:
            item["apk_file_path"] = self.apk_file_path
        if self.published_at is not None:
            item["published_at"] = format_timestamp(self.published_at)
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "Application":
        """Create Application from DynamoDB item."""
        published_at = None
        if item.get("published_at"):
            published_at = parse_timestamp(item["published_at"])

        return cls(
            application_id=item["application_id"],
            developer_id=item["developer_id"],
            app_name=item["app_name"],
            package_name=item["package_name"],
            short_description=item["short_description"],
            long_description=item.get("long_description"),
            category=item["category"],
            version_name=item["version_name"],
            version_code=int(item.get("version_code", 1)),
            icon_url=item.get("icon_url"),
            screenshots=list(item.get("screenshots") or []),
            apk_file_path=item.get("apk_file_path"),
            status=item.get("status", PENDING),
            downloads=int(item.get("downloads", 0)),
            created_at=parse_timestamp(item["created_at"]),
            published_at=published_at,
        )

    def public_view(self) -> dict:
        """Fields exposed to store visitors (no developer_id, no storage path)."""
        return {
            "id": self.application_id,
            "appName": self.app_name,
            "packageName": self.package_name,
            "shortDescription": self.short_description,
            "longDescription": self.long_description,
            "category": self.category,
            "versionName": self.version_name,
            "versionCode": self.version_code,
            "iconUrl": self.icon_url,
            "screenshots": self.screenshots,
            "downloads": self.downloads,
            "status": self.status,
            "createdAt": format_timestamp(self.created_at),
            "publishedAt": format_timestamp(self.published_at) if self.published_at else None,
        }


class ApplicationCreate(BaseModel):
    """Request body for POST /apps."""

    app_name: str = Field(..., alias="appName", min_length=1)
    package_name: str = Field(..., alias="packageName")
    short_description: str = Field(..., alias="shortDescription", min_length=1)
    long_description: str = Field(..., alias="longDescription", min_length=1)
    category: str
    version_name: str = Field(..., alias="versionName", min_length=1)
    version_code: int = Field(1, alias="versionCode", ge=1)
    apk_file_name: str = Field(..., alias="apkFileName", min_length=1)
    icon_url: str | None = Field(None, alias="iconUrl")
    screenshots: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("app_name")
    @classmethod
    def clean_app_name(cls, v: str) -> str:
        v = sanitize_text(v)
        if not v:
            raise ValueError("App name is required")
        if len(v) > APP_LIMITS["max_app_name_length"]:
            raise ValueError("App name must be less than 200 characters")
        return v

    @field_validator("package_name")
    @classmethod
    def check_package_name(cls, v: str) -> str:
        v = v.strip()
        if not PACKAGE_NAME_PATTERN.match(v):
            raise ValueError("Invalid package name")
        return v

    @field_validator("short_description")
    @classmethod
    def clean_short_description(cls, v: str) -> str:
        v = sanitize_text(v)
        if not v:
            raise ValueError("Short description is required")
        if len(v) > APP_LIMITS["max_short_description_length"]:
            raise ValueError("Short description must be at most 80 characters")
        return v

    @field_validator("long_description")
    @classmethod
    def clean_long_description(cls, v: str) -> str:
        v = sanitize_text(v)
        if not v:
            raise ValueError("Long description is required")
        if len(v) > APP_LIMITS["max_long_description_length"]:
            raise ValueError("Long description must be at most 4000 characters")
        return v

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CATEGORIES:
            raise ValueError(f"Invalid category. Must be one of: {', '.join(sorted(CATEGORIES))}")
        return v

    @field_validator("version_name")
    @classmethod
    def clean_version_name(cls, v: str) -> str:
        v = sanitize_text(v, max_length=APP_LIMITS["max_version_name_length"])
        if not v:
            raise ValueError("Version name is required")
        return v

    @field_validator("apk_file_name")
    @classmethod
    def clean_apk_file_name(cls, v: str) -> str:
        v = sanitize_path(v)
        if not v.lower().endswith(".apk") or len(v) <= len(".apk"):
            raise ValueError("APK file must have an .apk extension")
        return v

    @field_validator("icon_url")
    @classmethod
    def check_icon_url(cls, v: str | None) -> str | None:
        if v is None:
            return None
        cleaned = sanitize_url(v)
        if cleaned is None:
            raise ValueError("Icon URL must be an http(s) URL")
        return cleaned

    @field_validator("screenshots")
    @classmethod
    def check_screenshots(cls, v: list[str]) -> list[str]:
        if len(v) > APP_LIMITS["max_screenshots"]:
            raise ValueError("You can upload a maximum of 5 screenshots")
        cleaned = []
        for url in v:
            safe = sanitize_url(url)
            if safe is None:
                raise ValueError("Screenshot URLs must be http(s) URLs")
            cleaned.append(safe)
        return cleaned


class SubmissionHistory(BaseModel):
    """A submission of one version, later stamped with the review decision."""

    application_id: str
    developer_id: str
    version_name: str
    status: ApplicationStatus = PENDING
    submitted_at: datetime
    reviewed_by: str | None = None
    review_notes: str | None = None
    reviewed_at: datetime | None = None

    @property
    def pk(self) -> str:
        """DynamoDB partition key."""
        return app_pk(self.application_id)

    @property
    def sk(self) -> str:
        """DynamoDB sort key."""
        return submission_sk(self.submitted_at)

    def to_dynamodb_item(self) -> dict:
        """Convert to DynamoDB item format."""
        item = {
            "PK": self.pk,
            "SK": self.sk,
            "application_id": self.application_id,
            "developer_id": self.developer_id,
            "version_name": self.version_name,
            "status": self.status,
            "submitted_at": format_timestamp(self.submitted_at),
            "entity_type": SUBMISSION_ENTITY,
        }
        if self.reviewed_by:
            item["reviewed_by"] = self.reviewed_by
        if self.review_notes:
            item["review_notes"] = self.review_notes
        if self.reviewed_at is not None:
            item["reviewed_at"] = format_timestamp(self.reviewed_at)
        return item

    @classmethod
    def from_dynamodb_item(cls, item: dict) -> "SubmissionHistory":
        """Create SubmissionHistory from DynamoDB item."""
        reviewed_at = None
        if item.get("reviewed_at"):
            reviewed_at = parse_timestamp(item["reviewed_at"])

        return cls(
            application_id=item["application_id"],
            developer_id=item["developer_id"],
            version_name=item["version_name"],
            status=item.get("status", PENDING),
            submitted_at=parse_timestamp(item["submitted_at"]),
            reviewed_by=item.get("reviewed_by"),
            review_notes=item.get("review_notes"),
            reviewed_at=reviewed_at,
        )
