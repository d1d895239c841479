"""Request bodies for the notification handlers.

Validation messages are returned to the caller verbatim as the `error`
field of a 400 response.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from src.lambdas.shared.utils.sanitize import is_valid_email, sanitize_text

MAX_APP_NAME_LENGTH = 200
MAX_REVIEW_NOTES_LENGTH = 5000


def _check_email(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    if not is_valid_email(v):
        raise ValueError("Invalid email format")
    return v


class StatusUpdateRequest(BaseModel):
    """Body of POST send_status_update."""

    email: str = ""
    app_name: str = Field("", alias="appName")
    status: str = ""
    review_notes: str | None = Field(None, alias="reviewNotes")
    reviewed_at: str = Field("", alias="reviewedAt")

    # Missing fields default to "" and still go through the checks below
    model_config = {"populate_by_name": True, "validate_default": True}

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        if not v:
            raise ValueError("Invalid email format")
        return _check_email(v)

    @field_validator("app_name")
    @classmethod
    def check_app_name(cls, v: str) -> str:
        v = sanitize_text(v, max_length=MAX_APP_NAME_LENGTH + 1)
        if not v or len(v) > MAX_APP_NAME_LENGTH:
            raise ValueError("Invalid app name (max 200 characters)")
        return v

    @field_validator("status")
    @classmethod
    def check_status(cls, v: str) -> str:
        if v not in ("published", "rejected"):
            raise ValueError("Invalid status (must be 'published' or 'rejected')")
        return v

    @field_validator("review_notes")
    @classmethod
    def check_review_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if len(v) > MAX_REVIEW_NOTES_LENGTH:
            raise ValueError("Review notes too long (max 5000 characters)")
        return sanitize_text(v, max_length=MAX_REVIEW_NOTES_LENGTH) or None

    @field_validator("reviewed_at")
    @classmethod
    def check_reviewed_at(cls, v: str) -> str:
        if not v:
            raise ValueError("Missing reviewed timestamp")
        return v


class SubmissionConfirmationRequest(BaseModel):
    """Body of POST send_submission_confirmation.

    `email` is optional; when given it must match the caller's own address.
    """

    email: str | None = None
    app_name: str = Field(..., alias="appName", min_length=1)
    version_name: str = Field(..., alias="versionName", min_length=1)
    submitted_at: str = Field(..., alias="submittedAt", min_length=1)

    model_config = {"populate_by_name": True}

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        return _check_email(v)

    @field_validator("app_name")
    @classmethod
    def check_app_name(cls, v: str) -> str:
        v = sanitize_text(v, max_length=MAX_APP_NAME_LENGTH + 1)
        if not v or len(v) > MAX_APP_NAME_LENGTH:
            raise ValueError("Invalid app name (max 200 characters)")
        return v

    @field_validator("version_name")
    @classmethod
    def check_version_name(cls, v: str) -> str:
        v = sanitize_text(v, max_length=50)
        if not v:
            raise ValueError("Version name is required")
        return v


class ReviewDecisionRequest(BaseModel):
    """Body of POST review_application."""

    application_id: str = Field(..., alias="applicationId", min_length=1)
    status: Literal["published", "rejected"]
    review_notes: str | None = Field(None, alias="reviewNotes", max_length=MAX_REVIEW_NOTES_LENGTH)

    model_config = {"populate_by_name": True}

    @field_validator("review_notes")
    @classmethod
    def clean_review_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return sanitize_text(v, max_length=MAX_REVIEW_NOTES_LENGTH) or None

    @model_validator(mode="after")
    def require_notes_for_rejection(self) -> "ReviewDecisionRequest":
        if self.status == "rejected" and not self.review_notes:
            raise ValueError("Please provide review notes for rejection")
        return self
