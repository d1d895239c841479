"""Post-signup webhook from the auth provider.

Mirrors the new user into the store table:
    - UserProfile (id, email, display name)
    - developer RoleAssignment, attributed to "signup:auth_hooks"

The provider signs nothing, so the hook is authenticated with a shared
secret sent in the X-Auth-Hook-Secret header and compared in constant time
against AUTH_HOOK_SECRET (or the secret behind AUTH_HOOK_SECRET_ARN).

    POST {"user": {"id": "...", "email": "...", "user_metadata": {"display_name": "..."}}}
    200 {"userId": "...", "roleGranted": true}

Re-delivery is safe: the profile is overwritten and the role grant is
idempotent.
"""

import logging
import os
from typing import Any

from aws_xray_sdk.core import patch_all, xray_recorder
from pydantic import BaseModel, EmailStr, Field, field_validator

from src.lambdas.shared.auth.audit import role_assigned_by
from src.lambdas.shared.auth.enums import Role
from src.lambdas.shared.auth.profiles import put_profile
from src.lambdas.shared.auth.roles import grant_role
from src.lambdas.shared.dependencies import get_store_table
from src.lambdas.shared.errors import Unauthenticated
from src.lambdas.shared.logging_utils import log_expected_warning, mask_identifier
from src.lambdas.shared.secrets import compare_digest, resolve_secret
from src.lambdas.shared.utils import get_header, json_response, parse_json_body
from src.lambdas.shared.utils.error_handler import handle_request
from src.lambdas.shared.utils.sanitize import sanitize_text

patch_all()

logger = logging.getLogger(__name__)
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

HOOK_SECRET_HEADER = "x-auth-hook-secret"
HOOK_NAME = "auth_hooks"


class HookUser(BaseModel):
    id: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str | None:
        raw = self.user_metadata.get("display_name") or self.user_metadata.get("full_name")
        if not isinstance(raw, str):
            return None
        return sanitize_text(raw, max_length=100) or None


class SignupHookPayload(BaseModel):
    user: HookUser

    @field_validator("user", mode="before")
    @classmethod
    def require_user(cls, v: Any) -> Any:
        if not v:
            raise ValueError("Missing user")
        return v


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    return handle_request(_handle, event, context)


def verify_hook_secret(event: dict[str, Any]) -> None:
    """Reject calls that do not carry the shared hook secret.

    Raises:
        Unauthenticated: If the secret is unset, missing or wrong
    """
    expected = resolve_secret("AUTH_HOOK_SECRET", "AUTH_HOOK_SECRET_ARN", key_field="secret")
    if not expected:
        logger.error("AUTH_HOOK_SECRET is not configured")
        raise Unauthenticated("Invalid hook secret")

    if not compare_digest(get_header(event, HOOK_SECRET_HEADER), expected):
        log_expected_warning(logger, "Auth hook called with bad secret")
        raise Unauthenticated("Invalid hook secret")


@xray_recorder.capture("auth_hooks")
def _handle(event: dict[str, Any], context: Any) -> dict[str, Any]:
    verify_hook_secret(event)

    payload = SignupHookPayload.model_validate(parse_json_body(event))
    user = payload.user
    table = get_store_table()

    put_profile(table, user.id, str(user.email), display_name=user.display_name)
    granted = grant_role(
        table,
        user.id,
        Role.DEVELOPER,
        assigned_by=role_assigned_by("signup", HOOK_NAME),
    )

    logger.info(
        "Signup hook processed",
        extra={"user_id_prefix": mask_identifier(user.id), "role_granted": granted},
    )
    return json_response(200, {"userId": user.id, "roleGranted": granted})
