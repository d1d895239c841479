"""Shared request gates and response middleware for Lambda handlers."""

from src.lambdas.shared.middleware.auth_middleware import (
    Identity,
    extract_bearer_token,
    validate_jwt,
    verify_identity,
)
from src.lambdas.shared.middleware.hcaptcha import (
    CaptchaVerificationResult,
    is_captcha_enabled,
    require_captcha,
    verify_captcha,
)
from src.lambdas.shared.middleware.rate_limit import (
    RateLimitResult,
    check_rate_limit,
    enforce_rate_limit,
    get_client_ip,
    get_rate_limit_headers,
)
from src.lambdas.shared.middleware.require_role import require_role
from src.lambdas.shared.middleware.security_headers import (
    add_security_headers,
    get_cors_headers,
    get_preflight_response,
)

__all__ = [
    "CaptchaVerificationResult",
    "Identity",
    "RateLimitResult",
    "add_security_headers",
    "check_rate_limit",
    "enforce_rate_limit",
    "extract_bearer_token",
    "get_client_ip",
    "get_cors_headers",
    "get_preflight_response",
    "get_rate_limit_headers",
    "is_captcha_enabled",
    "require_captcha",
    "require_role",
    "validate_jwt",
    "verify_captcha",
    "verify_identity",
]
