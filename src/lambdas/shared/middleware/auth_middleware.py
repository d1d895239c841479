"""Bearer-token identity verification for the app store handlers.

Every privileged handler calls verify_identity() first. The auth provider
issues HS256 access tokens; they are validated locally with the shared JWT
secret, so no network round trip is needed to resolve the caller.

Usage:
    identity = verify_identity(event)   # raises Unauthenticated
    identity.user_id, identity.email

    FastAPI routes take the caller as a dependency instead:

    async def route(identity: Identity = Depends(current_identity)): ...
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import jwt
from aws_xray_sdk.core import xray_recorder
from fastapi import Request
from pydantic import BaseModel

from src.lambdas.shared.errors import Unauthenticated
from src.lambdas.shared.logging_utils import mask_identifier
from src.lambdas.shared.secrets import resolve_secret
from src.lambdas.shared.utils.event_helpers import get_header

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class JWTClaim:
    """Represents validated claims from a JWT token.

    Attributes:
        subject: User ID (from 'sub' claim)
        email: User email (from 'email' claim, may be absent for service tokens)
        expiration: Token expiration timestamp
        issued_at: Token issued timestamp
        issuer: Token issuer (optional)
    """

    subject: str
    email: str | None
    expiration: datetime
    issued_at: datetime
    issuer: str | None = None


@dataclass(frozen=True)
class JWTConfig:
    """Configuration for JWT validation.

    Attributes:
        secret: Secret key for HMAC validation
        algorithm: JWT algorithm (default: HS256)
        issuer: Expected issuer (None disables the check)
        audience: Expected audience (None disables the check)
        leeway_seconds: Clock skew tolerance (default: 60s)
    """

    secret: str
    algorithm: str = "HS256"
    issuer: str | None = None
    audience: str | None = "authenticated"
    leeway_seconds: int = 60


class Identity(BaseModel):
    """Authenticated caller resolved from the bearer token."""

    user_id: str
    email: str | None = None


def _get_jwt_config() -> JWTConfig | None:
    """Load JWT configuration from environment.

    Returns:
        JWTConfig if a secret is available, None otherwise
    """
    secret = resolve_secret("JWT_SECRET", "JWT_SECRET_ARN", key_field="jwt_secret")
    if not secret:
        return None

    return JWTConfig(
        secret=secret,
        algorithm=os.environ.get("JWT_ALGORITHM", "HS256"),
        issuer=os.environ.get("JWT_ISSUER") or None,
        audience=os.environ.get("JWT_AUDIENCE", "authenticated") or None,
        leeway_seconds=int(os.environ.get("JWT_LEEWAY_SECONDS", "60")),
    )


def validate_jwt(token: str, config: JWTConfig | None = None) -> JWTClaim | None:
    """Validate a JWT token and extract claims.

    Validates the token signature, expiration, and required claims.

    Args:
        token: JWT token string (without "Bearer " prefix)
        config: Optional JWTConfig, uses environment if not provided

    Returns:
        JWTClaim if valid, None if invalid
    """
    if config is None:
        config = _get_jwt_config()
        if config is None:
            logger.warning("JWT_SECRET not configured, cannot validate JWT")
            return None

    options: dict[str, Any] = {"require": ["sub", "exp", "iat"]}
    if config.audience is None:
        options["verify_aud"] = False

    try:
        payload = jwt.decode(
            token,
            config.secret,
            algorithms=[config.algorithm],
            issuer=config.issuer,
            audience=config.audience,
            leeway=config.leeway_seconds,
            options=options,
        )

        return JWTClaim(
            subject=str(payload["sub"]),
            email=payload.get("email"),
            expiration=datetime.fromtimestamp(payload["exp"], tz=UTC),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            issuer=payload.get("iss"),
        )

    except jwt.ExpiredSignatureError:
        logger.debug("JWT token has expired")
        return None
    except (jwt.InvalidIssuerError, jwt.InvalidAudienceError):
        logger.debug("JWT token has invalid issuer or audience")
        return None
    except jwt.InvalidSignatureError:
        logger.warning("JWT token has invalid signature")
        return None
    except jwt.DecodeError:
        logger.debug("JWT token is malformed")
        return None
    except jwt.MissingRequiredClaimError as e:
        logger.debug(f"JWT token missing required claim: {e.claim}")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Unexpected JWT validation failure: {type(e).__name__}")
        return None


def extract_bearer_token(event: dict[str, Any]) -> str | None:
    """Extract the bearer token from the Authorization header.

    Header lookup and the "Bearer" scheme are both case-insensitive.

    Returns:
        Token string, or None if the header is absent or not a bearer credential
    """
    auth_header = get_header(event, "authorization")
    if not isinstance(auth_header, str):
        return None
    if not auth_header.lower().startswith(BEARER_PREFIX):
        return None
    token = auth_header[len(BEARER_PREFIX) :].strip()
    return token or None


@xray_recorder.capture("verify_identity")
def verify_identity(event: dict[str, Any], config: JWTConfig | None = None) -> Identity:
    """Resolve the caller's identity or raise Unauthenticated.

    Args:
        event: Lambda event dict
        config: Optional JWTConfig, uses environment if not provided

    Raises:
        Unauthenticated: If no bearer token is present or it fails validation
    """
    token = extract_bearer_token(event)
    if token is None:
        logger.debug("No bearer token in request")
        raise Unauthenticated("Missing authorization header")

    claim = validate_jwt(token, config)
    if claim is None:
        raise Unauthenticated("Invalid or expired token")

    logger.debug(
        "Identity verified",
        extra={"user_id_prefix": mask_identifier(claim.subject)},
    )
    return Identity(user_id=claim.subject, email=claim.email)


def request_event(request: Request) -> dict[str, Any]:
    """Minimal event dict for gate functions called from FastAPI routes."""
    return {"headers": dict(request.headers)}


async def current_identity(request: Request) -> Identity:
    """FastAPI dependency: the verified caller, or Unauthenticated."""
    return verify_identity(request_event(request))


async def optional_identity(request: Request) -> Identity | None:
    """FastAPI dependency for public routes.

    An absent or invalid token resolves to an anonymous caller
    instead of a 401, so public routes answer the same for both.
    """
    event = request_event(request)
    if extract_bearer_token(event) is None:
        return None
    try:
        return verify_identity(event)
    except Unauthenticated:
        logger.debug("Ignoring invalid bearer token on public route")
        return None
