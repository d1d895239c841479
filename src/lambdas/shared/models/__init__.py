"""Shared models for the app store backend.

This module exports all entity models used across Lambda functions:
- UserProfile: Mirror of the auth provider identity
- RoleAssignment: (user, role) rows backing the role gate
- RateLimitAttempt: Append-only attempt log counted by the rate limiter
- AuditLogEntry: Record of privileged admin actions
- Application / SubmissionHistory: Store catalog and review trail
- DownloadLog: Signed-URL issuance log
"""

from src.lambdas.shared.models.application import (
    APP_LIMITS,
    CATEGORIES,
    Application,
    ApplicationCreate,
    SubmissionHistory,
)
from src.lambdas.shared.models.audit_log_entry import AuditLogEntry
from src.lambdas.shared.models.download_log import DownloadLog
from src.lambdas.shared.models.rate_limit_attempt import RateLimitAttempt
from src.lambdas.shared.models.role_assignment import RoleAssignment
from src.lambdas.shared.models.user_profile import UserProfile

__all__ = [
    "APP_LIMITS",
    "CATEGORIES",
    "Application",
    "ApplicationCreate",
    "AuditLogEntry",
    "DownloadLog",
    "RateLimitAttempt",
    "RoleAssignment",
    "SubmissionHistory",
    "UserProfile",
]
