"""Canonical enum definitions for app store RBAC.

This module defines the valid roles stored as RoleAssignment rows.
All auth-related enums should be defined here to ensure a single source of truth.
"""

from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    """Roles a user may hold. A user holds zero or more of them.

    - admin: reviews submissions, may read developer emails
    - moderator: reserved for content moderation
    - developer: may submit applications (granted at signup)
    """

    ADMIN = "admin"
    MODERATOR = "moderator"
    DEVELOPER = "developer"


# Immutable set for O(1) validation
VALID_ROLES: frozenset[str] = frozenset(role.value for role in Role)
