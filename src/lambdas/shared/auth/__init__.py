"""Role-based access control for the app store."""

from src.lambdas.shared.auth.enums import VALID_ROLES, Role

__all__ = [
    "Role",
    "VALID_ROLES",
]
