"""Role configuration error types.

InvalidRoleError signals a programming mistake (typo in a role name passed to
the role gate). It is not a GateError, so handle_request() reports it as a
500 instead of a 403.
"""

from __future__ import annotations


class InvalidRoleError(ValueError):
    """Raised when a role name is not one of the known roles."""

    def __init__(self, role: str, valid_roles: frozenset[str]) -> None:
        self.role = role
        self.valid_roles = valid_roles
        super().__init__(f"Invalid role '{role}'. Valid roles: {sorted(valid_roles)}")
