"""
AuthContext -- explicit caller identity for every core operation.

The interface resolves the caller's verified identity once per request and
passes it into services.  No core operation reads credentials, secrets or
cookies from ambient state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from lease_kernel.exceptions import AdminRequiredError, ForbiddenError


class Role(str, Enum):
    """Caller roles understood by the core."""

    TENANT = "tenant"
    ADMIN = "admin"
    SYSTEM = "system"  # scheduler holding the shared job secret


@dataclass(frozen=True)
class AuthContext:
    """Verified caller identity: a role plus (for people) a subject id."""

    role: Role
    subject_id: UUID | None = None

    @classmethod
    def tenant(cls, subject_id: UUID) -> AuthContext:
        return cls(role=Role.TENANT, subject_id=subject_id)

    @classmethod
    def admin(cls, subject_id: UUID | None = None) -> AuthContext:
        return cls(role=Role.ADMIN, subject_id=subject_id)

    @classmethod
    def system(cls) -> AuthContext:
        return cls(role=Role.SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def actor_label(self) -> str:
        return f"{self.role.value}:{self.subject_id}" if self.subject_id else self.role.value


def require_admin(auth: AuthContext, operation: str) -> None:
    """Raise AdminRequiredError unless the caller holds the admin role."""
    if auth.role is not Role.ADMIN:
        raise AdminRequiredError(operation)


def require_system(auth: AuthContext, operation: str) -> None:
    """Raise ForbiddenError unless the caller is the scheduler."""
    if auth.role is not Role.SYSTEM:
        raise ForbiddenError(f"Operation '{operation}' requires the job credential")


def is_tenant_of(auth: AuthContext, tenant_id: UUID | None) -> bool:
    """True when the caller is the tenant identified by tenant_id."""
    return (
        auth.role is Role.TENANT
        and auth.subject_id is not None
        and tenant_id is not None
        and auth.subject_id == tenant_id
    )
