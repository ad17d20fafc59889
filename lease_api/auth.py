"""
Caller identity resolution.

Bearer credentials are issued by the external Auth service; this module
only verifies them:

* tenant tokens: HS256 JWT with ``role="tenant"`` and ``sub=<uuid>``,
  signed with the tenant secret;
* admin tokens: JWT with ``role="admin"``, signed with a distinct admin
  secret;
* the scheduler: ``Bearer <cron secret>``, compared in constant time.

Each request resolves one ``AuthContext`` which routes pass explicitly to
the core.
"""

from __future__ import annotations

import hmac
from uuid import UUID

import jwt
from fastapi import Request

from lease_config.schema import AuthSettings
from lease_kernel.domain.auth import AuthContext, Role
from lease_kernel.exceptions import UnauthenticatedError
from lease_kernel.logging_config import LogContext


def bearer_token(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError("missing bearer credential")
    return token.strip()


def _decode(token: str, secret: str, algorithm: str) -> dict | None:
    if not secret:
        return None
    try:
        return jwt.decode(
            token, secret, algorithms=[algorithm], options={"require": ["sub", "role"]},
        )
    except jwt.InvalidTokenError:
        return None


def _subject(claims: dict) -> UUID:
    try:
        return UUID(str(claims["sub"]))
    except ValueError as exc:
        raise UnauthenticatedError("token subject is not a valid id") from exc


def verify_user_token(token: str, settings: AuthSettings) -> AuthContext:
    """Resolve an admin or tenant JWT, each checked against its own secret."""
    claims = _decode(token, settings.admin_token_secret, settings.algorithm)
    if claims is not None and claims.get("role") == Role.ADMIN.value:
        return AuthContext.admin(_subject(claims))

    claims = _decode(token, settings.tenant_token_secret, settings.algorithm)
    if claims is not None and claims.get("role") == Role.TENANT.value:
        return AuthContext.tenant(_subject(claims))

    raise UnauthenticatedError("invalid or expired token")


def verify_cron_secret(token: str, settings: AuthSettings) -> AuthContext:
    if not settings.cron_secret or not hmac.compare_digest(
        token.encode(), settings.cron_secret.encode(),
    ):
        raise UnauthenticatedError("invalid job credential")
    return AuthContext.system()


def _bind(auth: AuthContext) -> AuthContext:
    LogContext.set(
        actor_id=str(auth.subject_id) if auth.subject_id else None,
        actor_role=auth.role.value,
    )
    return auth


async def current_user(request: Request) -> AuthContext:
    """FastAPI dependency: admin or tenant caller."""
    settings = request.app.state.lease.config.auth
    return _bind(verify_user_token(bearer_token(request), settings))


async def scheduler(request: Request) -> AuthContext:
    """FastAPI dependency: the cron trigger."""
    settings = request.app.state.lease.config.auth
    return _bind(verify_cron_secret(bearer_token(request), settings))
