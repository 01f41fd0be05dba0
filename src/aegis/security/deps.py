"""FastAPI security dependencies for Aegis.

Provides injectable dependencies for authentication and authorization:
- require_user: resolve the caller or fail with 401
- require_permission: factory for permission checks (403)
- require_admin: shorthand for admin-only endpoints

Usage:
    @router.delete("/{incident_id}")
    async def delete_incident(user: User = Depends(require_admin)):
        ...
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request

from aegis.api.errors import ForbiddenError, UnauthorizedError
from aegis.observability.logging import user_id_var
from aegis.security.identity import IdentityResolver, User
from aegis.security.rbac import Permission, rbac_policy


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity


async def require_user(
    request: Request,
    resolver: Annotated[IdentityResolver, Depends(get_identity_resolver)],
) -> User:
    """Require an authenticated user.

    Raises 401 if the x-user header / Bearer token is missing or unknown.
    """
    user = resolver.resolve(request.headers)
    if user is None:
        raise UnauthorizedError("Unauthorized: invalid or missing x-user header")
    request.state.user = user
    user_id_var.set(user.id)
    return user


def require_permission(permission: Permission) -> Callable[..., Awaitable[User]]:
    """Create a dependency that requires a specific permission.

    Usage:
        @router.post("/", dependencies=[Depends(require_permission(Permission.CREATE_REPORT))])
    """

    async def check_permission(user: Annotated[User, Depends(require_user)]) -> User:
        if not rbac_policy.has_permission(user, permission):
            raise ForbiddenError(f"Permission '{permission.value}' required")
        return user

    return check_permission


async def require_admin(user: Annotated[User, Depends(require_user)]) -> User:
    """Require admin role.

    Raises 403 if user is not an admin.
    """
    if not user.is_admin:
        raise ForbiddenError("Forbidden: admin role required")
    return user
