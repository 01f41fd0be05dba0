"""Role-based access control for Aegis.

Defines roles and permissions:
- Contributor: read everything, create incidents/reports/resources, edit
  incidents and resources
- Admin: everything, including deletes, moderation and image verification

Permissions are enforced per endpoint via FastAPI dependencies.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aegis.security.identity import User


class Permission(str, Enum):
    """Permissions for incident operations."""

    # Read operations
    READ = "read:*"

    # Write operations
    CREATE_INCIDENT = "create:incident"
    UPDATE_INCIDENT = "update:incident"
    DELETE_INCIDENT = "delete:incident"
    CREATE_REPORT = "create:report"
    MODERATE_REPORT = "moderate:report"
    CREATE_RESOURCE = "create:resource"
    UPDATE_RESOURCE = "update:resource"
    DELETE_RESOURCE = "delete:resource"
    VERIFY_IMAGE = "verify:image"

    # Admin operations
    ADMIN = "admin:*"


class Role(str, Enum):
    """Predefined roles with permission sets."""

    CONTRIBUTOR = "contributor"
    ADMIN = "admin"


# Permission mappings for each role
ROLE_PERMISSIONS: dict[str, set[Permission]] = {
    Role.CONTRIBUTOR.value: {
        Permission.READ,
        Permission.CREATE_INCIDENT,
        Permission.UPDATE_INCIDENT,
        Permission.CREATE_REPORT,
        Permission.CREATE_RESOURCE,
        Permission.UPDATE_RESOURCE,
    },
    Role.ADMIN.value: set(Permission),
}


class RBACPolicy:
    """Role-based access control policy checker."""

    def __init__(self, role_permissions: dict[str, set[Permission]] | None = None):
        self.role_permissions = role_permissions or ROLE_PERMISSIONS

    def get_user_permissions(self, user: User) -> set[Permission]:
        """Get all permissions granted by the user's role."""
        return set(self.role_permissions.get(user.role, set()))

    def has_permission(self, user: User, permission: Permission) -> bool:
        """Check if user has a specific permission."""
        if user.is_admin:
            return True
        return permission in self.get_user_permissions(user)


# Global RBAC policy instance
rbac_policy = RBACPolicy()
