"""Identity and authorization for Aegis."""

from aegis.security.identity import IdentityResolver, User, parse_users
from aegis.security.rbac import ROLE_PERMISSIONS, Permission, RBACPolicy, Role, rbac_policy

__all__ = [
    "IdentityResolver",
    "Permission",
    "RBACPolicy",
    "ROLE_PERMISSIONS",
    "Role",
    "User",
    "parse_users",
    "rbac_policy",
]
