"""Tests for role-based access control."""

from __future__ import annotations

import pytest

from aegis.security.identity import User
from aegis.security.rbac import ROLE_PERMISSIONS, Permission, RBACPolicy, Role, rbac_policy

CONTRIBUTOR = User(id="volunteerJoe", role=Role.CONTRIBUTOR.value)
ADMIN = User(id="reliefAdmin", role=Role.ADMIN.value)


class TestRoles:
    @pytest.mark.parametrize(
        "permission",
        [
            Permission.READ,
            Permission.CREATE_INCIDENT,
            Permission.UPDATE_INCIDENT,
            Permission.CREATE_REPORT,
            Permission.CREATE_RESOURCE,
            Permission.UPDATE_RESOURCE,
        ],
    )
    def test_contributor_allowed(self, permission: Permission) -> None:
        assert rbac_policy.has_permission(CONTRIBUTOR, permission)

    @pytest.mark.parametrize(
        "permission",
        [
            Permission.DELETE_INCIDENT,
            Permission.MODERATE_REPORT,
            Permission.DELETE_RESOURCE,
            Permission.VERIFY_IMAGE,
            Permission.ADMIN,
        ],
    )
    def test_contributor_denied(self, permission: Permission) -> None:
        assert not rbac_policy.has_permission(CONTRIBUTOR, permission)

    def test_admin_has_everything(self) -> None:
        assert all(rbac_policy.has_permission(ADMIN, p) for p in Permission)
        assert rbac_policy.get_user_permissions(ADMIN) == set(Permission)


class TestPolicy:
    def test_unknown_role_has_nothing(self) -> None:
        stranger = User(id="x", role="observer")
        assert rbac_policy.get_user_permissions(stranger) == set()
        assert not rbac_policy.has_permission(stranger, Permission.READ)

    def test_custom_mapping(self) -> None:
        policy = RBACPolicy({Role.CONTRIBUTOR.value: {Permission.READ}})
        assert policy.has_permission(CONTRIBUTOR, Permission.READ)
        assert not policy.has_permission(CONTRIBUTOR, Permission.CREATE_REPORT)

    def test_permissions_are_copied(self) -> None:
        rbac_policy.get_user_permissions(CONTRIBUTOR).add(Permission.ADMIN)
        assert Permission.ADMIN not in ROLE_PERMISSIONS[Role.CONTRIBUTOR.value]
