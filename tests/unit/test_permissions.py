"""
Unit tests for permission definitions
"""
from src.auth.permissions import (
    ROLE_PERMISSIONS,
    USER_PERMISSIONS,
    Permission,
    Role,
    get_permissions_for_role,
    has_permission,
)


class TestRolePermissions:
    """Tests for the role to permission mapping"""

    def test_admin_includes_every_user_permission(self):
        assert USER_PERMISSIONS <= get_permissions_for_role(Role.ADMIN)

    def test_admin_holds_every_permission(self):
        assert get_permissions_for_role(Role.ADMIN) == set(Permission)

    def test_user_has_no_back_office_permissions(self):
        for permission in (
            Permission.READ_ALL_WALLETS,
            Permission.REVIEW_FUNDS,
            Permission.ADJUST_WALLETS,
            Permission.MANAGE_PLANS,
            Permission.MANAGE_ALGORITHM_ACCESS,
            Permission.RUN_MATURITY,
        ):
            assert not has_permission(Role.USER, permission)

    def test_user_can_use_own_account(self):
        assert has_permission(Role.USER, Permission.TRADE)
        assert has_permission(Role.USER, Permission.INVEST)
        assert has_permission(Role.USER, Permission.REQUEST_FUNDS)

    def test_every_role_mapped(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_roles_compare_as_strings(self):
        assert Role("admin") is Role.ADMIN
        assert Permission.TRADE == "write:trade"
