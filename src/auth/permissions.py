"""
Permission definitions and role-based access control
"""
from enum import Enum
from typing import Set, Dict


class Role(str, Enum):
    """User roles"""
    ADMIN = "admin"
    USER = "user"


class Permission(str, Enum):
    """Available permissions"""
    # Market data
    READ_PRICES = "read:prices"

    # Own account
    READ_OWN_WALLET = "read:own_wallet"
    TRADE = "write:trade"
    REQUEST_FUNDS = "write:funds_request"
    INVEST = "write:investment"
    APPLY_ALGORITHM = "write:algorithm_application"

    # Back office
    READ_ALL_WALLETS = "read:all_wallets"
    REVIEW_FUNDS = "review:funds_request"
    ADJUST_WALLETS = "write:wallets"
    MANAGE_PLANS = "write:plans"
    MANAGE_ALGORITHM_ACCESS = "write:algorithm_access"
    RUN_MATURITY = "run:maturity"


USER_PERMISSIONS: Set[Permission] = {
    Permission.READ_PRICES,
    Permission.READ_OWN_WALLET,
    Permission.TRADE,
    Permission.REQUEST_FUNDS,
    Permission.INVEST,
    Permission.APPLY_ALGORITHM,
}

# Role to permissions mapping
ROLE_PERMISSIONS: Dict[Role, Set[Permission]] = {
    Role.USER: USER_PERMISSIONS,
    Role.ADMIN: USER_PERMISSIONS | {
        Permission.READ_ALL_WALLETS,
        Permission.REVIEW_FUNDS,
        Permission.ADJUST_WALLETS,
        Permission.MANAGE_PLANS,
        Permission.MANAGE_ALGORITHM_ACCESS,
        Permission.RUN_MATURITY,
    },
}


def get_permissions_for_role(role: Role) -> Set[Permission]:
    """Get all permissions for a role"""
    return ROLE_PERMISSIONS.get(role, set())


def has_permission(role: Role, permission: Permission) -> bool:
    """Check if a role has a specific permission"""
    return permission in ROLE_PERMISSIONS.get(role, set())
