"""
Authentication and authorization modules
"""
from src.auth.jwt_auth import create_access_token, decode_token, validate_token, extract_user_from_token
from src.auth.rbac import get_user_from_context, ensure_permission
from src.auth.permissions import Role, Permission, get_permissions_for_role, has_permission

__all__ = [
    "create_access_token",
    "decode_token",
    "validate_token",
    "extract_user_from_token",
    "get_user_from_context",
    "ensure_permission",
    "Role",
    "Permission",
    "get_permissions_for_role",
    "has_permission",
]
