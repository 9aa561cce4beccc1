"""
Token helpers for local development and tests
"""
from datetime import timedelta
from typing import List, Optional
from src.auth.jwt_auth import create_access_token
from src.auth.permissions import Role


def create_test_token(
    user_id: int,
    username: str = "test_user",
    roles: Optional[List[str]] = None,
    email: Optional[str] = None,
    expires_minutes: int = 30
) -> str:
    """
    Create a signed token for development/testing

    Unknown role names are dropped; a token left without roles gets ``user``.

    Example:
        token = create_test_token(user_id=7, username="alice", roles=["user"])
    """
    valid_roles = [r.value for r in Role]
    roles = [r for r in (roles or []) if r in valid_roles] or [Role.USER.value]

    data = {
        "user_id": user_id,
        "username": username,
        "roles": roles,
    }
    if email:
        data["email"] = email

    return create_access_token(data, expires_delta=timedelta(minutes=expires_minutes))


def create_admin_token(user_id: int = 1, username: str = "admin", expires_minutes: int = 30) -> str:
    """Create a token with admin role"""
    return create_test_token(user_id=user_id, username=username, roles=["admin"], expires_minutes=expires_minutes)


def create_user_token(user_id: int = 2, username: str = "user", expires_minutes: int = 30) -> str:
    """Create a token with user role"""
    return create_test_token(user_id=user_id, username=username, roles=["user"], expires_minutes=expires_minutes)
