"""
Role-Based Access Control (RBAC) checks used by the API dependencies
"""
from typing import Any, List, Optional, Dict
from src.auth.permissions import Role, Permission, get_permissions_for_role
from src.auth.jwt_auth import extract_user_from_token
from src.config.settings import settings
from src.utils.exceptions import AccessDeniedError, AuthenticationError, ValidationError


def _anonymous_user() -> Dict[str, Any]:
    return {
        "user_id": 0,  # Anonymous user
        "username": "anonymous",
        "email": "",
        "roles": [settings.DEFAULT_UNAUTHENTICATED_ROLE]
    }


def get_user_from_context(context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Extract user information from context (token, headers, etc.)

    Args:
        context: Context dictionary containing token or user info

    Returns:
        User information dictionary

    Raises:
        AuthenticationError: If token is invalid or missing (unless unauthenticated access is allowed)
    """
    allow_unauth = settings.ALLOW_UNAUTHENTICATED_ACCESS

    token = (context or {}).get("token") or (context or {}).get("authorization")

    if not token:
        if allow_unauth:
            return _anonymous_user()
        raise AuthenticationError("Authentication token is required")

    # Remove "Bearer " prefix if present
    if isinstance(token, str) and token.startswith("Bearer "):
        token = token[7:]

    # A token that was provided but is invalid never falls back to anonymous
    try:
        return extract_user_from_token(token)
    except ValidationError as e:
        raise AuthenticationError(f"Invalid or expired authentication token: {e.message}") from e


def get_user_roles(user_info: Dict[str, Any]) -> List[Role]:
    """Known roles of a user; raises if there are none"""
    user_roles = [Role(role) for role in user_info.get("roles", []) if role in [r.value for r in Role]]
    if not user_roles:
        raise AccessDeniedError("User has no valid roles")
    return user_roles


def ensure_permission(user_info: Dict[str, Any], *required_permissions: Permission) -> List[Role]:
    """
    Raise unless the user's roles grant every required permission

    Returns:
        The user's roles
    """
    user_roles = get_user_roles(user_info)

    user_permissions = set()
    for role in user_roles:
        user_permissions.update(get_permissions_for_role(role))

    missing_permissions = [perm for perm in required_permissions if perm not in user_permissions]
    if missing_permissions:
        raise AccessDeniedError(
            f"Missing required permissions: {[p.value for p in missing_permissions]}"
        )
    return user_roles
