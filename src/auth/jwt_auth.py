"""
JWT token issuing and validation

Tokens are issued by an external identity provider (or the helper scripts in
development) and carry ``user_id``, ``username`` and ``roles``. The user id
is the integer wallet owner id used throughout the ledger.
"""
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from src.config.settings import settings
from src.utils.exceptions import ValidationError


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token

    Args:
        data: Claims to encode (user_id, username, roles)
        expires_delta: Lifetime; defaults to JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    """
    to_encode = data.copy()
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": issued_at + lifetime, "iat": issued_at})

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a token's signature and expiry

    Raises:
        ValidationError: If token is invalid, expired, or malformed
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise ValidationError(f"Invalid token: {str(e)}", "token") from e


def validate_token(token: str) -> Dict[str, Any]:
    """Validate a token (with or without "Bearer " prefix) and return its payload"""
    if token.startswith("Bearer "):
        token = token[7:]

    if not token:
        raise ValidationError("Token is required", "token")

    payload = decode_token(token)

    if "user_id" not in payload and "sub" not in payload:
        raise ValidationError("Token missing user identifier", "token")

    return payload


def extract_user_from_token(token: str) -> Dict[str, Any]:
    """
    Extract the caller identity from a token

    Returns:
        Dictionary with user_id (int), username, email and roles (list)
    """
    payload = validate_token(token)

    raw_user_id = payload.get("user_id", payload.get("sub"))
    try:
        user_id = int(raw_user_id)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Token user identifier must be an integer: {raw_user_id}", "token") from e

    roles = payload.get("roles", [])
    if isinstance(roles, str):
        roles = [roles]
    elif not isinstance(roles, list):
        roles = []

    return {
        "user_id": user_id,
        "username": payload.get("username") or payload.get("preferred_username", ""),
        "email": payload.get("email", ""),
        "roles": roles
    }
