"""
FastAPI dependencies
"""
from typing import Any, Callable, Dict, Generator, Optional
from fastapi import Depends, Header
from sqlalchemy.orm import Session
from src.auth.permissions import Permission
from src.auth.rbac import ensure_permission, get_user_from_context
from src.database.connection import database
from src.services.price_source import PriceSimulator, PriceSource, get_price_source, price_simulator


def get_db() -> Generator[Session, None, None]:
    """Session per request from the database singleton"""
    yield from database.get_session()


def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """Caller identity from the bearer token"""
    return get_user_from_context({"authorization": authorization} if authorization else None)


def require_permission(*permissions: Permission) -> Callable[..., Dict[str, Any]]:
    """
    Dependency factory requiring the caller to hold every listed permission

    Usage:
        @router.post("/admin/plans")
        def create_plan(user: Dict = Depends(require_permission(Permission.MANAGE_PLANS))):
            ...
    """
    def dependency(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        ensure_permission(current_user, *permissions)
        return current_user

    return dependency


def get_valuation_source() -> PriceSource:
    return get_price_source()


def get_simulator() -> PriceSimulator:
    return price_simulator
