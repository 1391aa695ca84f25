"""
Request dependencies for authentication and authorization checks.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from event_registry.core import permissions
from event_registry.core.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from event_registry.core.security import decode_access_token
from event_registry.database.db import get_db
from event_registry.models.users import User
from event_registry.services.users import get_user_by_username

bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_user(db: Session, credentials: Optional[HTTPAuthorizationCredentials]) -> User:
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise UnauthorizedError("Invalid or expired token")

    try:
        return get_user_by_username(db, payload["sub"])
    except NotFoundError:
        raise UnauthorizedError("Invalid or expired token")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    return _resolve_user(db, credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """The caller when a bearer token is sent, None for anonymous requests."""
    if credentials is None:
        return None
    return _resolve_user(db, credentials)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    authorize(permissions.is_admin(current_user.roles))
    return current_user


def authorize(allowed: bool, message: str = "Access denied") -> None:
    if not allowed:
        raise ForbiddenError(message)
