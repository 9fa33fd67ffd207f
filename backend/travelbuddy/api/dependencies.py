"""
Shared route dependencies: authentication and role checks.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from travelbuddy.core.config import settings
from travelbuddy.core.exceptions import UnauthorizedError, ForbiddenError
from travelbuddy.core.security import decode_access_token
from travelbuddy.db.session import get_db
from travelbuddy.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """The auth cookie wins over the Authorization header."""
    token = request.cookies.get(settings.COOKIE_NAME)
    if token:
        return token
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return None


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the authenticated user from the cookie or bearer token."""
    token = _extract_token(request, credentials)
    if not token:
        raise UnauthorizedError()

    payload = decode_access_token(token)
    if not payload or "sub" not in payload:
        raise UnauthorizedError("Invalid token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise UnauthorizedError()

    if user.is_blocked:
        raise ForbiddenError("User account is blocked")

    return user


def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Like get_current_user, but anonymous requests yield None."""
    if not _extract_token(request, credentials):
        return None
    return get_current_user(request, credentials, db)


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Allow only administrators."""
    if not current_user.is_admin:
        raise ForbiddenError("Forbidden - Admin access required")
    return current_user
