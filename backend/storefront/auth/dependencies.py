"""FastAPI dependencies resolving the caller from a bearer token."""
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from storefront.auth.security import decode_token
from storefront.db.database import get_db
from storefront.errors import AuthenticationFailed, PermissionDenied
from storefront.models.models import Profile

bearer_scheme = HTTPBearer(auto_error=False)


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials], db: Session) -> Profile:
    if credentials is None or not credentials.credentials:
        raise AuthenticationFailed("Access token required", code="TOKEN_MISSING")

    claims = decode_token(credentials.credentials)
    if not claims or not claims.get("sub"):
        raise AuthenticationFailed("Invalid or expired token", code="INVALID_TOKEN")

    user = db.query(Profile).filter(Profile.id == claims["sub"]).first()
    if not user:
        raise AuthenticationFailed("User not found", code="INVALID_TOKEN")
    if not user.is_active:
        raise PermissionDenied("Account is deactivated", code="ACCOUNT_INACTIVE")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Profile:
    return _resolve_user(credentials, db)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[Profile]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if credentials is None:
        return None
    try:
        return _resolve_user(credentials, db)
    except (AuthenticationFailed, PermissionDenied):
        return None


def require_roles(*roles: str) -> Callable[..., Profile]:
    """
    Dependency factory restricting an endpoint to the given roles.

    Example:
        >>> @router.get("/", dependencies=[Depends(require_roles("admin"))])
    """

    def checker(user: Profile = Depends(get_current_user)) -> Profile:
        if user.role not in roles:
            raise PermissionDenied(
                "Insufficient permissions",
                details={"required": list(roles), "current": user.role},
            )
        return user

    return checker


require_admin = require_roles("admin")
require_seller = require_roles("seller", "admin")
