from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import settings
from ..database import SessionDep
from ..exceptions import AuthenticationError, AuthorizationError
from ..users.models import UserRole
from . import service as auth_service
from .schema import Principal

bearer_scheme = HTTPBearer(auto_error=False)


def extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    """Cookie first, then the Authorization: Bearer header."""
    cookie_token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if cookie_token:
        return cookie_token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_principal(
    request: Request,
    db: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    token = extract_token(request, credentials)
    if not token:
        raise AuthenticationError("Not authenticated")

    user = await auth_service.get_user_from_token(token, db)
    if user is None:
        raise AuthenticationError("Invalid token")

    principal = Principal(user_id=user.id, username=user.username, role=UserRole(user.role))
    request.state.principal = principal
    return principal

CurrentUser = Depends(get_current_principal)


def require_role(*roles: UserRole):
    """
    Dependency factory: authenticated callers whose role is not in ``roles``
    get 403, unauthenticated callers get 401 from get_current_principal.
    """
    allowed = frozenset(roles)

    async def _check_role(principal: Principal = CurrentUser) -> Principal:
        if principal.role not in allowed:
            raise AuthorizationError(
                f"Requires role: {', '.join(sorted(r.value for r in allowed))}"
            )
        return principal

    return _check_role

require_admin = require_role(UserRole.ADMIN)
require_editor = require_role(UserRole.ADMIN, UserRole.EDITOR)
