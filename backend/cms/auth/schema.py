from typing import Optional

from pydantic import Field

from ..models import CustomModel
from ..users.models import UserRole


class Principal(CustomModel):
    """Authenticated identity attached to a request."""
    user_id: int
    username: str
    role: UserRole


class LoginRequest(CustomModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class AuthUser(CustomModel):
    id: int
    username: str
    role: UserRole


class LoginResponse(CustomModel):
    success: bool = True
    token: str
    refresh_token: str
    token_type: str = "bearer"
    user: AuthUser


class VerifyResponse(CustomModel):
    success: bool = True
    user: AuthUser


class TokenRefreshRequest(CustomModel):
    refresh_token: Optional[str] = None


class TokenRefreshResponse(CustomModel):
    success: bool = True
    token: str
    token_type: str = "bearer"


class LogoutResponse(CustomModel):
    success: bool = True
