import logging
from typing import Optional

from fastapi import APIRouter, Request, Response

from ..config import settings
from ..database import SessionDep
from ..exceptions import AuthenticationError
from ..users.service import update_last_login
from . import service as auth_service
from .dependencies import CurrentUser
from .schema import (
    AuthUser,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    Principal,
    TokenRefreshRequest,
    TokenRefreshResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, response: Response, db: SessionDep):
    user = await auth_service.authenticate_user(db, body.username, body.password)
    if not user:
        logger.info("Failed login attempt for username=%s", body.username)
        raise AuthenticationError("Invalid credentials")

    access_token = auth_service.create_access_token(user)
    refresh_token = auth_service.create_refresh_token(user)
    await update_last_login(user=user, db=db)

    _set_auth_cookie(response, access_token)
    _set_refresh_cookie(response, refresh_token)
    logger.info("User id=%s logged in", user.id)

    return LoginResponse(
        token=access_token,
        refresh_token=refresh_token,
        user=AuthUser(id=user.id, username=user.username, role=user.role),
    )


@router.get("/verify", response_model=VerifyResponse)
async def verify(principal: Principal = CurrentUser):
    return VerifyResponse(
        user=AuthUser(id=principal.user_id, username=principal.username, role=principal.role)
    )


@router.post("/refresh", response_model=TokenRefreshResponse)
async def refresh_access_token(
    request: Request,
    response: Response,
    db: SessionDep,
    body: Optional[TokenRefreshRequest] = None,
):
    token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not token and body is not None:
        token = body.refresh_token
    if not token:
        raise AuthenticationError("Not authenticated")

    user = await auth_service.get_user_from_token(token, db, expected_type=auth_service.REFRESH)
    if not user:
        raise AuthenticationError("Invalid token")

    new_access_token = auth_service.create_access_token(user)
    _set_auth_cookie(response, new_access_token)
    await update_last_login(user=user, db=db)
    return TokenRefreshResponse(token=new_access_token)


@router.post("/logout", response_model=LogoutResponse)
async def logout(response: Response):
    response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, path="/")
    return LogoutResponse()
