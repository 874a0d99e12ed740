import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict

from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..exceptions import ConfigurationError
from ..users import service as user_service
from ..users.models import User

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


def _secret() -> str:
    secret = settings.JWT_SECRET_KEY
    if not secret:
        raise ConfigurationError("JWT_SECRET_KEY is not configured")
    return secret


def _encode(user: User, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user.id),
        "username": user.username,
        "role": user.role,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(to_encode, _secret(), algorithm=settings.JWT_ALGORITHM)


def create_access_token(user: User) -> str:
    return _encode(user, ACCESS, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user: User) -> str:
    return _encode(user, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str = ACCESS) -> Optional[Dict]:
    """
    Validate signature, expiry and token type.

    Every failure returns None so callers cannot tell a forged token from an
    expired or garbled one.
    """
    secret = _secret()
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected_type:
        return None
    try:
        payload["user_id"] = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return payload


async def get_user_from_token(token: str, db: AsyncSession, expected_type: str = ACCESS) -> Optional[User]:
    """Resolve a token to its user; inactive or vanished users count as invalid."""
    payload = decode_token(token, expected_type)
    if payload is None:
        return None
    user = await user_service.get_user_by_id(payload["user_id"], db)
    if user is None or not user.is_active:
        return None
    return user


async def authenticate_user(
    db: AsyncSession, username: str, password: str
) -> Optional[User]:
    """
    Check a username/password pair.

    Unknown user, inactive user and wrong password all return None.
    """
    user = await user_service.get_user_by_username(username, db)
    if not user or not user.is_active:
        return None
    if not await user_service.verify_password(password, user.hashed_password):
        return None
    return user
