import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from passlib.context import CryptContext

from ..database import utcnow
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..pagination import Page, paginate
from .models import User as UserModel, UserRole
from .schema import UserCreate, UserUpdate, UserUpdatePassword

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Salted bcrypt hash; the result embeds algorithm, cost and salt."""
    if not plain_password:
        raise ValidationError("Password must not be empty")
    return pwd_context.hash(plain_password)


async def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """False for a wrong password and for empty or malformed hashes."""
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # passlib raises ValueError (UnknownHashError, malformed salt) for bad hashes
        logger.warning("Stored password hash could not be parsed")
        return False


async def create_user(user_data: UserCreate, db: AsyncSession) -> UserModel:
    existing_user = await get_user_by_username(user_data.username, db)
    if existing_user:
        raise ConflictError("Username already registered")

    db_user = UserModel(
        username=user_data.username,
        full_name=user_data.full_name,
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        role=user_data.role.value,
        is_active=True,
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    logger.info("Created user id=%s username=%s role=%s", db_user.id, db_user.username, db_user.role)
    return db_user


async def list_users(db: AsyncSession, *, page: int = 1, limit: int = 50, include_inactive: bool = True) -> Page:
    stmt = select(UserModel)
    if not include_inactive:
        stmt = stmt.where(UserModel.is_active.is_(True))
    stmt = stmt.order_by(UserModel.username.asc(), UserModel.id.asc())
    return await paginate(db, stmt, page=page, limit=limit)


async def update_user(db: AsyncSession, db_user: UserModel, user_in: UserUpdate) -> UserModel:
    """Partial update: only fields present in the request change."""
    update_data = user_in.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        if value is None and field in ("role", "is_active"):
            continue
        if isinstance(value, UserRole):
            value = value.value
        setattr(db_user, field, value)

    await db.commit()
    await db.refresh(db_user)
    return db_user


async def change_password(db: AsyncSession, db_user: UserModel, data: UserUpdatePassword) -> None:
    if not await verify_password(data.current_password, db_user.hashed_password):
        raise ValidationError("Current password is incorrect")
    db_user.hashed_password = hash_password(data.new_password)
    await db.commit()
    logger.info("Password changed for user id=%s", db_user.id)


async def set_password(db: AsyncSession, db_user: UserModel, new_password: str) -> None:
    db_user.hashed_password = hash_password(new_password)
    await db.commit()


async def deactivate_user(db: AsyncSession, user_id: int) -> UserModel:
    """Users are never deleted; they are switched off."""
    user = await get_user_by_id(user_id, db)
    if not user:
        raise NotFoundError("User", user_id)
    user.is_active = False
    await db.commit()
    await db.refresh(user)
    logger.info("Deactivated user id=%s", user.id)
    return user


async def get_user_by_id(user_id: int, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(username: str, db: AsyncSession) -> Optional[UserModel]:
    result = await db.execute(select(UserModel).where(UserModel.username == username))
    return result.scalar_one_or_none()


async def update_last_login(user: UserModel, db: AsyncSession) -> None:
    user.last_login = utcnow()
    await db.commit()
