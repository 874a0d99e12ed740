import logging
import re
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, NotFoundError, ValidationError
from .models import SiteSetting
from .schemas import KEY_PATTERN, SettingCreate, SettingUpdate

logger = logging.getLogger(__name__)

_KEY = re.compile(KEY_PATTERN)


async def list_settings(db: AsyncSession) -> List[SiteSetting]:
    result = await db.execute(select(SiteSetting).order_by(SiteSetting.key.asc()))
    return list(result.scalars().all())


async def get_by_key(db: AsyncSession, key: str) -> Optional[SiteSetting]:
    result = await db.execute(select(SiteSetting).where(SiteSetting.key == key))
    return result.scalar_one_or_none()


async def get_setting(db: AsyncSession, key: str) -> SiteSetting:
    setting = await get_by_key(db, key)
    if setting is None:
        raise NotFoundError("Setting", key)
    return setting


async def create_setting(db: AsyncSession, data: SettingCreate) -> SiteSetting:
    if await get_by_key(db, data.key) is not None:
        raise ConflictError(f"Setting '{data.key}' already exists")
    setting = SiteSetting(key=data.key, value=data.value, description=data.description)
    db.add(setting)
    await db.commit()
    await db.refresh(setting)
    logger.info("Created setting %s", setting.key)
    return setting


async def update_setting(db: AsyncSession, key: str, data: SettingUpdate) -> SiteSetting:
    """Replaces the value; the description only changes when one is supplied."""
    setting = await get_setting(db, key)
    setting.value = data.value
    if data.description is not None:
        setting.description = data.description
    await db.commit()
    await db.refresh(setting)
    return setting


async def upsert_settings(db: AsyncSession, values: Dict[str, str]) -> List[SiteSetting]:
    """Writes several values in one transaction, creating missing keys."""
    for key in values:
        if not _KEY.match(key) or len(key) > 100:
            raise ValidationError(f"Invalid setting key: {key!r}")

    existing = {
        s.key: s
        for s in (await db.execute(select(SiteSetting).where(SiteSetting.key.in_(list(values))))).scalars()
    }
    for key, value in values.items():
        if key in existing:
            existing[key].value = value
        else:
            db.add(SiteSetting(key=key, value=value))
    await db.commit()
    logger.info("Saved %s setting(s)", len(values))
    return await list_settings(db)


async def delete_setting(db: AsyncSession, key: str) -> int:
    setting = await get_setting(db, key)
    setting_id = setting.id
    await db.delete(setting)
    await db.commit()
    logger.info("Deleted setting %s", key)
    return setting_id
