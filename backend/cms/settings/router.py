from fastapi import APIRouter, Depends, status

from ..auth.dependencies import CurrentUser, require_admin
from ..database import SessionDep
from ..models import DeleteResponse
from . import service
from .schemas import SettingCreate, SettingList, SettingOut, SettingsUpsert, SettingUpdate

router = APIRouter(prefix="/settings", tags=["settings"])


def _to_list(settings) -> SettingList:
    return SettingList(settings=[SettingOut.model_validate(s) for s in settings], total=len(settings))


@router.get("", response_model=SettingList, dependencies=[CurrentUser])
async def list_settings(db: SessionDep):
    return _to_list(await service.list_settings(db))


@router.put("", response_model=SettingList, dependencies=[Depends(require_admin)])
async def save_settings(body: SettingsUpsert, db: SessionDep):
    return _to_list(await service.upsert_settings(db, body.settings))


@router.post("", response_model=SettingOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_setting(body: SettingCreate, db: SessionDep):
    return SettingOut.model_validate(await service.create_setting(db, body))


@router.get("/{key}", response_model=SettingOut, dependencies=[CurrentUser])
async def get_setting(key: str, db: SessionDep):
    return SettingOut.model_validate(await service.get_setting(db, key))


@router.put("/{key}", response_model=SettingOut, dependencies=[Depends(require_admin)])
async def update_setting(key: str, body: SettingUpdate, db: SessionDep):
    return SettingOut.model_validate(await service.update_setting(db, key, body))


@router.delete("/{key}", response_model=DeleteResponse, dependencies=[Depends(require_admin)])
async def delete_setting(key: str, db: SessionDep):
    return DeleteResponse(id=await service.delete_setting(db, key))
