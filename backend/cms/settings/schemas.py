from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from ..models import CustomModel

KEY_PATTERN = r"^[A-Za-z0-9_.-]+$"


class SettingCreate(CustomModel):
    key: str = Field(..., min_length=1, max_length=100, pattern=KEY_PATTERN, json_schema_extra={"example": "site.title"})
    value: str = ""
    description: Optional[str] = None


class SettingUpdate(CustomModel):
    value: str
    description: Optional[str] = None


class SettingsUpsert(CustomModel):
    settings: Dict[str, str] = Field(..., min_length=1)


class SettingOut(CustomModel):
    id: int
    key: str
    value: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class SettingList(CustomModel):
    settings: List[SettingOut]
    total: int
