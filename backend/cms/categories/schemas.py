from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from ..models import CustomModel

_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class CategoryBase(CustomModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=255)
    display_order: int = 0
    is_active: bool = True
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CustomModel):
    """Every field optional; omitted fields keep their stored value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=255)
    display_order: Optional[int] = None
    is_active: Optional[bool] = None
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class CategoryOut(CustomModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    display_order: int = 0
    is_active: bool
    parent_id: Optional[int] = None
    article_count: int = 0
    created_at: datetime
    updated_at: datetime


class CategorySummary(CustomModel):
    id: int
    name: str
    slug: str
    color: Optional[str] = None


class CategoryList(CustomModel):
    categories: List[CategoryOut]
    total: int
    has_more: bool
    page: int
    limit: int


class CategoryOrderItem(CustomModel):
    id: int
    display_order: int


class CategoryReorderRequest(CustomModel):
    items: List[CategoryOrderItem] = Field(..., min_length=1)


class CategoryStats(CustomModel):
    total: int
    active: int
    inactive: int
