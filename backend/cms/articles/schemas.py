# backend/cms/articles/schemas.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from ..categories.schemas import CategorySummary
from ..models import CustomModel, as_utc
from .models import ArticleStatus

_CATEGORY_ALIASES = AliasChoices("category", "categoryId", "category_id")


class ArticleCreate(CustomModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    category_id: int = Field(..., validation_alias=_CATEGORY_ALIASES)
    slug: Optional[str] = Field(None, max_length=500)
    excerpt: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    status: ArticleStatus = ArticleStatus.DRAFT
    published_at: Optional[datetime] = None
    image_url: Optional[str] = Field(None, max_length=1000)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    is_featured: bool = False
    source: str = Field("admin", max_length=50)

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("published_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class ArticleUpdate(CustomModel):
    """Partial update: omitted fields keep their stored value."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    category_id: Optional[int] = Field(None, validation_alias=_CATEGORY_ALIASES)
    slug: Optional[str] = Field(None, max_length=500)
    excerpt: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[ArticleStatus] = None
    published_at: Optional[datetime] = None
    image_url: Optional[str] = Field(None, max_length=1000)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)
    is_featured: Optional[bool] = None
    source: Optional[str] = Field(None, max_length=50)

    @field_validator("title", "content")
    @classmethod
    def _not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("published_at")
    @classmethod
    def _utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class ArticleBulkRequest(CustomModel):
    action: Literal["delete", "update"]
    article_ids: List[int] = Field(..., min_length=1)
    updates: Optional[ArticleUpdate] = None

    @model_validator(mode="after")
    def _updates_required(self):
        if self.action == "update" and (self.updates is None or not self.updates.model_fields_set):
            raise ValueError("updates are required for the update action")
        return self


class ArticleAuthor(CustomModel):
    id: int
    username: str
    full_name: Optional[str] = None


class ArticleOut(CustomModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    category_id: int
    category: Optional[CategorySummary] = None
    author_id: int
    author: Optional[ArticleAuthor] = None
    tags: List[str] = Field(default_factory=list)
    status: ArticleStatus
    published_at: Optional[datetime] = None
    image_url: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    is_featured: bool
    source: str
    created_at: datetime
    updated_at: datetime


class ArticleList(CustomModel):
    articles: List[ArticleOut]
    total: int
    has_more: bool
    page: int
    limit: int


class ArticleStats(CustomModel):
    total: int
    published: int
    drafts: int
    archived: int
    scheduled: int
    featured: int
