# backend/cms/articles/models.py
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON,
    Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base, utcnow

class ArticleStatus(str, PyEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

class ArticleSource(str, PyEnum):
    ADMIN = "admin"
    IMPORT = "import"
    API = "api"

class Article(Base):
    __tablename__ = "articles"
    __table_args__ = (
        Index("ix_articles_status_published_at", "status", "published_at"),
        Index("ix_articles_updated_at", "updated_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(500), nullable=False)
    slug = Column(String(500), unique=True, nullable=False, index=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(
        SQLEnum(ArticleStatus, name="article_status", values_callable=lambda e: [m.value for m in e]),
        default=ArticleStatus.DRAFT,
        nullable=False,
    )
    # null on a published article means "visible immediately"
    published_at = Column(DateTime(timezone=True))
    image_url = Column(String(1000))
    meta_title = Column(String(255))
    meta_description = Column(String(500))
    is_featured = Column(Boolean, default=False, nullable=False)
    source = Column(String(50), default=ArticleSource.ADMIN.value, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    category = relationship("Category", back_populates="articles")
    author = relationship("User", back_populates="articles")

    def __repr__(self) -> str:
        return f"Article(id={self.id}, slug={self.slug!r}, status={self.status!r})"
    def __str__(self) -> str:
        return self.title
