# backend/cms/categories/models.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base, utcnow

class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        Index("ix_categories_display_order", "display_order"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(Text)
    color = Column(String(7))  # #RRGGBB
    icon = Column(String(255))
    display_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    articles = relationship("Article", back_populates="category", passive_deletes=True)

    def __repr__(self) -> str:
        return f"Category(id={self.id}, slug={self.slug!r}, order={self.display_order})"
    def __str__(self) -> str:
        return self.name
