# backend/cms/newsletter/models.py
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from ..database import Base, utcnow

def default_preferences() -> dict:
    return {"frequency": "weekly", "categories": []}

class CampaignStatus(str, PyEnum):
    DRAFT = "draft"
    READY = "ready"
    ARCHIVED = "archived"

class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)  # stored lower-case
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    source = Column(String(50), default="website", nullable=False)  # website, footer, admin, import
    subscribed_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    unsubscribed_at = Column(DateTime(timezone=True))
    unsubscribe_token = Column(String(64), unique=True, nullable=False, index=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"NewsletterSubscriber(id={self.id}, email={self.email!r}, active={self.is_active})"
    def __str__(self) -> str:
        return self.email

class NewsletterCampaign(Base):
    """Campaign draft. Nothing here sends mail; recipient_count is a snapshot taken on creation."""
    __tablename__ = "newsletter_campaigns"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    subject = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    status = Column(String(20), default=CampaignStatus.DRAFT.value, nullable=False)
    recipient_count = Column(Integer, default=0, nullable=False)
    created_by = Column(String(100))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"NewsletterCampaign(id={self.id}, name={self.name!r}, status={self.status!r})"
    def __str__(self) -> str:
        return self.name
