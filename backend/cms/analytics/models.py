# backend/cms/analytics/models.py
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, Text, DateTime, JSON
from sqlalchemy.sql import func
from ..database import Base, utcnow

class AnalyticsEventType(str, PyEnum):
    PAGEVIEW = "pageview"
    CLICK = "click"
    FORM_SUBMIT = "form_submit"
    DOWNLOAD = "download"

class AnalyticsEvent(Base):
    """One tracked visitor interaction on the public site."""
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(String(20), nullable=False, index=True)
    path = Column(String(500), nullable=False)
    title = Column(String(500))
    user_id = Column(String(100))
    session_id = Column(String(100), nullable=False, index=True)
    user_agent = Column(Text)
    referrer = Column(String(1000))
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"AnalyticsEvent(id={self.id}, type={self.event_type!r}, path={self.path!r})"
    def __str__(self) -> str:
        return f"{self.event_type} {self.path}"
