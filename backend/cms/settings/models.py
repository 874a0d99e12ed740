# backend/cms/settings/models.py
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from ..database import Base, utcnow

class SiteSetting(Base):
    """Free-form key/value site configuration edited from the back office."""
    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False, default="")
    description = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    def __repr__(self) -> str:
        return f"SiteSetting(id={self.id}, key={self.key!r})"
    def __str__(self) -> str:
        return self.key
