# backend/cms/users/models.py
from enum import Enum as PyEnum
from sqlalchemy import Column, Integer, String, DateTime, Boolean
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base, utcnow

class UserRole(str, PyEnum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)  # case-sensitive
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.VIEWER.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    full_name = Column(String(255))
    email = Column(String(255))
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    articles = relationship("Article", back_populates="author")

    def __repr__(self) -> str:
        return f"User(id={self.id}, username={self.username!r}, role={self.role!r}, active={self.is_active})"
    def __str__(self) -> str:
        return f"{self.username} ({self.role})"
