from pydantic import EmailStr, Field
from typing import Optional, List
from datetime import datetime

from ..models import CustomModel
from .models import UserRole

class UserBase(CustomModel):
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[A-Za-z0-9_.@-]+$", json_schema_extra={"example": "starosta"})
    full_name: Optional[str] = Field(None, max_length=255, json_schema_extra={"example": "Pavel Fišer"})
    email: Optional[EmailStr] = Field(None, json_schema_extra={"example": "starosta@example.com"})

class UserCreate(UserBase):
    password: str = Field(..., min_length=8, json_schema_extra={"example": "strongpassword123"})
    role: UserRole = UserRole.VIEWER

class UserUpdate(CustomModel):
    full_name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

class UserUpdatePassword(CustomModel):
    current_password: str = Field(..., json_schema_extra={"example": "strongpassword123"})
    new_password: str = Field(..., min_length=8, json_schema_extra={"example": "new_strong_password_456"})

class UserPublic(CustomModel):
    id: int
    username: str
    role: UserRole

class UserMe(UserPublic):
    full_name: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    last_login: Optional[datetime] = None

class UserList(CustomModel):
    users: List[UserMe]
    total: int
    has_more: bool
