from datetime import datetime
from typing import List, Literal, Optional

from pydantic import EmailStr, Field, model_validator

from ..models import BulkResponse, CustomModel
from .models import CampaignStatus


class SubscriberPreferences(CustomModel):
    frequency: Literal["daily", "weekly", "monthly"] = "weekly"
    categories: List[str] = Field(default_factory=list)


class SubscriberCreate(CustomModel):
    email: EmailStr
    source: str = Field("admin", max_length=50)
    preferences: Optional[SubscriberPreferences] = None


class SubscribeRequest(CustomModel):
    email: EmailStr
    source: str = Field("website", max_length=50)


class SubscribeResponse(CustomModel):
    success: bool = True
    message: str
    email: str


class UnsubscribeResponse(CustomModel):
    success: bool = True
    message: str


class SubscriberUpdate(CustomModel):
    is_active: Optional[bool] = None
    source: Optional[str] = Field(None, max_length=50)
    preferences: Optional[SubscriberPreferences] = None


class SubscriberOut(CustomModel):
    id: int
    email: str
    is_active: bool
    source: str
    subscribed_at: datetime
    unsubscribed_at: Optional[datetime] = None
    preferences: SubscriberPreferences


class SubscriberList(CustomModel):
    subscribers: List[SubscriberOut]
    total: int
    has_more: bool
    page: int
    limit: int


class NewsletterBulkRequest(CustomModel):
    action: Literal["activate", "deactivate", "delete", "update_preferences"]
    emails: List[str] = Field(..., min_length=1)
    preferences: Optional[SubscriberPreferences] = None

    @model_validator(mode="after")
    def _preferences_required(self):
        if self.action == "update_preferences" and self.preferences is None:
            raise ValueError("preferences are required for update_preferences")
        return self


class NewsletterBulkResponse(BulkResponse):
    not_found: List[str] = Field(default_factory=list)


class SubscriberStats(CustomModel):
    total: int
    active: int
    inactive: int
    last_30_days: int
    campaigns: int


class CampaignCreate(CustomModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = ""
    status: CampaignStatus = CampaignStatus.DRAFT


class CampaignUpdate(CustomModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = None
    status: Optional[CampaignStatus] = None


class CampaignOut(CustomModel):
    id: int
    name: str
    subject: str
    content: str
    status: CampaignStatus
    recipient_count: int
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
