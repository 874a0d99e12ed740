from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..models import CustomModel
from .models import AnalyticsEventType


class TrackEventRequest(CustomModel):
    type: AnalyticsEventType
    path: str = Field(..., min_length=1, max_length=500)
    title: Optional[str] = Field(None, max_length=500)
    user_id: Optional[str] = Field(None, max_length=100)
    session_id: str = Field(..., min_length=1, max_length=100)
    referrer: Optional[str] = Field(None, max_length=1000)
    metadata: Optional[Dict[str, Any]] = None


class TrackEventResponse(CustomModel):
    success: bool = True
    message: str = "Event tracked"
    event_id: int


class PageViewStats(CustomModel):
    total: int
    this_month: int
    this_week: int
    today: int
    trend: float  # percent change of this month against the previous one


class VisitorStats(CustomModel):
    unique: int


class TopPage(CustomModel):
    path: str
    title: str
    views: int
    unique_views: int


class ReferrerStats(CustomModel):
    source: str
    visits: int
    percentage: float


class DeviceStats(CustomModel):
    desktop: int = 0
    mobile: int = 0
    tablet: int = 0


class TimeRange(CustomModel):
    start: datetime
    end: datetime


class AnalyticsSummary(CustomModel):
    page_views: PageViewStats
    visitors: VisitorStats
    top_pages: List[TopPage]
    referrers: List[ReferrerStats]
    devices: DeviceStats
    time_range: TimeRange


class DailyMetric(CustomModel):
    day: date
    page_views: int
    unique_visitors: int
    bounce_rate: float
    avg_session_duration: int  # seconds


class DailyMetrics(CustomModel):
    days: List[DailyMetric]
    mock: bool = False
