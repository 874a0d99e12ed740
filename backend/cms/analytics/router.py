from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Header, Query, status

from ..auth.dependencies import CurrentUser
from ..database import SessionDep, utcnow
from . import service
from .schemas import AnalyticsSummary, DailyMetrics, TrackEventRequest, TrackEventResponse

router = APIRouter(prefix="/analytics", tags=["analytics"])
public_router = APIRouter(prefix="/analytics", tags=["public"])

DEFAULT_DAYS = 30


@router.get("", response_model=AnalyticsSummary, dependencies=[CurrentUser])
async def get_summary(
    db: SessionDep,
    start: Optional[datetime] = Query(None, alias="from"),
    end: Optional[datetime] = Query(None, alias="to"),
):
    return await service.analytics_summary(db, start, end)


@router.get("/daily", response_model=DailyMetrics, dependencies=[CurrentUser])
async def get_daily_metrics(
    db: SessionDep,
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    end = end or utcnow().date()
    start = start or end - timedelta(days=DEFAULT_DAYS - 1)
    return await service.daily_metrics(db, start, end)


@public_router.post("/events", response_model=TrackEventResponse, status_code=status.HTTP_201_CREATED)
async def track_event(body: TrackEventRequest, db: SessionDep, user_agent: Optional[str] = Header(None)):
    event = await service.track_event(db, body, user_agent)
    return TrackEventResponse(event_id=event.id)
