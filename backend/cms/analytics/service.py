import logging
import random
from collections import Counter
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import utcnow
from ..exceptions import ValidationError
from ..models import as_utc
from .models import AnalyticsEvent, AnalyticsEventType
from .schemas import (
    AnalyticsSummary,
    DailyMetric,
    DailyMetrics,
    DeviceStats,
    PageViewStats,
    ReferrerStats,
    TimeRange,
    TopPage,
    TrackEventRequest,
    VisitorStats,
)

logger = logging.getLogger(__name__)

TOP_LIMIT = 10
MAX_RANGE_DAYS = 366

_PAGEVIEW = AnalyticsEvent.event_type == AnalyticsEventType.PAGEVIEW.value


def device_type(user_agent: Optional[str]) -> str:
    ua = (user_agent or "").lower()
    if "tablet" in ua or "ipad" in ua:
        return "tablet"
    if "mobile" in ua or "android" in ua or "iphone" in ua:
        return "mobile"
    return "desktop"


def referrer_source(referrer: Optional[str]) -> str:
    """Host of the referring page; "Direct" when there is none."""
    if not referrer or not referrer.strip():
        return "Direct"
    try:
        host = urlsplit(referrer.strip()).hostname
    except ValueError:
        host = None
    return host or "Unknown"


async def track_event(db: AsyncSession, data: TrackEventRequest, user_agent: Optional[str]) -> AnalyticsEvent:
    event = AnalyticsEvent(
        event_type=data.type.value,
        path=data.path,
        title=data.title,
        user_id=data.user_id,
        session_id=data.session_id,
        user_agent=user_agent,
        referrer=data.referrer,
        event_metadata=data.metadata,
    )
    db.add(event)
    await db.commit()
    await db.refresh(event)
    logger.debug("Tracked %s on %s", event.event_type, event.path)
    return event


def _period_starts(now: datetime) -> Tuple[datetime, datetime, datetime, datetime]:
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    month = today.replace(day=1)
    last_month = (month - timedelta(days=1)).replace(day=1)
    return today, today - timedelta(days=7), month, last_month


async def analytics_summary(
    db: AsyncSession,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> AnalyticsSummary:
    """Page view totals, top pages, referrers and devices, optionally limited to [start, end]."""
    now = as_utc(now) if now else utcnow()
    start, end = as_utc(start), as_utc(end)
    if start and end and end < start:
        raise ValidationError("'to' must not be before 'from'")

    base = [_PAGEVIEW]
    if start:
        base.append(AnalyticsEvent.created_at >= start)
    if end:
        base.append(AnalyticsEvent.created_at <= end)

    async def _count(*conditions) -> int:
        stmt = select(func.count(AnalyticsEvent.id)).where(*base, *conditions)
        return (await db.execute(stmt)).scalar_one()

    today, week, month, last_month = _period_starts(now)
    this_month = await _count(AnalyticsEvent.created_at >= month)
    previous = await _count(AnalyticsEvent.created_at >= last_month, AnalyticsEvent.created_at < month)
    trend = round((this_month - previous) / previous * 100, 2) if previous else 0.0
    page_views = PageViewStats(
        total=await _count(),
        this_month=this_month,
        this_week=await _count(AnalyticsEvent.created_at >= week),
        today=await _count(AnalyticsEvent.created_at >= today),
        trend=trend,
    )

    unique = (await db.execute(select(func.count(distinct(AnalyticsEvent.session_id))).where(*base))).scalar_one()

    views = func.count(AnalyticsEvent.id)
    top_rows = await db.execute(
        select(
            AnalyticsEvent.path,
            func.max(AnalyticsEvent.title),
            views,
            func.count(distinct(AnalyticsEvent.session_id)),
        )
        .where(*base)
        .group_by(AnalyticsEvent.path)
        .order_by(views.desc(), AnalyticsEvent.path.asc())
        .limit(TOP_LIMIT)
    )
    top_pages = [
        TopPage(path=path, title=title or path, views=count, unique_views=sessions)
        for path, title, count, sessions in top_rows.all()
    ]

    sources: Counter = Counter()
    for referrer, count in (await db.execute(
        select(AnalyticsEvent.referrer, views).where(*base).group_by(AnalyticsEvent.referrer)
    )).all():
        sources[referrer_source(referrer)] += count
    total_refs = sum(sources.values())
    referrers = [
        ReferrerStats(source=source, visits=count, percentage=round(count / total_refs * 100, 2))
        for source, count in sorted(sources.items(), key=lambda item: (-item[1], item[0]))[:TOP_LIMIT]
    ]

    devices: Dict[str, int] = {"desktop": 0, "mobile": 0, "tablet": 0}
    for user_agent, count in (await db.execute(
        select(AnalyticsEvent.user_agent, views).where(*base).group_by(AnalyticsEvent.user_agent)
    )).all():
        devices[device_type(user_agent)] += count

    return AnalyticsSummary(
        page_views=page_views,
        visitors=VisitorStats(unique=unique),
        top_pages=top_pages,
        referrers=referrers,
        devices=DeviceStats(**devices),
        time_range=TimeRange(start=start or month, end=end or now),
    )


def _days(start: date, end: date) -> List[date]:
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


async def _aggregate_daily(db: AsyncSession, start: date, end: date) -> List[DailyMetric]:
    # a session counts toward the day of its first page view
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc)
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
    rows = await db.execute(
        select(
            func.count(AnalyticsEvent.id),
            func.min(AnalyticsEvent.created_at),
            func.max(AnalyticsEvent.created_at),
        )
        .where(_PAGEVIEW, AnalyticsEvent.created_at >= lower, AnalyticsEvent.created_at < upper)
        .group_by(AnalyticsEvent.session_id)
    )

    totals: Dict[date, Dict[str, float]] = {}
    for count, first, last in rows.all():
        day = as_utc(first).date()
        bucket = totals.setdefault(day, {"views": 0, "sessions": 0, "bounces": 0, "seconds": 0.0})
        bucket["views"] += count
        bucket["sessions"] += 1
        bucket["bounces"] += 1 if count == 1 else 0
        bucket["seconds"] += (as_utc(last) - as_utc(first)).total_seconds()

    metrics = []
    for day in _days(start, end):
        bucket = totals.get(day)
        if not bucket:
            metrics.append(DailyMetric(day=day, page_views=0, unique_visitors=0, bounce_rate=0.0, avg_session_duration=0))
            continue
        sessions = bucket["sessions"]
        metrics.append(DailyMetric(
            day=day,
            page_views=int(bucket["views"]),
            unique_visitors=int(sessions),
            bounce_rate=round(bucket["bounces"] / sessions, 2),
            avg_session_duration=int(round(bucket["seconds"] / sessions)),
        ))
    return metrics


def mock_daily_metrics(start: date, end: date) -> List[DailyMetric]:
    """Plausible sample figures, stable for a given day."""
    metrics = []
    for day in _days(start, end):
        rng = random.Random(day.isoformat())
        metrics.append(DailyMetric(
            day=day,
            page_views=rng.randint(100, 1099),
            unique_visitors=rng.randint(50, 549),
            bounce_rate=round(rng.uniform(0.2, 0.8), 2),
            avg_session_duration=rng.randint(30, 329),
        ))
    return metrics


async def daily_metrics(db: AsyncSession, start: date, end: date) -> DailyMetrics:
    if end < start:
        raise ValidationError("'end' must not be before 'start'")
    if (end - start).days >= MAX_RANGE_DAYS:
        raise ValidationError(f"Date range is limited to {MAX_RANGE_DAYS} days")

    try:
        return DailyMetrics(days=await _aggregate_daily(db, start, end))
    except SQLAlchemyError:
        if not settings.ANALYTICS_MOCK_FALLBACK:
            raise
        await db.rollback()
        logger.exception("Analytics query failed; serving sample data")
        return DailyMetrics(days=mock_daily_metrics(start, end), mock=True)
