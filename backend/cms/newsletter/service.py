import csv
import io
import logging
import secrets
from datetime import timedelta
from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import utcnow
from ..exceptions import CMSError, ConflictError, NotFoundError
from ..models import BulkItemResult, as_utc
from ..pagination import Page
from .models import NewsletterCampaign, NewsletterSubscriber, default_preferences
from .schemas import (
    CampaignCreate,
    CampaignUpdate,
    NewsletterBulkResponse,
    SubscriberCreate,
    SubscriberPreferences,
    SubscriberStats,
    SubscriberUpdate,
)
from .store import SubscriberStore

logger = logging.getLogger(__name__)

CSV_HEADER = ["id", "email", "subscribed_at", "is_active", "source", "unsubscribed_at"]
RECENT_WINDOW = timedelta(days=30)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _new_token() -> str:
    return secrets.token_urlsafe(32)


async def list_subscribers(
    store: SubscriberStore,
    *,
    active_only: bool = False,
    source: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> Page:
    return await store.list(active_only=active_only, source=source, search=search, page=page, limit=limit)


async def get_subscriber(store: SubscriberStore, subscriber_id: int) -> NewsletterSubscriber:
    subscriber = await store.get_by_id(subscriber_id)
    if subscriber is None:
        raise NotFoundError("Subscriber", subscriber_id)
    return subscriber


async def add_subscriber(store: SubscriberStore, data: SubscriberCreate) -> NewsletterSubscriber:
    email = normalize_email(data.email)
    if await store.get_by_email(email) is not None:
        raise ConflictError(f"Email {email} is already registered")
    preferences = data.preferences.model_dump() if data.preferences else default_preferences()
    subscriber = NewsletterSubscriber(
        email=email,
        source=data.source,
        is_active=True,
        subscribed_at=utcnow(),
        unsubscribe_token=_new_token(),
        preferences=preferences,
    )
    subscriber = await store.add(subscriber)
    logger.info("Added subscriber id=%s source=%s", subscriber.id, subscriber.source)
    return subscriber


async def subscribe(store: SubscriberStore, email: str, source: str = "website") -> tuple[NewsletterSubscriber, bool]:
    """Public sign-up. Returns ``(subscriber, created)``; reactivates an inactive address."""
    email = normalize_email(email)
    existing = await store.get_by_email(email)
    if existing is None:
        subscriber = await add_subscriber(store, SubscriberCreate(email=email, source=source))
        return subscriber, True

    if existing.is_active:
        raise ConflictError("This email is already subscribed")

    existing.is_active = True
    existing.unsubscribed_at = None
    existing.subscribed_at = utcnow()
    existing.source = source
    subscriber = await store.save(existing)
    logger.info("Reactivated subscriber id=%s", subscriber.id)
    return subscriber, False


async def unsubscribe(store: SubscriberStore, token: str) -> NewsletterSubscriber:
    subscriber = await store.get_by_token(token) if token else None
    if subscriber is None:
        raise NotFoundError("Subscription", "token")
    if subscriber.is_active:
        subscriber.is_active = False
        subscriber.unsubscribed_at = utcnow()
        subscriber = await store.save(subscriber)
        logger.info("Subscriber id=%s unsubscribed", subscriber.id)
    return subscriber


def _set_active(subscriber: NewsletterSubscriber, active: bool) -> None:
    if active and not subscriber.is_active:
        subscriber.is_active = True
        subscriber.unsubscribed_at = None
    elif not active and subscriber.is_active:
        subscriber.is_active = False
        subscriber.unsubscribed_at = utcnow()


async def update_subscriber(store: SubscriberStore, subscriber_id: int, data: SubscriberUpdate) -> NewsletterSubscriber:
    subscriber = await get_subscriber(store, subscriber_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("is_active") is not None:
        _set_active(subscriber, update_data["is_active"])
    if update_data.get("source"):
        subscriber.source = update_data["source"]
    if update_data.get("preferences") is not None:
        subscriber.preferences = update_data["preferences"]
    return await store.save(subscriber)


async def delete_subscriber(store: SubscriberStore, subscriber_id: int) -> None:
    subscriber = await get_subscriber(store, subscriber_id)
    await store.delete(subscriber)
    logger.info("Deleted subscriber id=%s", subscriber_id)


async def bulk_action(
    store: SubscriberStore,
    action: str,
    emails: Iterable[str],
    preferences: Optional[SubscriberPreferences] = None,
) -> NewsletterBulkResponse:
    wanted: List[str] = []
    for email in emails:
        email = normalize_email(email)
        if email and email not in wanted:
            wanted.append(email)

    found = {s.email for s in await store.find_by_emails(wanted)}
    not_found = [e for e in wanted if e not in found]

    results = []
    for email in wanted:
        if email not in found:
            continue
        # reload per item: a rollback after a failed item expires earlier rows
        subscriber = await store.get_by_email(email)
        if subscriber is None:
            not_found.append(email)
            continue
        subscriber_id = subscriber.id
        try:
            if action == "delete":
                await store.delete(subscriber)
            else:
                if action == "activate":
                    _set_active(subscriber, True)
                elif action == "deactivate":
                    _set_active(subscriber, False)
                elif action == "update_preferences":
                    subscriber.preferences = preferences.model_dump()
                await store.save(subscriber)
            results.append(BulkItemResult(id=subscriber_id, email=email, success=True, action=action))
        except (CMSError, SQLAlchemyError, OSError) as e:
            await store.rollback()
            logger.warning("Bulk %s failed for subscriber id=%s: %s", action, subscriber_id, e)
            results.append(BulkItemResult(id=subscriber_id, email=email, success=False, action=action, error=str(e)))

    response = NewsletterBulkResponse.from_results(results, not_found=not_found)
    logger.info(
        "Newsletter bulk %s: %s succeeded, %s failed, %s not found",
        action, response.success, response.failed, len(not_found),
    )
    return response


def _csv_datetime(value) -> str:
    return as_utc(value).isoformat() if value is not None else ""


async def export_csv(store: SubscriberStore) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in await store.all():
        writer.writerow([
            s.id,
            s.email,
            _csv_datetime(s.subscribed_at),
            "true" if s.is_active else "false",
            s.source or "",
            _csv_datetime(s.unsubscribed_at),
        ])
    return buffer.getvalue()


async def subscriber_stats(store: SubscriberStore, db: AsyncSession) -> SubscriberStats:
    total, active, recent = await store.counts(utcnow() - RECENT_WINDOW)
    campaigns = (await db.execute(select(func.count(NewsletterCampaign.id)))).scalar_one()
    return SubscriberStats(
        total=total,
        active=active,
        inactive=total - active,
        last_30_days=recent,
        campaigns=campaigns,
    )


# Campaign drafts always live in the database, whatever stores the subscribers.

async def list_campaigns(db: AsyncSession) -> List[NewsletterCampaign]:
    result = await db.execute(
        select(NewsletterCampaign).order_by(NewsletterCampaign.created_at.desc(), NewsletterCampaign.id.desc())
    )
    return list(result.scalars().all())


async def get_campaign(db: AsyncSession, campaign_id: int) -> NewsletterCampaign:
    campaign = await db.get(NewsletterCampaign, campaign_id)
    if campaign is None:
        raise NotFoundError("Campaign", campaign_id)
    return campaign


async def create_campaign(
    db: AsyncSession,
    store: SubscriberStore,
    data: CampaignCreate,
    created_by: Optional[str] = None,
) -> NewsletterCampaign:
    _, active, _ = await store.counts(utcnow())
    campaign = NewsletterCampaign(
        name=data.name,
        subject=data.subject,
        content=data.content,
        status=data.status.value,
        recipient_count=active,
        created_by=created_by,
    )
    db.add(campaign)
    await db.commit()
    await db.refresh(campaign)
    logger.info("Created campaign id=%s recipients=%s", campaign.id, campaign.recipient_count)
    return campaign


async def update_campaign(db: AsyncSession, campaign_id: int, data: CampaignUpdate) -> NewsletterCampaign:
    campaign = await get_campaign(db, campaign_id)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(campaign, field, value.value if field == "status" else value)
    await db.commit()
    await db.refresh(campaign)
    return campaign


async def delete_campaign(db: AsyncSession, campaign_id: int) -> None:
    campaign = await get_campaign(db, campaign_id)
    await db.delete(campaign)
    await db.commit()
    logger.info("Deleted campaign id=%s", campaign_id)
