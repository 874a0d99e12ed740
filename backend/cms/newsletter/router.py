from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ..auth.dependencies import require_admin
from ..auth.schema import Principal
from ..database import SessionDep, utcnow
from ..models import DeleteResponse
from ..pagination import MAX_PAGE_SIZE
from . import service
from .schemas import (
    CampaignCreate,
    CampaignOut,
    CampaignUpdate,
    NewsletterBulkRequest,
    NewsletterBulkResponse,
    SubscribeRequest,
    SubscribeResponse,
    SubscriberCreate,
    SubscriberList,
    SubscriberOut,
    SubscriberStats,
    SubscriberUpdate,
    UnsubscribeResponse,
)
from .store import StoreDep

router = APIRouter(prefix="/newsletter", tags=["newsletter"], dependencies=[Depends(require_admin)])
public_router = APIRouter(prefix="/newsletter", tags=["public"])


@router.get("/subscribers", response_model=SubscriberList)
async def list_subscribers(
    store: StoreDep,
    active_only: bool = Query(False, alias="activeOnly"),
    source: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_PAGE_SIZE),
):
    result = await service.list_subscribers(
        store, active_only=active_only, source=source, search=search, page=page, limit=limit
    )
    return SubscriberList(
        subscribers=[SubscriberOut.model_validate(s) for s in result.items],
        total=result.total,
        has_more=result.has_more,
        page=result.page,
        limit=result.limit,
    )


@router.post("/subscribers", response_model=SubscriberOut, status_code=status.HTTP_201_CREATED)
async def add_subscriber(body: SubscriberCreate, store: StoreDep):
    return SubscriberOut.model_validate(await service.add_subscriber(store, body))


@router.put("/subscribers/{subscriber_id}", response_model=SubscriberOut)
async def update_subscriber(subscriber_id: int, body: SubscriberUpdate, store: StoreDep):
    return SubscriberOut.model_validate(await service.update_subscriber(store, subscriber_id, body))


@router.delete("/subscribers/{subscriber_id}", response_model=DeleteResponse)
async def delete_subscriber(subscriber_id: int, store: StoreDep):
    await service.delete_subscriber(store, subscriber_id)
    return DeleteResponse(id=subscriber_id)


@router.post("/bulk-actions", response_model=NewsletterBulkResponse)
async def bulk_actions(body: NewsletterBulkRequest, store: StoreDep):
    return await service.bulk_action(store, body.action, body.emails, body.preferences)


@router.get("/export")
async def export_subscribers(store: StoreDep):
    content = await service.export_csv(store)
    filename = f"newsletter-subscribers-{utcnow():%Y-%m-%d}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stats", response_model=SubscriberStats)
async def get_stats(store: StoreDep, db: SessionDep):
    return await service.subscriber_stats(store, db)


@router.get("/campaigns", response_model=List[CampaignOut])
async def list_campaigns(db: SessionDep):
    return [CampaignOut.model_validate(c) for c in await service.list_campaigns(db)]


@router.post("/campaigns", response_model=CampaignOut, status_code=status.HTTP_201_CREATED)
async def create_campaign(
    body: CampaignCreate,
    db: SessionDep,
    store: StoreDep,
    principal: Principal = Depends(require_admin),
):
    campaign = await service.create_campaign(db, store, body, created_by=principal.username)
    return CampaignOut.model_validate(campaign)


@router.get("/campaigns/{campaign_id}", response_model=CampaignOut)
async def get_campaign(campaign_id: int, db: SessionDep):
    return CampaignOut.model_validate(await service.get_campaign(db, campaign_id))


@router.put("/campaigns/{campaign_id}", response_model=CampaignOut)
async def update_campaign(campaign_id: int, body: CampaignUpdate, db: SessionDep):
    return CampaignOut.model_validate(await service.update_campaign(db, campaign_id, body))


@router.delete("/campaigns/{campaign_id}", response_model=DeleteResponse)
async def delete_campaign(campaign_id: int, db: SessionDep):
    await service.delete_campaign(db, campaign_id)
    return DeleteResponse(id=campaign_id)


@public_router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(body: SubscribeRequest, response: Response, store: StoreDep):
    subscriber, created = await service.subscribe(store, body.email, body.source)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return SubscribeResponse(message="Subscribed", email=subscriber.email)
    return SubscribeResponse(message="Subscription reactivated", email=subscriber.email)


@public_router.post("/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe(store: StoreDep, token: str = Query(..., min_length=1)):
    await service.unsubscribe(store, token)
    return UnsubscribeResponse(message="Unsubscribed")
