# backend/cms/articles/router.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth.dependencies import CurrentUser, require_editor
from ..auth.schema import Principal
from ..database import SessionDep
from ..models import BulkResponse, DeleteResponse
from ..pagination import MAX_PAGE_SIZE, Page
from . import service
from .models import ArticleStatus
from .schemas import (
    ArticleBulkRequest,
    ArticleCreate,
    ArticleList,
    ArticleOut,
    ArticleStats,
    ArticleUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/articles", tags=["articles"])
public_router = APIRouter(prefix="/articles", tags=["public"])


def _to_list(result: Page) -> ArticleList:
    return ArticleList(
        articles=[ArticleOut.model_validate(a) for a in result.items],
        total=result.total,
        has_more=result.has_more,
        page=result.page,
        limit=result.limit,
    )


@router.get("", response_model=ArticleList, dependencies=[CurrentUser])
async def list_articles(
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    query: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[ArticleStatus] = None,
    source: Optional[str] = None,
    featured: Optional[bool] = None,
    author_id: Optional[int] = Query(None, alias="authorId"),
):
    result = await service.list_articles(
        db,
        page=page,
        limit=limit,
        query=query,
        category=category,
        status=status,
        source=source,
        featured=featured,
        author_id=author_id,
    )
    return _to_list(result)


@router.get("/stats", response_model=ArticleStats, dependencies=[CurrentUser])
async def get_article_stats(db: SessionDep):
    return await service.article_stats(db)


@router.post("/bulk", response_model=BulkResponse, dependencies=[Depends(require_editor)])
async def bulk_articles(body: ArticleBulkRequest, db: SessionDep):
    logger.info("Bulk %s on %s article(s)", body.action, len(body.article_ids))
    if body.action == "delete":
        return await service.bulk_delete(db, body.article_ids)
    return await service.bulk_update(db, body.article_ids, body.updates)


@router.get("/{article_id}", response_model=ArticleOut, dependencies=[CurrentUser])
async def get_article(article_id: int, db: SessionDep):
    return ArticleOut.model_validate(await service.get_article(db, article_id))


@router.post("", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
async def create_article(
    body: ArticleCreate,
    db: SessionDep,
    principal: Principal = Depends(require_editor),
):
    article = await service.create_article(db, body, author_id=principal.user_id)
    return ArticleOut.model_validate(article)


@router.put("/{article_id}", response_model=ArticleOut, dependencies=[Depends(require_editor)])
async def update_article(article_id: int, body: ArticleUpdate, db: SessionDep):
    return ArticleOut.model_validate(await service.update_article(db, article_id, body))


@router.delete("/{article_id}", response_model=DeleteResponse, dependencies=[Depends(require_editor)])
async def delete_article(article_id: int, db: SessionDep):
    await service.delete_article(db, article_id)
    return DeleteResponse(id=article_id)


@public_router.get("", response_model=ArticleList)
async def list_public_articles(
    db: SessionDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    query: Optional[str] = None,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
):
    result = await service.list_public_articles(
        db, page=page, limit=limit, query=query, category=category, featured=featured
    )
    return _to_list(result)


@public_router.get("/{slug}", response_model=ArticleOut)
async def get_public_article(slug: str, db: SessionDep):
    return ArticleOut.model_validate(await service.get_public_article(db, slug))
